"""
Persistence boundary used by the phase importers.

Importers depend only on `LegislativeRepository`; the PostgreSQL
implementation is used for real runs and the in-memory one for dry runs
and tests.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncContextManager, Dict, Optional
from schemas.legislative import (
    BillCreate,
    CommitteeCreate,
    LegislatorCreate,
    RollCallVoteCreate,
    VotePositionCreate,
)


class UpsertResult(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class ValidationSnapshot:
    """Aggregate counts the validate phase evaluates"""
    legislator_count: int = 0
    committee_count: int = 0
    bill_counts_by_congress: Dict[int, int] = field(default_factory=dict)
    total_bills: int = 0
    roll_call_counts_by_congress: Dict[int, int] = field(default_factory=dict)
    vote_position_count: int = 0

    orphaned_subcommittees: int = 0
    positions_with_missing_legislator: int = 0
    positions_with_missing_roll_call: int = 0

    bills_without_title: int = 0
    bills_without_introduced_date: int = 0
    legislators_without_name: int = 0
    legislators_without_state: int = 0

    current_house_members: int = 0
    current_senate_members: int = 0
    current_party_counts: Dict[str, int] = field(default_factory=dict)

    bills_with_sync_timestamp: int = 0


class LegislativeRepository(ABC):
    """
    Idempotent writes keyed on natural ids.

    Upserts return CREATED when the row did not exist and UPDATED otherwise.
    `transaction()` wraps one DB batch; `savepoint()` wraps a single record
    so that one failed upsert does not abort the rest of the batch.
    """

    # Upserts

    @abstractmethod
    async def upsert_legislator(self, record: LegislatorCreate) -> UpsertResult:
        ...

    @abstractmethod
    async def upsert_committee(self, record: CommitteeCreate) -> UpsertResult:
        ...

    @abstractmethod
    async def upsert_bill(self, record: BillCreate) -> UpsertResult:
        ...

    @abstractmethod
    async def upsert_roll_call(self, record: RollCallVoteCreate) -> UpsertResult:
        ...

    @abstractmethod
    async def upsert_vote_position(self, record: VotePositionCreate) -> UpsertResult:
        ...

    # Lookups

    @abstractmethod
    async def legislator_exists(self, legislator_id: str) -> bool:
        ...

    @abstractmethod
    async def committee_exists(self, committee_id: str) -> bool:
        ...

    @abstractmethod
    async def bill_exists(self, bill_id: str) -> bool:
        ...

    @abstractmethod
    async def get_committee_parent(self, committee_id: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set_committee_parent(self, committee_id: str, parent_id: Optional[str]):
        ...

    # Units of work

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        ...

    @abstractmethod
    def savepoint(self) -> AsyncContextManager[None]:
        ...

    # Validation

    @abstractmethod
    async def collect_validation_snapshot(self, congresses=None) -> ValidationSnapshot:
        ...
