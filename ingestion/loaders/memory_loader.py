"""
In-memory repository for dry runs and tests.

Mirrors the PostgreSQL semantics: natural-key upserts, CREATED/UPDATED
results, batch transactions that roll back on failure and per-record
savepoints.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from models.base import Chamber
from ingestion.loaders.repository import (
    LegislativeRepository,
    UpsertResult,
    ValidationSnapshot,
)
from schemas.legislative import (
    BillCreate,
    CommitteeCreate,
    LegislatorCreate,
    RollCallVoteCreate,
    VotePositionCreate,
)


_ABSENT = object()


class InMemoryLegislativeRepository(LegislativeRepository):
    """
    Dict-backed store keyed the same way as the database tables.

    Rows are never mutated in place. Each open transaction or savepoint
    keeps an undo log of (table, key, previous row) so a rollback only
    touches the rows written inside it.
    """

    def __init__(self):
        self.legislators: Dict[str, Dict[str, Any]] = {}
        self.committees: Dict[str, Dict[str, Any]] = {}
        self.bills: Dict[str, Dict[str, Any]] = {}
        self.roll_calls: Dict[str, Dict[str, Any]] = {}
        self.vote_positions: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.commits = 0
        self.rollbacks = 0
        self._undo: List[List[Tuple[Dict, Any, Any]]] = []

    def _write(self, table: Dict, key, row: Dict[str, Any]):
        if self._undo:
            self._undo[-1].append((table, key, table.get(key, _ABSENT)))
        table[key] = row

    def _rollback_frame(self, frame: List[Tuple[Dict, Any, Any]]):
        for table, key, previous in reversed(frame):
            if previous is _ABSENT:
                table.pop(key, None)
            else:
                table[key] = previous

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        frame: List[Tuple[Dict, Any, Any]] = []
        self._undo.append(frame)
        try:
            yield
        except BaseException:
            self._undo.pop()
            self._rollback_frame(frame)
            raise
        self._undo.pop()
        if self._undo:
            self._undo[-1].extend(frame)

    def _put(self, table: Dict, key, values: Dict[str, Any]) -> UpsertResult:
        now = datetime.utcnow()
        values = dict(values)
        values["last_synced_at"] = now
        existing = table.get(key)
        if existing is None:
            values["created_at"] = now
            self._write(table, key, values)
            return UpsertResult.CREATED
        self._write(table, key, {**existing, **values})
        return UpsertResult.UPDATED

    # Upserts

    async def upsert_legislator(self, record: LegislatorCreate) -> UpsertResult:
        return self._put(self.legislators, record.id, record.model_dump())

    async def upsert_committee(self, record: CommitteeCreate) -> UpsertResult:
        return self._put(self.committees, record.id, record.model_dump())

    async def upsert_bill(self, record: BillCreate) -> UpsertResult:
        return self._put(self.bills, record.id, record.model_dump())

    async def upsert_roll_call(self, record: RollCallVoteCreate) -> UpsertResult:
        return self._put(self.roll_calls, record.id, record.model_dump())

    async def upsert_vote_position(self, record: VotePositionCreate) -> UpsertResult:
        key = (record.roll_call_id, record.legislator_id)
        return self._put(self.vote_positions, key, record.model_dump())

    # Lookups

    async def legislator_exists(self, legislator_id: str) -> bool:
        return legislator_id in self.legislators

    async def committee_exists(self, committee_id: str) -> bool:
        return committee_id in self.committees

    async def bill_exists(self, bill_id: str) -> bool:
        return bill_id in self.bills

    async def get_committee_parent(self, committee_id: str) -> Optional[str]:
        committee = self.committees.get(committee_id)
        return committee.get("parent_id") if committee else None

    async def set_committee_parent(self, committee_id: str, parent_id: Optional[str]):
        committee = self.committees.get(committee_id)
        if committee is not None:
            self._write(self.committees, committee_id, {**committee, "parent_id": parent_id})

    # Units of work

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            async with self._unit_of_work():
                yield
        except BaseException:
            self.rollbacks += 1
            raise
        self.commits += 1

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        async with self._unit_of_work():
            yield

    # Validation

    async def collect_validation_snapshot(self, congresses=None) -> ValidationSnapshot:
        snapshot = ValidationSnapshot(
            legislator_count=len(self.legislators),
            committee_count=len(self.committees),
            total_bills=len(self.bills),
            vote_position_count=len(self.vote_positions),
        )

        for congress in congresses or []:
            snapshot.bill_counts_by_congress[congress] = 0
            snapshot.roll_call_counts_by_congress[congress] = 0
        for bill in self.bills.values():
            congress = bill["congress_number"]
            snapshot.bill_counts_by_congress[congress] = snapshot.bill_counts_by_congress.get(congress, 0) + 1
        for roll_call in self.roll_calls.values():
            congress = roll_call["congress_number"]
            snapshot.roll_call_counts_by_congress[congress] = (
                snapshot.roll_call_counts_by_congress.get(congress, 0) + 1
            )

        snapshot.orphaned_subcommittees = sum(
            1 for c in self.committees.values()
            if c.get("parent_id") and c["parent_id"] not in self.committees
        )
        snapshot.positions_with_missing_legislator = sum(
            1 for (_, legislator_id) in self.vote_positions if legislator_id not in self.legislators
        )
        snapshot.positions_with_missing_roll_call = sum(
            1 for (roll_call_id, _) in self.vote_positions if roll_call_id not in self.roll_calls
        )

        snapshot.bills_without_title = sum(1 for b in self.bills.values() if not b.get("title"))
        snapshot.bills_without_introduced_date = sum(
            1 for b in self.bills.values() if b.get("introduced_date") is None
        )
        snapshot.legislators_without_name = sum(
            1 for m in self.legislators.values() if not m.get("first_name") or not m.get("last_name")
        )
        snapshot.legislators_without_state = sum(
            1 for m in self.legislators.values() if m.get("state") in (None, "", "XX")
        )

        current = [m for m in self.legislators.values() if m.get("in_office")]
        snapshot.current_house_members = sum(1 for m in current if m["chamber"] == Chamber.HOUSE)
        snapshot.current_senate_members = sum(1 for m in current if m["chamber"] == Chamber.SENATE)
        for member in current:
            party = str(getattr(member["party"], "value", member["party"]))
            snapshot.current_party_counts[party] = snapshot.current_party_counts.get(party, 0) + 1

        snapshot.bills_with_sync_timestamp = sum(
            1 for b in self.bills.values() if b.get("last_synced_at") is not None
        )
        return snapshot
