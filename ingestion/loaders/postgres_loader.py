"""
Load legislative records into PostgreSQL with upsert logic (idempotency)
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, func, literal_column, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased
from core.exceptions import DatabaseError, UpsertError
from models.base import Chamber
from models.bill import Bill
from models.committee import Committee
from models.legislator import Legislator
from models.vote import RollCallVote, VotePosition
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
import logging

logger = logging.getLogger(__name__)


class PostgresLegislativeRepository(LegislativeRepository):
    """
    Load data into PostgreSQL with idempotent upsert operations.

    Ensures:
    - No duplicate rows on repeated runs (INSERT ... ON CONFLICT DO UPDATE)
    - CREATED vs UPDATED reported from `xmax = 0` in RETURNING
    - One transaction per batch, one savepoint per record
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self._known_legislators: Set[str] = set()
        self._known_bills: Set[str] = set()
        self._pending_legislators: Set[str] = set()
        self._pending_bills: Set[str] = set()
        self._in_transaction = False

    def _remember(self, legislator_id: Optional[str] = None, bill_id: Optional[str] = None):
        legislators, bills = (
            (self._pending_legislators, self._pending_bills)
            if self._in_transaction
            else (self._known_legislators, self._known_bills)
        )
        if legislator_id:
            legislators.add(legislator_id)
        if bill_id:
            bills.add(bill_id)

    async def _upsert(
        self,
        model,
        values: Dict[str, Any],
        index_elements: List[str],
        update_columns: Iterable[str],
    ) -> UpsertResult:
        stmt = insert(model).values(**values)
        set_ = {column: stmt.excluded[column] for column in update_columns}
        if "updated_at" in model.__table__.c:
            set_["updated_at"] = datetime.utcnow()

        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            set_=set_
        ).returning(literal_column("(xmax = 0)"))

        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise UpsertError(
                f"Upsert into {model.__tablename__} failed",
                context={"table_name": model.__tablename__, "record_id": values.get("id")},
                original_exception=e
            )

        inserted = result.scalar()
        return UpsertResult.CREATED if inserted else UpsertResult.UPDATED

    @staticmethod
    def _values(record, synced: bool = True) -> Dict[str, Any]:
        values = record.model_dump()
        if synced:
            values["last_synced_at"] = datetime.utcnow()
        return values

    # ========================================================================
    # Upserts
    # ========================================================================

    async def upsert_legislator(self, record: LegislatorCreate) -> UpsertResult:
        values = self._values(record)
        result = await self._upsert(
            Legislator,
            values,
            ["id"],
            [
                "first_name", "middle_name", "last_name", "full_name", "party",
                "chamber", "state", "district", "in_office", "last_synced_at",
            ],
        )
        self._remember(legislator_id=record.id)
        return result

    async def upsert_committee(self, record: CommitteeCreate) -> UpsertResult:
        values = self._values(record)
        return await self._upsert(
            Committee,
            values,
            ["id"],
            ["name", "chamber", "committee_type", "parent_id", "last_synced_at"],
        )

    async def upsert_bill(self, record: BillCreate) -> UpsertResult:
        values = self._values(record)
        result = await self._upsert(
            Bill,
            values,
            ["id"],
            [
                "title", "status", "origin_chamber", "introduced_date",
                "last_action_date", "last_action_text", "last_synced_at",
            ],
        )
        self._remember(bill_id=record.id)
        return result

    async def upsert_roll_call(self, record: RollCallVoteCreate) -> UpsertResult:
        values = self._values(record)
        return await self._upsert(
            RollCallVote,
            values,
            ["id"],
            [
                "bill_id", "vote_type", "vote_category", "question", "result",
                "yeas", "nays", "present", "not_voting", "vote_date", "last_synced_at",
            ],
        )

    async def upsert_vote_position(self, record: VotePositionCreate) -> UpsertResult:
        values = self._values(record, synced=False)
        return await self._upsert(
            VotePosition,
            values,
            ["roll_call_id", "legislator_id"],
            ["position", "is_proxy", "paired_with"],
        )

    # ========================================================================
    # Lookups
    # ========================================================================

    async def _exists(self, column, value: str) -> bool:
        try:
            result = await self.db.execute(select(column).where(column == value).limit(1))
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Existence check failed",
                context={"operation": "SELECT", "table_name": column.table.name},
                original_exception=e
            )
        return result.scalar_one_or_none() is not None

    async def legislator_exists(self, legislator_id: str) -> bool:
        if legislator_id in self._known_legislators or legislator_id in self._pending_legislators:
            return True
        found = await self._exists(Legislator.id, legislator_id)
        if found:
            self._remember(legislator_id=legislator_id)
        return found

    async def committee_exists(self, committee_id: str) -> bool:
        return await self._exists(Committee.id, committee_id)

    async def bill_exists(self, bill_id: str) -> bool:
        if bill_id in self._known_bills or bill_id in self._pending_bills:
            return True
        found = await self._exists(Bill.id, bill_id)
        if found:
            self._remember(bill_id=bill_id)
        return found

    async def get_committee_parent(self, committee_id: str) -> Optional[str]:
        try:
            result = await self.db.execute(
                select(Committee.parent_id).where(Committee.id == committee_id)
            )
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Committee parent lookup failed",
                context={"operation": "SELECT", "table_name": "committees", "record_id": committee_id},
                original_exception=e
            )
        return result.scalar_one_or_none()

    async def set_committee_parent(self, committee_id: str, parent_id: Optional[str]):
        try:
            await self.db.execute(
                update(Committee)
                .where(Committee.id == committee_id)
                .values(parent_id=parent_id, updated_at=datetime.utcnow())
            )
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Committee parent update failed",
                context={"operation": "UPDATE", "table_name": "committees", "record_id": committee_id},
                original_exception=e
            )

    # ========================================================================
    # Units of work
    # ========================================================================

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Commit on success, roll back and re-raise on failure.

        Ids upserted inside the transaction join the existence caches only
        once the commit succeeds.
        """
        self._in_transaction = True
        try:
            yield
            await self.db.commit()
        except BaseException:
            await self.db.rollback()
            raise
        else:
            self._known_legislators.update(self._pending_legislators)
            self._known_bills.update(self._pending_bills)
        finally:
            self._in_transaction = False
            self._pending_legislators.clear()
            self._pending_bills.clear()

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        legislators = set(self._pending_legislators)
        bills = set(self._pending_bills)
        try:
            async with self.db.begin_nested():
                yield
        except BaseException:
            self._pending_legislators = legislators
            self._pending_bills = bills
            raise

    # ========================================================================
    # Validation
    # ========================================================================

    async def _count(self, stmt) -> int:
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def collect_validation_snapshot(self, congresses=None) -> ValidationSnapshot:
        try:
            return await self._collect_snapshot(congresses)
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Validation snapshot query failed",
                context={"operation": "SELECT"},
                original_exception=e
            )

    async def _collect_snapshot(self, congresses) -> ValidationSnapshot:
        snapshot = ValidationSnapshot()

        snapshot.legislator_count = await self._count(select(func.count(Legislator.id)))
        snapshot.committee_count = await self._count(select(func.count(Committee.id)))
        snapshot.total_bills = await self._count(select(func.count(Bill.id)))
        snapshot.vote_position_count = await self._count(select(func.count(VotePosition.id)))

        rows = await self.db.execute(
            select(Bill.congress_number, func.count(Bill.id)).group_by(Bill.congress_number)
        )
        snapshot.bill_counts_by_congress = {int(c): int(n) for c, n in rows.all()}

        rows = await self.db.execute(
            select(RollCallVote.congress_number, func.count(RollCallVote.id))
            .group_by(RollCallVote.congress_number)
        )
        snapshot.roll_call_counts_by_congress = {int(c): int(n) for c, n in rows.all()}

        for congress in congresses or []:
            snapshot.bill_counts_by_congress.setdefault(congress, 0)
            snapshot.roll_call_counts_by_congress.setdefault(congress, 0)

        parent = aliased(Committee)
        snapshot.orphaned_subcommittees = await self._count(
            select(func.count(Committee.id))
            .select_from(Committee)
            .outerjoin(parent, Committee.parent_id == parent.id)
            .where(and_(Committee.parent_id.isnot(None), parent.id.is_(None)))
        )
        snapshot.positions_with_missing_legislator = await self._count(
            select(func.count(VotePosition.id))
            .select_from(VotePosition)
            .outerjoin(Legislator, VotePosition.legislator_id == Legislator.id)
            .where(Legislator.id.is_(None))
        )
        snapshot.positions_with_missing_roll_call = await self._count(
            select(func.count(VotePosition.id))
            .select_from(VotePosition)
            .outerjoin(RollCallVote, VotePosition.roll_call_id == RollCallVote.id)
            .where(RollCallVote.id.is_(None))
        )

        snapshot.bills_without_title = await self._count(
            select(func.count(Bill.id)).where(or_(Bill.title.is_(None), Bill.title == ""))
        )
        snapshot.bills_without_introduced_date = await self._count(
            select(func.count(Bill.id)).where(Bill.introduced_date.is_(None))
        )
        snapshot.legislators_without_name = await self._count(
            select(func.count(Legislator.id)).where(
                or_(Legislator.first_name == "", Legislator.last_name == "")
            )
        )
        snapshot.legislators_without_state = await self._count(
            select(func.count(Legislator.id)).where(
                or_(Legislator.state == "", Legislator.state == "XX")
            )
        )

        snapshot.current_house_members = await self._count(
            select(func.count(Legislator.id)).where(
                and_(Legislator.chamber == Chamber.HOUSE, Legislator.in_office.is_(True))
            )
        )
        snapshot.current_senate_members = await self._count(
            select(func.count(Legislator.id)).where(
                and_(Legislator.chamber == Chamber.SENATE, Legislator.in_office.is_(True))
            )
        )

        rows = await self.db.execute(
            select(Legislator.party, func.count(Legislator.id))
            .where(Legislator.in_office.is_(True))
            .group_by(Legislator.party)
        )
        snapshot.current_party_counts = {
            (p.value if hasattr(p, "value") else str(p)): int(n) for p, n in rows.all()
        }

        snapshot.bills_with_sync_timestamp = await self._count(
            select(func.count(Bill.id)).where(Bill.last_synced_at.isnot(None))
        )

        logger.debug(f"Validation snapshot: {snapshot}")
        return snapshot
