"""
Votes phase: roll calls and member positions per (congress, chamber, session).
"""

from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import AuthenticationError, DataFormatError, ETLException, LoadError
from ingestion.checkpoint import VotesPhaseMeta
from ingestion.importers.base import PhaseImporter, PhaseStats, ProgressTracker
from ingestion.phases import ImportPhase
from ingestion.transformers.mappers import parse_int_prefix
from models.base import Chamber
from schemas.legislative import RollCallVoteCreate, VotePositionCreate
import logging

logger = logging.getLogger(__name__)

Combination = Tuple[int, str, int]

SUPPORTED_CHAMBERS = ("house",)


def should_skip(
    combination: Combination,
    start: Optional[Combination],
    congresses: List[int],
    chambers: List[str],
) -> bool:
    """
    True when (congress, chamber, session) precedes the resume point.

    Ordered lexicographically by (congress index, chamber index, session).
    """
    if start is None:
        return False
    congress, chamber, session = combination
    start_congress, start_chamber, start_session = start
    if start_congress not in congresses or start_chamber not in chambers:
        return False

    key = (congresses.index(congress), chambers.index(chamber), session)
    start_key = (congresses.index(start_congress), chambers.index(start_chamber), start_session)
    return key < start_key


class VotesImporter(PhaseImporter):
    """
    Import roll call votes with every member position.

    Each list item costs a detail request (and a members request when the
    detail does not embed them), so the checkpoint is written every
    VOTES_CHECKPOINT_INTERVAL roll calls rather than by record count.

    The offset is the position in the (congress, chamber, session) listing:
    resume offset plus items consumed, including items filtered out because
    they belong to another session.
    """

    phase = ImportPhase.VOTES

    def _chambers(self) -> List[str]:
        chambers = []
        for chamber in self.settings.VOTE_CHAMBERS:
            chamber = chamber.lower()
            if chamber in SUPPORTED_CHAMBERS:
                chambers.append(chamber)
            else:
                logger.warning(f"No roll call vote endpoint for chamber {chamber}; skipping")
        return chambers

    async def run(self) -> PhaseStats:
        stats = self.new_stats()
        congresses = list(self.settings.TARGET_CONGRESSES)
        chambers = self._chambers()
        sessions = list(self.settings.VOTE_SESSIONS)
        total = self.settings.estimated_votes_total()

        state = self.resume_state()
        start: Optional[Combination] = None
        start_offset, base_processed = 0, 0
        if state is not None and state.congress is not None and isinstance(state.metadata, VotesPhaseMeta):
            start = (state.congress, state.metadata.chamber, state.metadata.session)
            start_offset = state.offset
            base_processed = state.records_processed
            logger.info(
                f"Resuming votes at congress {start[0]} {start[1]} session {start[2]} offset {start_offset}"
            )

        self.checkpoints.update(total_expected=total)

        for congress in congresses:
            for chamber in chambers:
                for session in sessions:
                    if self.limit_reached(stats):
                        break
                    combination = (congress, chamber, session)
                    if should_skip(combination, start, congresses, chambers):
                        continue

                    offset = start_offset if start == combination else 0
                    await self._import_combination(combination, offset, base_processed, stats, total)

        self.finish(stats, total_expected=total)

        imported = base_processed + stats.processed
        if not self.ctx.dry_run and imported < total * 0.5:
            logger.warning(f"Only {imported} roll calls imported, expected about {total}")
        return stats

    async def _import_combination(
        self,
        combination: Combination,
        offset: int,
        base_processed: int,
        stats: PhaseStats,
        total: int,
    ):
        congress, chamber, session = combination
        label = f"{congress}-{chamber}-{session}"
        self.checkpoints.update(
            congress=congress,
            offset=offset,
            metadata=VotesPhaseMeta(chamber=chamber, session=session),
        )
        logger.info(f"Importing {chamber} votes for congress {congress} session {session} from offset {offset}")

        checkpoint_tracker = ProgressTracker(self.settings.VOTES_CHECKPOINT_INTERVAL)
        consumed = 0
        items = self.client.list_house_votes(congress, session, offset=offset, on_error=self.on_page_error)
        async for item in items:
            consumed += 1
            item_session = item.get("sessionNumber")
            if item_session is not None and parse_int_prefix(item_session) != session:
                continue

            self.check_budget()
            await self._import_roll_call(congress, session, item, stats)

            if checkpoint_tracker.crossed(consumed):
                self.checkpoints.update(
                    offset=offset + consumed,
                    records_processed=base_processed + stats.processed,
                )
            self.log_progress(stats, total, label)

            if self.limit_reached(stats):
                logger.info(f"Dry-run limit reached after {stats.processed} roll calls")
                break

        self.checkpoints.update(
            offset=offset + consumed,
            records_processed=base_processed + stats.processed,
        )

    async def _import_roll_call(self, congress: int, session: int, item: Dict[str, Any], stats: PhaseStats):
        roll_number = parse_int_prefix(item.get("rollCallNumber"))
        if not roll_number:
            self.record_error(stats, f"Vote list item without rollCallNumber in {congress}-{session}")
            return
        label = f"{congress}-{session}-{roll_number}"

        try:
            detail = await self.client.get_house_vote_detail(congress, session, roll_number)
        except AuthenticationError:
            raise
        except ETLException as e:
            self.record_error(stats, f"Vote {label} detail: {e.message}")
            return
        if not detail:
            stats.skipped += 1
            logger.debug(f"Vote {label} has no detail; skipped")
            return

        try:
            roll_call = self.normalizer.roll_call(detail, chamber=Chamber.HOUSE)
        except DataFormatError as e:
            self.record_error(stats, f"Vote {label}: {e.message}")
            return

        members = await self._members(congress, session, roll_number, detail, stats)

        roll_call = await self._link_bill(roll_call, stats)
        try:
            async with self.repository.transaction():
                async with self.repository.savepoint():
                    result = await self.repository.upsert_roll_call(roll_call)
        except LoadError as e:
            self.record_error(stats, f"Vote {roll_call.id}: {e.message}")
            return
        stats.record(result)

        if members:
            positions = self.normalizer.vote_positions(roll_call.id, members)
            await self._import_positions(positions, stats)

    async def _members(
        self,
        congress: int,
        session: int,
        roll_number: int,
        detail: Dict[str, Any],
        stats: PhaseStats,
    ) -> List[Dict[str, Any]]:
        members = detail.get("members")
        if members is not None:
            return list(members)
        try:
            return await self.client.get_house_vote_members(congress, session, roll_number)
        except AuthenticationError:
            raise
        except ETLException as e:
            self.record_error(stats, f"Vote {congress}-{session}-{roll_number} members: {e.message}")
            return []

    async def _link_bill(self, roll_call: RollCallVoteCreate, stats: PhaseStats) -> RollCallVoteCreate:
        if roll_call.bill_id and not await self.repository.bill_exists(roll_call.bill_id):
            logger.debug(f"Bill {roll_call.bill_id} for vote {roll_call.id} not imported; unlinking")
            stats.bump("unlinked_bills")
            return roll_call.model_copy(update={"bill_id": None})
        return roll_call

    async def _import_positions(self, positions: List[VotePositionCreate], stats: PhaseStats):
        batch_size = self.settings.DB_BATCH_VOTE_POSITIONS
        for start in range(0, len(positions), batch_size):
            batch = positions[start:start + batch_size]
            async with self.repository.transaction():
                for position in batch:
                    if not await self.repository.legislator_exists(position.legislator_id):
                        stats.bump("positions_skipped")
                        continue
                    try:
                        async with self.repository.savepoint():
                            await self.repository.upsert_vote_position(position)
                    except LoadError as e:
                        self.record_error(
                            stats,
                            f"Position {position.legislator_id} on {position.roll_call_id}: {e.message}"
                        )
                        continue
                    stats.bump("positions")
