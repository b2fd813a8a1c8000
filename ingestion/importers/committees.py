"""
Committees phase: parents before subcommittees, then a relink pass.
"""

from typing import Dict, List

from core.exceptions import DataFormatError, InsufficientDataError, LoadError
from ingestion.importers.base import PhaseImporter, PhaseStats
from ingestion.phases import ImportPhase
from schemas.legislative import CommitteeCreate
import logging

logger = logging.getLogger(__name__)


def order_by_hierarchy(records: List[CommitteeCreate]) -> List[CommitteeCreate]:
    """Stable sort placing committees without a parent first."""
    return sorted(records, key=lambda record: record.parent_id is not None)


class CommitteesImporter(PhaseImporter):
    """
    Import committees and subcommittees.

    The whole listing is buffered (a few hundred records) so that parents
    can be written before their subcommittees. The checkpoint offset is an
    index into the sorted buffer. A subcommittee whose parent is not yet
    stored is written with a null parent and re-linked once every batch
    has been loaded.
    """

    phase = ImportPhase.COMMITTEES

    async def run(self) -> PhaseStats:
        stats = self.new_stats()

        state = self.resume_state()
        resume_offset = state.offset if state is not None else 0
        base_processed = state.records_processed if state is not None else 0

        records = await self._buffer(stats)
        ordered = order_by_hierarchy(records)
        total = len(ordered)
        self.checkpoints.update(total_expected=total)
        if resume_offset:
            logger.info(f"Resuming committees at index {resume_offset} of {total}")

        batch_size = self.settings.DB_BATCH_COMMITTEES
        index = resume_offset
        while index < total and not self.limit_reached(stats):
            self.check_budget()
            batch = ordered[index:index + batch_size]
            async with self.repository.transaction():
                for record in batch:
                    if self.limit_reached(stats):
                        break
                    await self._import_one(record, stats)
                    index += 1

            self.checkpoints.update(offset=index, records_processed=base_processed + stats.processed)
            self.log_progress(stats, total)

        await self._relink(ordered, stats)
        self.finish(stats, total_expected=total)

        imported = base_processed + stats.processed
        if not self.ctx.dry_run and imported < self.settings.MIN_COMMITTEES:
            raise InsufficientDataError(
                f"Only {imported} committees imported (minimum {self.settings.MIN_COMMITTEES})",
                context={"phase": self.phase.value, "imported": imported}
            )
        return stats

    async def _buffer(self, stats: PhaseStats) -> List[CommitteeCreate]:
        records = []
        async for raw in self.client.list_committees(on_error=self.on_page_error):
            try:
                records.append(self.normalizer.committee(raw))
            except DataFormatError as e:
                self.record_error(stats, f"Committee {raw.get('systemCode', 'unknown')}: {e.message}")
        logger.info(f"Buffered {len(records)} committees")
        return records

    async def _import_one(self, record: CommitteeCreate, stats: PhaseStats):
        if record.parent_id and not await self.repository.committee_exists(record.parent_id):
            stats.bump("deferred_parents")
            record = record.model_copy(update={"parent_id": None})

        try:
            async with self.repository.savepoint():
                result = await self.repository.upsert_committee(record)
        except LoadError as e:
            self.record_error(stats, f"Committee {record.id}: {e.message}")
            return
        stats.record(result)

    async def _relink(self, ordered: List[CommitteeCreate], stats: PhaseStats):
        """
        Restore parent links that were nulled during the load.

        Walks every subcommittee in the buffer, not only those deferred in
        this invocation, so links deferred before an interruption are
        repaired on resume.
        """
        wanted: Dict[str, str] = {r.id: r.parent_id for r in ordered if r.parent_id}
        if not wanted:
            return

        relinked, missing = 0, 0
        async with self.repository.transaction():
            for committee_id, parent_id in wanted.items():
                if not await self.repository.committee_exists(committee_id):
                    continue
                if await self.repository.get_committee_parent(committee_id) == parent_id:
                    continue
                if not await self.repository.committee_exists(parent_id):
                    missing += 1
                    logger.warning(f"Parent {parent_id} of committee {committee_id} was never imported")
                    continue
                await self.repository.set_committee_parent(committee_id, parent_id)
                relinked += 1

        stats.bump("relinked", relinked)
        if missing:
            stats.bump("missing_parents", missing)
        logger.info(f"Relinked {relinked} subcommittees to their parents")
