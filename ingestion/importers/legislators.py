"""
Legislators phase: current members, then historical members.
"""

from typing import List

from core.exceptions import DataFormatError, InsufficientDataError, LoadError
from ingestion.checkpoint import LegislatorsPhaseMeta
from ingestion.importers.base import PhaseImporter, PhaseStats, ProgressTracker, batch_items
from ingestion.phases import ImportPhase
import logging

logger = logging.getLogger(__name__)


class LegislatorsImporter(PhaseImporter):
    """
    Import members of Congress.

    The offset in the checkpoint belongs to the listing named by
    LegislatorsPhaseMeta.current_member, so a resume inside the historical
    listing does not re-walk the current one.
    """

    phase = ImportPhase.LEGISLATORS

    def _listings(self) -> List[bool]:
        listings = [True]
        if self.settings.IMPORT_HISTORICAL_MEMBERS:
            listings.append(False)
        return listings

    async def run(self) -> PhaseStats:
        stats = self.new_stats()
        total = self.settings.ESTIMATED_LEGISLATORS

        state = self.resume_state()
        resume_current, resume_offset, base_processed = True, 0, 0
        if state is not None and isinstance(state.metadata, LegislatorsPhaseMeta):
            resume_current = state.metadata.current_member
            resume_offset = state.offset
            base_processed = state.records_processed
            logger.info(
                f"Resuming legislators at offset {resume_offset} "
                f"({'current' if resume_current else 'historical'} members)"
            )

        checkpoint_tracker = ProgressTracker(self.settings.CHECKPOINT_INTERVAL_RECORDS)

        for current in self._listings():
            if current and not resume_current:
                # Current listing finished before the interruption
                continue
            if self.limit_reached(stats):
                break

            start = resume_offset if current == resume_current else 0
            label = "current" if current else "historical"
            self.checkpoints.update(
                offset=start,
                metadata=LegislatorsPhaseMeta(current_member=current),
                total_expected=total,
            )
            logger.info(f"Importing {label} members from offset {start}")

            consumed = 0
            members = self.client.list_members(
                current_member=current, offset=start, on_error=self.on_page_error
            )
            async for batch in batch_items(members, self.settings.DB_BATCH_LEGISLATORS):
                self.check_budget()
                async with self.repository.transaction():
                    for raw in batch:
                        if self.limit_reached(stats):
                            break
                        consumed += 1
                        await self._import_one(raw, current, stats)

                if checkpoint_tracker.crossed(stats.processed):
                    self.checkpoints.update(
                        offset=start + consumed,
                        records_processed=base_processed + stats.processed,
                    )
                self.log_progress(stats, total, label)

                if self.limit_reached(stats):
                    logger.info(f"Dry-run limit reached after {stats.processed} legislators")
                    break

            self.checkpoints.update(
                offset=start + consumed,
                records_processed=base_processed + stats.processed,
            )

        self.finish(stats, total_expected=total)

        imported = base_processed + stats.processed
        if not self.ctx.dry_run and imported < self.settings.MIN_LEGISLATORS:
            raise InsufficientDataError(
                f"Only {imported} legislators imported (minimum {self.settings.MIN_LEGISLATORS})",
                context={"phase": self.phase.value, "imported": imported}
            )
        return stats

    async def _import_one(self, raw, current: bool, stats: PhaseStats):
        bioguide_id = raw.get("bioguideId", "unknown")
        try:
            record = self.normalizer.legislator(raw, in_office=current)
        except DataFormatError as e:
            self.record_error(stats, f"Legislator {bioguide_id}: {e.message}")
            return

        try:
            async with self.repository.savepoint():
                result = await self.repository.upsert_legislator(record)
        except LoadError as e:
            self.record_error(stats, f"Legislator {bioguide_id}: {e.message}")
            return
        stats.record(result)
