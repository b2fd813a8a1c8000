"""
Bills phase: every (congress, bill type) pair in configured order.
"""

from typing import List, Optional, Tuple

from core.exceptions import DataFormatError, LoadError
from ingestion.importers.base import PhaseImporter, PhaseStats, ProgressTracker, batch_items
from ingestion.phases import ImportPhase
import logging

logger = logging.getLogger(__name__)


def should_skip(
    congress: int,
    bill_type: str,
    start: Optional[Tuple[int, str]],
    congresses: List[int],
    bill_types: List[str],
) -> bool:
    """
    True when (congress, bill_type) precedes the resume point.

    Compares positions in the configured lists, not values. A resume point
    that is no longer configured skips nothing.
    """
    if start is None:
        return False
    start_congress, start_type = start
    if start_congress not in congresses or start_type not in bill_types:
        return False

    congress_index = congresses.index(congress)
    start_congress_index = congresses.index(start_congress)
    if congress_index != start_congress_index:
        return congress_index < start_congress_index
    return bill_types.index(bill_type) < bill_types.index(start_type)


class BillsImporter(PhaseImporter):
    """
    Import bills for each target congress and bill type.

    The checkpoint cursor is (congress, bill_type, offset) with the offset
    counted inside the current pair.
    """

    phase = ImportPhase.BILLS

    async def run(self) -> PhaseStats:
        stats = self.new_stats()
        congresses = list(self.settings.TARGET_CONGRESSES)
        bill_types = [t.lower() for t in self.settings.BILL_TYPES]
        total = self.settings.estimated_bills_total()

        state = self.resume_state()
        start: Optional[Tuple[int, str]] = None
        start_offset, base_processed = 0, 0
        if state is not None and state.congress is not None and state.bill_type:
            start = (state.congress, state.bill_type.lower())
            start_offset = state.offset
            base_processed = state.records_processed
            logger.info(f"Resuming bills at congress {start[0]} type {start[1]} offset {start_offset}")

        checkpoint_tracker = ProgressTracker(self.settings.CHECKPOINT_INTERVAL_RECORDS)
        self.checkpoints.update(total_expected=total)

        for congress in congresses:
            for bill_type in bill_types:
                if self.limit_reached(stats):
                    break
                if should_skip(congress, bill_type, start, congresses, bill_types):
                    continue

                offset = start_offset if start == (congress, bill_type) else 0
                pair_key = f"{congress}-{bill_type}"
                before = stats.processed
                self.checkpoints.update(congress=congress, bill_type=bill_type, offset=offset)

                consumed = 0
                bills = self.client.list_bills(
                    congress, bill_type, offset=offset, on_error=self.on_page_error
                )
                async for batch in batch_items(bills, self.settings.DB_BATCH_BILLS):
                    self.check_budget()
                    async with self.repository.transaction():
                        for raw in batch:
                            if self.limit_reached(stats):
                                break
                            consumed += 1
                            await self._import_one(raw, stats)

                    if checkpoint_tracker.crossed(stats.processed):
                        self.checkpoints.update(
                            offset=offset + consumed,
                            records_processed=base_processed + stats.processed,
                        )
                    self.log_progress(stats, total, pair_key)

                    if self.limit_reached(stats):
                        logger.info(f"Dry-run limit reached after {stats.processed} bills")
                        break

                self.checkpoints.update(
                    offset=offset + consumed,
                    records_processed=base_processed + stats.processed,
                )
                stats.bump(pair_key, stats.processed - before)
                logger.info(f"Bills {pair_key}: {stats.processed - before} imported")

        self.finish(stats, total_expected=total)

        imported = base_processed + stats.processed
        if not self.ctx.dry_run and imported < total * 0.8:
            logger.warning(f"Only {imported} bills imported, expected about {total}")
        return stats

    async def _import_one(self, raw, stats: PhaseStats):
        label = f"{raw.get('type', '?')}-{raw.get('number', '?')}-{raw.get('congress', '?')}"
        try:
            record = self.normalizer.bill(raw)
        except DataFormatError as e:
            self.record_error(stats, f"Bill {label}: {e.message}")
            return

        try:
            async with self.repository.savepoint():
                result = await self.repository.upsert_bill(record)
        except LoadError as e:
            self.record_error(stats, f"Bill {record.id}: {e.message}")
            return
        stats.record(result)
