"""
Shared machinery for the per-phase importers.

Every importer follows the same shape:

    lazy list sequence → transform → upsert in DB-sized batches
    (one repository transaction per batch, one savepoint per record)
    → checkpoint every N records → progress log every M records
    → summary log + PhaseSummaryMeta in the checkpoint

Per-record failures are counted in PhaseStats and in the run-wide
ErrorBudget; structural failures propagate to the orchestrator.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional, TypeVar

from core.config import Settings, settings as default_settings
from core.logging import format_duration, format_progress_bar
from ingestion.checkpoint import CheckpointManager, PhaseSummaryMeta
from ingestion.error_budget import ErrorBudget
from ingestion.extractors.congress_client import CongressApiClient
from ingestion.loaders.repository import LegislativeRepository, UpsertResult
from ingestion.phases import ImportPhase
from ingestion.transformers.normalizer import LegislativeNormalizer
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ImportContext:
    """Collaborators shared by every phase of one invocation"""
    client: CongressApiClient
    repository: LegislativeRepository
    checkpoints: CheckpointManager
    budget: ErrorBudget
    settings: Settings = field(default_factory=lambda: default_settings)
    normalizer: LegislativeNormalizer = field(default_factory=LegislativeNormalizer)
    dry_run: bool = False
    verbose: bool = False

    @property
    def max_records(self) -> Optional[int]:
        """Per-phase record cap; only dry runs are capped."""
        return self.settings.DRY_RUN_MAX_RECORDS if self.dry_run else None

    def record_error(self, phase: ImportPhase, message: str):
        self.budget.record_error(message, phase=phase.value)
        if self.verbose:
            logger.warning(f"[{phase.value}] {message}")
        else:
            logger.debug(f"[{phase.value}] {message}")


@dataclass
class PhaseStats:
    """Counters for one phase run"""
    phase: ImportPhase
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    extra: Dict[str, int] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    def record(self, result: UpsertResult):
        self.processed += 1
        if result == UpsertResult.CREATED:
            self.created += 1
        else:
            self.updated += 1

    def bump(self, name: str, amount: int = 1):
        self.extra[name] = self.extra.get(name, 0) + amount

    def finish(self):
        self.finished_at = time.monotonic()

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.started_at)

    @property
    def rate(self) -> float:
        """Records per second"""
        duration = self.duration_seconds
        return self.processed / duration if duration > 0 else 0.0

    def as_counts(self) -> Dict[str, int]:
        counts = {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors,
            "duration_ms": int(self.duration_seconds * 1000),
        }
        counts.update(self.extra)
        return counts


class ProgressTracker:
    """
    Fires when a counter crosses a multiple of an interval.

    Batches advance the counter by more than one, so "every 100 records"
    means "whenever the count passes the next multiple of 100".
    """

    def __init__(self, interval: int, start: int = 0):
        self.interval = max(1, interval)
        self._bucket = start // self.interval

    def crossed(self, count: int) -> bool:
        bucket = count // self.interval
        if bucket > self._bucket:
            self._bucket = bucket
            return True
        return False


async def batch_items(items: AsyncIterable[T], size: int) -> AsyncIterator[List[T]]:
    """Group an async sequence into lists of at most `size` items."""
    batch: List[T] = []
    async for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


class PhaseImporter(ABC):
    """
    Base class for one import phase.

    Subclasses implement `run()`; helpers here keep the checkpoint,
    progress logging and error accounting consistent across phases.
    """

    phase: ImportPhase

    def __init__(self, context: ImportContext):
        self.ctx = context
        self.settings = context.settings
        self.checkpoints = context.checkpoints
        self.repository = context.repository
        self.client = context.client
        self.normalizer = context.normalizer
        self._progress = ProgressTracker(self.settings.PROGRESS_LOG_INTERVAL_RECORDS)

    @abstractmethod
    async def run(self) -> PhaseStats:
        """Import the phase; returns its counters."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def new_stats(self) -> PhaseStats:
        return PhaseStats(phase=self.phase)

    def record_error(self, stats: PhaseStats, message: str):
        stats.errors += 1
        self.ctx.record_error(self.phase, message)

    def on_page_error(self, error: Exception):
        """Pagination hook: failed page attempts count against the budget."""
        self.ctx.record_error(self.phase, f"Page fetch failed: {error}")

    def check_budget(self):
        self.ctx.budget.check()

    def limit_reached(self, stats: PhaseStats) -> bool:
        limit = self.ctx.max_records
        return limit is not None and stats.processed >= limit

    def resume_state(self):
        """Checkpoint state when it belongs to this phase, else None."""
        state = self.checkpoints.get_state()
        if state is None or state.phase != self.phase:
            return None
        return state

    def log_progress(self, stats: PhaseStats, total: int, label: str = ""):
        if not self._progress.crossed(stats.processed) and not self.ctx.verbose:
            return
        suffix = f" {label}" if label else ""
        logger.info(
            f"[{self.phase.value}] {format_progress_bar(stats.processed, total)}{suffix} "
            f"created={stats.created} updated={stats.updated} errors={stats.errors}"
        )

    def finish(self, stats: PhaseStats, total_expected: Optional[int] = None) -> PhaseStats:
        """Log the summary and store it in the checkpoint."""
        stats.finish()
        logger.info(
            f"[{self.phase.value}] Completed: processed={stats.processed} "
            f"created={stats.created} updated={stats.updated} skipped={stats.skipped} "
            f"errors={stats.errors} duration={format_duration(stats.duration_seconds)} "
            f"rate={stats.rate:.1f}/s"
        )
        for name, value in sorted(stats.extra.items()):
            logger.info(f"[{self.phase.value}]   {name}: {value}")

        fields: Dict[str, Any] = {"metadata": PhaseSummaryMeta(counts=stats.as_counts())}
        if total_expected is not None:
            fields["total_expected"] = total_expected
        self.checkpoints.update(**fields)
        return stats
