"""
Phase orchestrator - runs the import state machine.

    legislators → committees → bills → votes → validate → complete

Responsibilities:
- Enforce the run-wide error and time budget between phases
- Refuse phases whose dependencies have not completed
- Keep or reset the resume cursor on phase entry
- Bound each phase with a wall-clock timeout
- Advance the checkpoint on success, record the failure otherwise
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.exceptions import CheckpointNotInitializedError, PhaseDependencyError, PhaseTimeoutError
from core.logging import format_duration
from ingestion.importers.base import ImportContext, PhaseImporter, PhaseStats
from ingestion.importers.bills import BillsImporter
from ingestion.importers.committees import CommitteesImporter
from ingestion.importers.legislators import LegislatorsImporter
from ingestion.importers.validate import ValidateImporter
from ingestion.importers.votes import VotesImporter
from ingestion.phases import ImportPhase, missing_dependencies, next_phase
import logging

logger = logging.getLogger(__name__)


@dataclass
class PhaseResult:
    phase: ImportPhase
    stats: PhaseStats
    duration_seconds: float
    resumed: bool = False


def build_importers(context: ImportContext) -> Dict[ImportPhase, PhaseImporter]:
    return {
        ImportPhase.LEGISLATORS: LegislatorsImporter(context),
        ImportPhase.COMMITTEES: CommitteesImporter(context),
        ImportPhase.BILLS: BillsImporter(context),
        ImportPhase.VOTES: VotesImporter(context),
        ImportPhase.VALIDATE: ValidateImporter(context),
    }


class PhaseOrchestrator:
    """
    Drives the phases of one run against a loaded checkpoint.

    The checkpoint must be created or loaded before `run_phase` or
    `run_all` is called.
    """

    def __init__(
        self,
        context: ImportContext,
        importers: Optional[Dict[ImportPhase, PhaseImporter]] = None,
        phase_timeout_seconds: Optional[float] = None,
    ):
        self.ctx = context
        self.checkpoints = context.checkpoints
        self.importers = importers if importers is not None else build_importers(context)
        self.phase_timeout_seconds = (
            phase_timeout_seconds
            if phase_timeout_seconds is not None
            else context.settings.PHASE_TIMEOUT_SECONDS
        )

    async def run_phase(self, phase: ImportPhase) -> PhaseResult:
        """
        Run a single phase and advance the checkpoint past it.

        Raises:
            ErrorBudgetExceededError / TimeBudgetExceededError: Budget spent
            PhaseDependencyError: A prerequisite phase has not completed
            PhaseTimeoutError: The phase ran past its timeout
            Any importer failure, after it is recorded in the checkpoint
        """
        phase = ImportPhase(phase)
        try:
            self.ctx.budget.check()
            resumed = self._enter(phase)
        except Exception as e:
            self.checkpoints.record_error(e)
            raise

        importer = self.importers[phase]
        started = time.monotonic()
        logger.info(f"=== Phase {phase.value} {'resumed' if resumed else 'started'} ===")

        try:
            stats = await asyncio.wait_for(importer.run(), timeout=self.phase_timeout_seconds)
        except asyncio.TimeoutError as e:
            error = PhaseTimeoutError(
                f"Phase {phase.value} exceeded {format_duration(self.phase_timeout_seconds)}",
                context={"phase": phase.value, "timeout_seconds": self.phase_timeout_seconds},
                original_exception=e
            )
            self.checkpoints.record_error(error)
            logger.error(str(error))
            raise error
        except Exception as e:
            self.checkpoints.record_error(e)
            logger.error(f"Phase {phase.value} failed: {e}")
            raise

        if self.checkpoints.is_phase_completed(phase) and next_phase(phase) is None:
            logger.info(f"Run already complete; {phase.value} re-run without advancing")
        else:
            self.checkpoints.advance_phase()
        duration = time.monotonic() - started
        logger.info(f"=== Phase {phase.value} completed in {format_duration(duration)} ===")
        return PhaseResult(phase=phase, stats=stats, duration_seconds=duration, resumed=resumed)

    def _enter(self, phase: ImportPhase) -> bool:
        """Check dependencies and position the cursor. Returns True when resuming."""
        state = self.checkpoints.get_state()
        if state is None:
            raise CheckpointNotInitializedError(
                "No checkpoint loaded; create or load one before running phases",
                context={"phase": phase.value, "operation": "run_phase"}
            )

        missing = missing_dependencies(phase, state.completed_phases)
        if missing:
            raise PhaseDependencyError(
                f"Phase {phase.value} requires {', '.join(p.value for p in missing)}",
                context={"phase": phase.value, "missing": [p.value for p in missing]}
            )

        if state.phase == phase and state.records_processed > 0:
            logger.info(
                f"Resuming {phase.value} from offset {state.offset} "
                f"({state.records_processed} records already processed)"
            )
            return True

        self.checkpoints.update(
            phase=phase,
            offset=0,
            records_processed=0,
            total_expected=0,
            congress=None,
            bill_type=None,
            metadata=None,
            last_error=None,
        )
        return False

    async def run_all(self) -> List[PhaseResult]:
        """Run every remaining phase in order."""
        results = []
        while True:
            phase = self.checkpoints.get_next_phase()
            if phase is None:
                break
            results.append(await self.run_phase(phase))
        logger.info(f"Import complete: {len(results)} phases run")
        return results
