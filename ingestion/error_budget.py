"""
Run-wide error and time budget.

Per-record failures are absorbed by the importers, but once too many have
accumulated, or the invocation has run too long, the run aborts instead of
limping on against a broken upstream.
"""

import time
from typing import Callable, Dict, List, Optional
from core.config import settings
from core.exceptions import ErrorBudgetExceededError, TimeBudgetExceededError
import logging

logger = logging.getLogger(__name__)


class ErrorBudget:
    """
    Counts errors across all phases of one CLI invocation.

    The clock starts at construction, so the time budget applies to the
    current invocation and not to the run recorded in the checkpoint.
    """

    def __init__(
        self,
        max_total_errors: Optional[int] = None,
        max_duration_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_total_errors = (
            max_total_errors if max_total_errors is not None else settings.MAX_TOTAL_ERRORS
        )
        self.max_duration_seconds = (
            max_duration_seconds if max_duration_seconds is not None else settings.MAX_RUN_DURATION_SECONDS
        )
        self._clock = clock
        self._started = clock()
        self.total_errors = 0
        self.errors_by_phase: Dict[str, int] = {}
        self.recent_errors: List[str] = []

    @property
    def elapsed_seconds(self) -> float:
        return self._clock() - self._started

    def record_error(self, message: str, phase: Optional[str] = None):
        self.total_errors += 1
        key = phase or "unknown"
        self.errors_by_phase[key] = self.errors_by_phase.get(key, 0) + 1
        self.recent_errors = (self.recent_errors + [message])[-10:]
        logger.debug(f"Error {self.total_errors}/{self.max_total_errors} in {key}: {message}")

    def check(self):
        """
        Raises:
            ErrorBudgetExceededError: More errors than allowed
            TimeBudgetExceededError: Invocation ran longer than allowed
        """
        if self.total_errors > self.max_total_errors:
            raise ErrorBudgetExceededError(
                f"Error budget exceeded: {self.total_errors} errors (max {self.max_total_errors})",
                context={
                    "total_errors": self.total_errors,
                    "max_total_errors": self.max_total_errors,
                    "errors_by_phase": dict(self.errors_by_phase),
                }
            )

        elapsed = self.elapsed_seconds
        if elapsed > self.max_duration_seconds:
            raise TimeBudgetExceededError(
                f"Time budget exceeded: {elapsed:.0f}s (max {self.max_duration_seconds:.0f}s)",
                context={
                    "elapsed_seconds": round(elapsed, 1),
                    "max_duration_seconds": self.max_duration_seconds,
                }
            )

    def remaining_errors(self) -> int:
        return max(0, self.max_total_errors - self.total_errors)
