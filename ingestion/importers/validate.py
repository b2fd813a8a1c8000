"""
Validate phase: post-import sanity checks over the stored data.
"""

import enum
from dataclasses import dataclass
from typing import List

from core.config import Settings
from core.exceptions import ImportValidationError
from ingestion.importers.base import PhaseImporter, PhaseStats
from ingestion.loaders.repository import ValidationSnapshot
from ingestion.phases import ImportPhase
import logging

logger = logging.getLogger(__name__)

HOUSE_SEATS_RANGE = (400, 450)
SENATE_SEATS_RANGE = (95, 105)
MAJOR_PARTIES = ("D", "R")
MAJOR_PARTY_MIN_MEMBERS = 500
INTEGRITY_THRESHOLD = 0.95


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ValidationCheck:
    name: str
    passed: bool
    severity: Severity
    message: str


def _ratio(part: int, whole: int) -> float:
    return part / whole if whole > 0 else 1.0


def evaluate_snapshot(snapshot: ValidationSnapshot, config: Settings) -> List[ValidationCheck]:
    """
    Turn aggregate counts into pass/fail checks.

    Only entity counts below 80% of the estimate are errors; everything
    else is reported as a warning.
    """
    checks: List[ValidationCheck] = []

    def add(name: str, passed: bool, severity: Severity, message: str):
        checks.append(ValidationCheck(name, passed, severity, message))

    # Counts
    minimum = int(config.ESTIMATED_LEGISLATORS * 0.8)
    add(
        "legislator_count",
        snapshot.legislator_count >= minimum,
        Severity.ERROR,
        f"{snapshot.legislator_count} legislators (minimum {minimum})",
    )
    minimum = int(config.ESTIMATED_COMMITTEES * 0.8)
    add(
        "committee_count",
        snapshot.committee_count >= minimum,
        Severity.ERROR,
        f"{snapshot.committee_count} committees (minimum {minimum})",
    )

    for congress in config.TARGET_CONGRESSES:
        count = snapshot.bill_counts_by_congress.get(congress, 0)
        minimum = int(config.ESTIMATED_BILLS.get(congress, 0) * 0.8)
        add(
            f"bill_count_{congress}",
            count >= minimum,
            Severity.ERROR,
            f"{count} bills in congress {congress} (minimum {minimum})",
        )
    minimum = int(config.estimated_bills_total() * 0.8)
    add(
        "bill_count_total",
        snapshot.total_bills >= minimum,
        Severity.ERROR,
        f"{snapshot.total_bills} bills in total (minimum {minimum})",
    )

    for congress in config.TARGET_CONGRESSES:
        count = snapshot.roll_call_counts_by_congress.get(congress, 0)
        minimum = int(config.ESTIMATED_VOTES.get(congress, 0) * 0.5)
        add(
            f"roll_call_count_{congress}",
            count >= minimum,
            Severity.WARNING,
            f"{count} roll calls in congress {congress} (minimum {minimum})",
        )
    add(
        "vote_positions_present",
        snapshot.vote_position_count > 0,
        Severity.WARNING,
        f"{snapshot.vote_position_count} vote positions",
    )

    # Referential integrity
    add(
        "committee_hierarchy",
        snapshot.orphaned_subcommittees == 0,
        Severity.WARNING,
        f"{snapshot.orphaned_subcommittees} subcommittees reference a missing parent",
    )
    linked = snapshot.vote_position_count - snapshot.positions_with_missing_legislator
    ratio = _ratio(linked, snapshot.vote_position_count)
    add(
        "vote_legislator_integrity",
        ratio >= INTEGRITY_THRESHOLD,
        Severity.WARNING,
        f"{ratio:.1%} of vote positions reference a stored legislator",
    )
    add(
        "vote_roll_call_integrity",
        snapshot.positions_with_missing_roll_call == 0,
        Severity.ERROR,
        f"{snapshot.positions_with_missing_roll_call} vote positions reference a missing roll call",
    )

    # Completeness
    add(
        "bill_titles",
        snapshot.bills_without_title == 0,
        Severity.WARNING,
        f"{snapshot.bills_without_title} bills without a title",
    )
    add(
        "bill_introduced_dates",
        snapshot.bills_without_introduced_date == 0,
        Severity.WARNING,
        f"{snapshot.bills_without_introduced_date} bills without an introduced date",
    )
    add(
        "legislator_names",
        snapshot.legislators_without_name == 0,
        Severity.WARNING,
        f"{snapshot.legislators_without_name} legislators without first or last name",
    )
    add(
        "legislator_states",
        snapshot.legislators_without_state == 0,
        Severity.WARNING,
        f"{snapshot.legislators_without_state} legislators without a state",
    )

    # Composition of the current Congress
    low, high = HOUSE_SEATS_RANGE
    add(
        "house_size",
        low <= snapshot.current_house_members <= high,
        Severity.WARNING,
        f"{snapshot.current_house_members} current House members (expected {low}-{high})",
    )
    low, high = SENATE_SEATS_RANGE
    add(
        "senate_size",
        low <= snapshot.current_senate_members <= high,
        Severity.WARNING,
        f"{snapshot.current_senate_members} current senators (expected {low}-{high})",
    )
    major = sum(snapshot.current_party_counts.get(p, 0) for p in MAJOR_PARTIES)
    both_present = all(snapshot.current_party_counts.get(p, 0) > 0 for p in MAJOR_PARTIES)
    add(
        "party_distribution",
        both_present and major > MAJOR_PARTY_MIN_MEMBERS,
        Severity.WARNING,
        f"{major} current members in the major parties {dict(snapshot.current_party_counts)}",
    )

    # Freshness
    ratio = _ratio(snapshot.bills_with_sync_timestamp, snapshot.total_bills)
    add(
        "bill_sync_timestamps",
        ratio >= INTEGRITY_THRESHOLD,
        Severity.WARNING,
        f"{ratio:.1%} of bills carry a sync timestamp",
    )

    return checks


class ValidateImporter(PhaseImporter):
    """Evaluates the imported data; writes nothing but the checkpoint."""

    phase = ImportPhase.VALIDATE

    async def run(self) -> PhaseStats:
        stats = self.new_stats()
        self.check_budget()

        snapshot = await self.repository.collect_validation_snapshot(self.settings.TARGET_CONGRESSES)
        checks = evaluate_snapshot(snapshot, self.settings)

        failed_errors = [c for c in checks if not c.passed and c.severity == Severity.ERROR]
        failed_warnings = [c for c in checks if not c.passed and c.severity == Severity.WARNING]

        for check in checks:
            if check.passed:
                logger.info(f"[validate] PASS {check.name}: {check.message}")
            elif check.severity == Severity.ERROR:
                logger.error(f"[validate] FAIL {check.name}: {check.message}")
            else:
                logger.warning(f"[validate] WARN {check.name}: {check.message}")

        stats.processed = len(checks)
        stats.errors = len(failed_errors)
        stats.bump("passed", sum(1 for c in checks if c.passed))
        stats.bump("warnings", len(failed_warnings))
        self.finish(stats, total_expected=len(checks))

        if failed_errors and not self.ctx.dry_run:
            raise ImportValidationError(
                f"Validation failed with {len(failed_errors)} errors",
                context={"failed_checks": [c.name for c in failed_errors]}
            )
        if failed_errors:
            logger.info(f"Dry run: ignoring {len(failed_errors)} failed validation checks")
        return stats
