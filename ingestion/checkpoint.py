"""
Checkpoint persistence for resumable bulk imports.

One JSON document describes the active run: the current phase, the cursor
inside it (congress, bill type, offset, phase metadata), progress counters,
completed phases and the last error.

Files (inside the configured directory):
    import-checkpoint.json          primary
    import-checkpoint.backup.json   previous generation of the primary

Writes go to a temp file, the old primary is copied to the backup, then the
temp file is renamed over the primary. Loading falls back to the backup when
the primary cannot be parsed or validated.

On-disk keys are camelCase. Version 2 files carry typed metadata
discriminated by `kind`; unversioned (legacy) files are migrated on load.
"""

import json
import os
import random
import shutil
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError
from pydantic.alias_generators import to_camel

from core.exceptions import (
    CheckpointAlreadyInitializedError,
    CheckpointError,
    CheckpointNotInitializedError,
    PhaseAdvanceError,
)
from core.logging import format_duration
from ingestion.phases import PHASE_ORDER, ImportPhase, next_phase
import logging

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = 2
MAIN_CHECKPOINT = "import-checkpoint.json"
BACKUP_CHECKPOINT = "import-checkpoint.backup.json"

_BASE36 = string.digits + string.ascii_lowercase


# ============================================================================
# State schema
# ============================================================================

class _CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class LegislatorsPhaseMeta(_CamelModel):
    """Which member listing the offset belongs to"""
    kind: Literal["legislators"] = "legislators"
    current_member: bool = True


class VotesPhaseMeta(_CamelModel):
    """Resume combination for the votes phase"""
    kind: Literal["votes"] = "votes"
    chamber: str = "house"
    session: int = 1


class PhaseSummaryMeta(_CamelModel):
    """Final per-phase counters (created, updated, skipped, errors, duration_ms, ...)"""
    kind: Literal["summary"] = "summary"
    counts: Dict[str, int] = Field(default_factory=dict)


PhaseMetadata = Annotated[
    Union[LegislatorsPhaseMeta, VotesPhaseMeta, PhaseSummaryMeta],
    Field(discriminator="kind")
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckpointState(_CamelModel):
    version: int = CHECKPOINT_VERSION
    run_id: str
    phase: ImportPhase = ImportPhase.LEGISLATORS
    congress: Optional[int] = None
    bill_type: Optional[str] = None
    offset: int = Field(0, ge=0)
    records_processed: int = Field(0, ge=0)
    total_expected: int = Field(0, ge=0)
    completed_phases: List[ImportPhase] = Field(default_factory=list)
    last_error: Optional[str] = None
    metadata: Optional[PhaseMetadata] = None
    timestamp: datetime = Field(default_factory=_utcnow)
    import_started_at: datetime = Field(default_factory=_utcnow)


_UPDATABLE_FIELDS = {
    "phase",
    "congress",
    "bill_type",
    "offset",
    "records_processed",
    "total_expected",
    "metadata",
    "last_error",
    "complete_phase",
}


# ============================================================================
# Legacy format
# ============================================================================

def migrate_legacy_metadata(metadata: Any) -> Optional[Dict[str, Any]]:
    """
    Map the untyped metadata of an unversioned checkpoint onto a tagged variant.

    {chamber, session}   -> votes
    all-integer map      -> summary
    empty or unknown     -> None
    """
    if not isinstance(metadata, dict) or not metadata:
        return None

    if "chamber" in metadata and "session" in metadata:
        return {"kind": "votes", "chamber": metadata["chamber"], "session": metadata["session"]}

    if all(isinstance(v, int) and not isinstance(v, bool) for v in metadata.values()):
        return {"kind": "summary", "counts": dict(metadata)}

    logger.warning(f"Dropping unrecognized legacy checkpoint metadata: {sorted(metadata)}")
    return None


def parse_checkpoint(raw: Any) -> CheckpointState:
    """
    Validate a decoded checkpoint document, migrating legacy files.

    Raises:
        ValueError: Unsupported version or malformed document
        ValidationError: Field-level validation failure
    """
    if not isinstance(raw, dict):
        raise ValueError("Checkpoint document must be a JSON object")

    version = raw.get("version", 1)
    if not isinstance(version, int) or version < 1:
        raise ValueError(f"Invalid checkpoint version: {version!r}")
    if version > CHECKPOINT_VERSION:
        raise ValueError(
            f"Checkpoint version {version} is newer than supported version {CHECKPOINT_VERSION}"
        )

    if version == 1:
        raw = dict(raw)
        raw["metadata"] = migrate_legacy_metadata(raw.get("metadata"))
        raw["version"] = CHECKPOINT_VERSION

    return CheckpointState.model_validate(raw)


def generate_run_id(now_ms: Optional[int] = None) -> str:
    """`import-{base36 epoch ms}-{6 random base36 chars}`"""
    value = now_ms if now_ms is not None else int(time.time() * 1000)
    digits = ""
    while True:
        value, remainder = divmod(value, 36)
        digits = _BASE36[remainder] + digits
        if value == 0:
            break
    suffix = "".join(random.choice(_BASE36) for _ in range(6))
    return f"import-{digits}-{suffix}"


# ============================================================================
# Manager
# ============================================================================

class CheckpointManager:
    """
    Owns the single active CheckpointState of a run.

    Constructed explicitly with its directory; one writer process per
    directory. A manager built with persist=False keeps state in memory only
    (dry runs) and never reads or writes files.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        persist: bool = True,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.directory = Path(directory)
        self.persist = persist
        self.checkpoint_path = self.directory / MAIN_CHECKPOINT
        self.backup_path = self.directory / BACKUP_CHECKPOINT
        self._now = now
        self._state: Optional[CheckpointState] = None
        self._dirty = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, phase: Optional[ImportPhase] = None, run_id: Optional[str] = None) -> CheckpointState:
        """Start a fresh run. Fails if a state is already held."""
        if self._state is not None:
            raise CheckpointAlreadyInitializedError(
                "Checkpoint already initialized; reset() before creating a new run",
                context={"run_id": self._state.run_id, "operation": "create"}
            )

        now = self._now()
        self._state = CheckpointState(
            run_id=run_id or generate_run_id(),
            phase=ImportPhase(phase) if phase else PHASE_ORDER[0],
            timestamp=now,
            import_started_at=now,
        )
        logger.info(f"Created checkpoint for run {self._state.run_id} at phase {self._state.phase.value}")
        self._save()
        return self._state

    def load(self) -> Optional[CheckpointState]:
        """Load the primary file, falling back to the backup. None when neither is usable."""
        if not self.persist:
            return self._state

        for path, label in ((self.checkpoint_path, "primary"), (self.backup_path, "backup")):
            if not path.exists():
                continue
            try:
                with open(path, "r", encoding="utf-8") as f:
                    state = parse_checkpoint(json.load(f))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Failed to load {label} checkpoint {path}: {e}")
                continue

            if label == "backup":
                logger.info("Loaded from backup checkpoint")
            self._state = state
            self._dirty = False
            return state

        return None

    def load_or_create(self, phase: Optional[ImportPhase] = None, run_id: Optional[str] = None) -> CheckpointState:
        existing = self.load()
        if existing is not None:
            return existing
        return self.create(phase=phase, run_id=run_id)

    def get_state(self) -> Optional[CheckpointState]:
        return self._state

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _require_state(self, operation: str) -> CheckpointState:
        if self._state is None:
            raise CheckpointNotInitializedError(
                "No checkpoint initialized. Call create() or load() first.",
                context={"operation": operation}
            )
        return self._state

    def update(self, **fields) -> CheckpointState:
        """
        Overwrite the given fields and persist.

        Accepted keys: phase, congress, bill_type, offset, records_processed,
        total_expected, metadata, last_error, complete_phase.

        metadata of the same kind as the current one is merged field by
        field; any other value (including None) replaces it.
        """
        state = self._require_state("update")

        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown checkpoint fields: {sorted(unknown)}")

        if "metadata" in fields:
            state.metadata = self._merge_metadata(state.metadata, fields.pop("metadata"))

        complete_phase = fields.pop("complete_phase", None)
        if complete_phase is not None:
            self._mark_completed(state, ImportPhase(complete_phase))

        if "phase" in fields:
            fields["phase"] = ImportPhase(fields["phase"])

        for name, value in fields.items():
            setattr(state, name, value)

        state.timestamp = self._now()
        self._dirty = True
        self._save()
        return state

    @staticmethod
    def _merge_metadata(current, incoming):
        if incoming is None or current is None or current.kind != incoming.kind:
            return incoming
        changes = {name: getattr(incoming, name) for name in incoming.model_fields_set}
        return current.model_copy(update=changes)

    @staticmethod
    def _mark_completed(state: CheckpointState, phase: ImportPhase):
        if phase not in state.completed_phases:
            state.completed_phases.append(phase)

    def advance_phase(self) -> CheckpointState:
        """
        Complete the current phase and move to the next one with a clean cursor.

        On the terminal phase this completes the run; the state stays on
        that phase. Advancing a completed run raises PhaseAdvanceError.
        """
        state = self._require_state("advance")

        if state.phase in state.completed_phases and next_phase(state.phase) is None:
            raise PhaseAdvanceError(
                f"Cannot advance from phase: {state.phase.value}",
                context={"phase": state.phase.value, "operation": "advance"}
            )

        self._mark_completed(state, state.phase)
        following = next_phase(state.phase)
        if following is not None:
            state.phase = following
        state.offset = 0
        state.records_processed = 0
        state.congress = None
        state.bill_type = None
        state.total_expected = 0
        state.metadata = None
        state.timestamp = self._now()

        if following is None:
            logger.info(f"Run {state.run_id} complete")
        else:
            logger.info(f"Advanced to phase {following.value}")

        self._dirty = True
        self._save()
        return state

    def complete_current_phase(self):
        """Mark the current phase completed without moving the cursor."""
        state = self._require_state("complete")
        if state.phase not in state.completed_phases:
            state.completed_phases.append(state.phase)
            state.timestamp = self._now()
            self._dirty = True
            self._save()

    def record_error(self, error: Union[str, BaseException]):
        """Persist `last_error`. Without a state this does nothing."""
        if self._state is None:
            return
        if isinstance(error, BaseException):
            message = getattr(error, "message", None) or str(error) or type(error).__name__
        else:
            message = error
        self._state.last_error = message
        self._state.timestamp = self._now()
        self._dirty = True
        self._save()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save(self):
        if self._state is None or not self.persist:
            self._dirty = False
            return

        self.directory.mkdir(parents=True, exist_ok=True)
        temp_path = self.checkpoint_path.with_name(self.checkpoint_path.name + ".tmp")
        payload = self._state.model_dump(mode="json", by_alias=True)

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)

            if self.checkpoint_path.exists():
                shutil.copyfile(self.checkpoint_path, self.backup_path)

            os.replace(temp_path, self.checkpoint_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise CheckpointError(
                f"Failed to write checkpoint to {self.checkpoint_path}",
                context={"phase": self._state.phase.value, "operation": "save"},
                original_exception=e
            )

        self._dirty = False

    def flush(self):
        """Write any unsaved state (signal handlers call this before exiting)."""
        if self._state is not None and self._dirty:
            self._save()

    def reset(self):
        """Delete both checkpoint files and forget the state."""
        if self.persist:
            for path in (self.checkpoint_path, self.backup_path):
                if path.exists():
                    path.unlink()
        self._state = None
        self._dirty = False
        logger.info("Checkpoint reset")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_phase_completed(self, phase: ImportPhase) -> bool:
        return self._state is not None and ImportPhase(phase) in self._state.completed_phases

    def is_complete(self) -> bool:
        if self._state is None:
            return False
        return all(phase in self._state.completed_phases for phase in PHASE_ORDER)

    def get_next_phase(self) -> Optional[ImportPhase]:
        """First phase not yet completed; the first phase without a state; None when done."""
        if self._state is None:
            return PHASE_ORDER[0]
        for phase in PHASE_ORDER:
            if phase not in self._state.completed_phases:
                return phase
        return None

    def get_progress_summary(self) -> Optional[Dict[str, Any]]:
        if self._state is None:
            return None

        state = self._state
        progress = (
            round(state.records_processed / state.total_expected * 100)
            if state.total_expected > 0 else 0
        )
        elapsed_seconds = max(0.0, (self._now() - state.import_started_at).total_seconds())
        return {
            "run_id": state.run_id,
            "phase": state.phase.value,
            "progress": progress,
            "elapsed": format_duration(elapsed_seconds),
            "completed_phases": len(state.completed_phases),
            "total_phases": len(PHASE_ORDER),
        }
