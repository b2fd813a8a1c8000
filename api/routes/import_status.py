"""
Import progress endpoint backed by the checkpoint file
"""

from fastapi import APIRouter, Depends, Request
from api.dependencies import get_checkpoint_manager
from ingestion.checkpoint import CheckpointManager
from ingestion.phases import PHASE_ORDER
from schemas.api import ImportStatusResponse, PhaseStatus
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Import"])


@router.get("/import/status", response_model=ImportStatusResponse)
async def import_status(
    request: Request,
    checkpoints: CheckpointManager = Depends(get_checkpoint_manager),
):
    """Phase table and progress summary of the current (or last) run."""
    request_id = getattr(request.state, "request_id", None)
    state = checkpoints.get_state()
    if state is None:
        return ImportStatusResponse(active=False, total_phases=len(PHASE_ORDER), request_id=request_id)

    phases = []
    for phase in PHASE_ORDER:
        if phase in state.completed_phases:
            status = "complete"
        elif phase == state.phase:
            status = "in_progress"
        else:
            status = "pending"
        phases.append(PhaseStatus(phase=phase.value, status=status))

    summary = checkpoints.get_progress_summary()
    return ImportStatusResponse(
        active=not checkpoints.is_complete(),
        run_id=summary["run_id"],
        current_phase=summary["phase"],
        progress=summary["progress"],
        elapsed=summary["elapsed"],
        completed_phases=summary["completed_phases"],
        total_phases=summary["total_phases"],
        phases=phases,
        records_processed=state.records_processed,
        total_expected=state.total_expected,
        congress=state.congress,
        bill_type=state.bill_type,
        offset=state.offset,
        last_error=state.last_error,
        request_id=request_id,
    )
