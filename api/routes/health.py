"""
Health check endpoint with database and import checkpoint status
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_checkpoint_manager, get_db
from ingestion.checkpoint import CheckpointManager
from schemas.api import CheckpointInfo, HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    checkpoints: CheckpointManager = Depends(get_checkpoint_manager),
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - State of the import checkpoint (if any)
    """
    db_connected = False
    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {str(e)}")

    checkpoint = None
    state = checkpoints.get_state()
    if state is not None:
        checkpoint = CheckpointInfo(
            run_id=state.run_id,
            phase=state.phase.value,
            completed_phases=[p.value for p in state.completed_phases],
            offset=state.offset,
            records_processed=state.records_processed,
            total_expected=state.total_expected,
            last_error=state.last_error,
            updated_at=state.timestamp,
        )

    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        checkpoint=checkpoint,
        request_id=getattr(request.state, "request_id", None),
    )
