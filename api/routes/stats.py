"""
Entity count statistics endpoint
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db
from core.config import settings
from core.exceptions import DatabaseError
from ingestion.loaders.postgres_loader import PostgresLegislativeRepository
from schemas.api import ErrorResponse, StatsResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Get counts of imported legislative data.

    Returns:
    - Totals per entity
    - Bills and roll calls per target congress
    - Composition of the current Congress
    """
    request_id = getattr(request.state, "request_id", None)

    repository = PostgresLegislativeRepository(db)
    try:
        snapshot = await repository.collect_validation_snapshot(settings.TARGET_CONGRESSES)
    except DatabaseError as e:
        logger.error(f"[{request_id}] Stats query failed: {e}")
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error="database_unavailable",
                detail=e.message,
                request_id=request_id,
            ).model_dump(mode="json"),
        )

    logger.info(
        f"[{request_id}] Stats: {snapshot.legislator_count} legislators, "
        f"{snapshot.total_bills} bills, {snapshot.vote_position_count} vote positions"
    )

    return StatsResponse(
        timestamp=datetime.utcnow(),
        legislators=snapshot.legislator_count,
        committees=snapshot.committee_count,
        bills=snapshot.total_bills,
        bills_by_congress=snapshot.bill_counts_by_congress,
        roll_calls_by_congress=snapshot.roll_call_counts_by_congress,
        vote_positions=snapshot.vote_position_count,
        current_house_members=snapshot.current_house_members,
        current_senate_members=snapshot.current_senate_members,
        current_party_counts=snapshot.current_party_counts,
        request_id=request_id,
    )
