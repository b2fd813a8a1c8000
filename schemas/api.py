"""
Pydantic schemas for the status API responses
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict
from datetime import datetime


# ============================================================================
# Health Check Schemas
# ============================================================================

class CheckpointInfo(BaseModel):
    """Import checkpoint summary for the health check"""
    run_id: str
    phase: str
    completed_phases: List[str] = Field(default_factory=list)
    offset: int = 0
    records_processed: int = 0
    total_expected: int = 0
    last_error: Optional[str] = None
    updated_at: Optional[datetime] = None


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    checkpoint: Optional[CheckpointInfo] = None
    request_id: Optional[str] = None
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"

        checkpoint = values.get("checkpoint")
        if checkpoint is not None and checkpoint.last_error:
            return "degraded"
        return "healthy"

    class Config:
        json_schema_extra = {
            "example": {
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "checkpoint": {
                    "run_id": "import-lrx4k2b0-a1b2c3",
                    "phase": "bills",
                    "completed_phases": ["legislators", "committees"],
                    "offset": 1200,
                    "records_processed": 1200,
                    "total_expected": 20000,
                },
                "status": "healthy",
            }
        }


# ============================================================================
# Import Status Schemas
# ============================================================================

class PhaseStatus(BaseModel):
    phase: str
    status: str = Field(..., description="complete, in_progress or pending")


class ImportStatusResponse(BaseModel):
    """Progress of the import recorded in the checkpoint file"""
    active: bool
    run_id: Optional[str] = None
    current_phase: Optional[str] = None
    progress: int = 0
    elapsed: Optional[str] = None
    completed_phases: int = 0
    total_phases: int = 0
    phases: List[PhaseStatus] = Field(default_factory=list)
    records_processed: int = 0
    total_expected: int = 0
    congress: Optional[int] = None
    bill_type: Optional[str] = None
    offset: int = 0
    last_error: Optional[str] = None
    request_id: Optional[str] = None


# ============================================================================
# Statistics Schemas
# ============================================================================

class StatsResponse(BaseModel):
    """Entity counts in the legislative tables"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    legislators: int
    committees: int
    bills: int
    bills_by_congress: Dict[int, int] = Field(default_factory=dict)
    roll_calls_by_congress: Dict[int, int] = Field(default_factory=dict)
    vote_positions: int
    current_house_members: int = 0
    current_senate_members: int = 0
    current_party_counts: Dict[str, int] = Field(default_factory=dict)
    request_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
