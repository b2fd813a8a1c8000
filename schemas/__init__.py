"""
Pydantic schemas for data validation and serialization.

Schemas:
    legislative: Create schemas produced by the transform layer and
        consumed by the repositories (legislators, committees, bills,
        roll call votes, vote positions)
    api: Status API response models

Usage:
    from schemas.legislative import BillCreate
    from schemas.api import HealthCheckResponse, StatsResponse
"""

__all__ = [
    "LegislatorCreate",
    "CommitteeCreate",
    "BillCreate",
    "RollCallVoteCreate",
    "VotePositionCreate",
    "HealthCheckResponse",
    "ImportStatusResponse",
    "StatsResponse",
]
