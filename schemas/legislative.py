"""
Pydantic schemas for legislative records produced by the transform layer
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import date
from models.base import (
    Chamber,
    Party,
    CommitteeType,
    BillType,
    BillStatus,
    VoteResult,
    VoteType,
    VoteCategory,
    VotePositionValue,
)


class LegislatorCreate(BaseModel):
    """
    Schema for upserting a legislator.

    Ensures:
    - Bioguide id is present
    - State is a two-letter code (XX when unknown)
    - Names are stripped
    """

    id: str = Field(..., min_length=1, max_length=16)
    first_name: str = Field(..., max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: str = Field(..., max_length=100)
    full_name: str = Field(..., max_length=255)

    party: Party = Party.O
    chamber: Chamber
    state: str = Field(..., min_length=2, max_length=2)
    district: Optional[int] = Field(None, ge=0)
    in_office: bool = True

    @validator("first_name", "last_name", "full_name", pre=True)
    def clean_name(cls, v):
        return (v or "").strip()

    @validator("middle_name", pre=True)
    def clean_middle_name(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @validator("state")
    def upper_state(cls, v):
        return v.upper()

    class Config:
        use_enum_values = True


class CommitteeCreate(BaseModel):
    """Schema for upserting a committee or subcommittee"""

    id: str = Field(..., min_length=1, max_length=16)
    name: str = Field(..., min_length=1, max_length=500)
    chamber: Chamber
    committee_type: CommitteeType = CommitteeType.STANDING
    parent_id: Optional[str] = Field(None, max_length=16)

    @validator("name")
    def clean_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Committee name cannot be empty")
        return v

    class Config:
        use_enum_values = True


class BillCreate(BaseModel):
    """Schema for upserting a bill. id is "{type}-{number}-{congress}"."""

    id: str = Field(..., min_length=1, max_length=32)
    congress_number: int = Field(..., ge=1)
    bill_type: BillType
    bill_number: int = Field(..., ge=1)

    title: Optional[str] = None
    status: BillStatus = BillStatus.INTRODUCED
    origin_chamber: Optional[Chamber] = None

    introduced_date: Optional[date] = None
    last_action_date: Optional[date] = None
    last_action_text: Optional[str] = None

    @validator("title", pre=True)
    def clean_title(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    class Config:
        use_enum_values = True


class RollCallVoteCreate(BaseModel):
    """Schema for upserting a roll call vote"""

    id: str = Field(..., min_length=1, max_length=32)
    bill_id: Optional[str] = Field(None, max_length=32)

    chamber: Chamber
    congress_number: int = Field(..., ge=1)
    session: int = Field(..., ge=1)
    roll_number: int = Field(..., ge=1)

    vote_type: VoteType = VoteType.ROLL_CALL
    vote_category: VoteCategory = VoteCategory.UNKNOWN
    question: str = ""
    result: VoteResult = VoteResult.UNKNOWN

    yeas: int = Field(0, ge=0)
    nays: int = Field(0, ge=0)
    present: int = Field(0, ge=0)
    not_voting: int = Field(0, ge=0)

    vote_date: Optional[date] = None

    class Config:
        use_enum_values = True


class VotePositionCreate(BaseModel):
    """One member position; unique on (roll_call_id, legislator_id)"""

    roll_call_id: str = Field(..., min_length=1, max_length=32)
    legislator_id: str = Field(..., min_length=1, max_length=16)
    position: VotePositionValue
    is_proxy: bool = False
    paired_with: Optional[str] = Field(None, max_length=16)

    class Config:
        use_enum_values = True
