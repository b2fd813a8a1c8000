from sqlalchemy import (
    Column, String, Integer, BigInteger, Boolean, Text, Date, DateTime,
    Enum, ForeignKey, Index
)
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import (
    Base, Chamber, VoteResult, VoteType, VoteCategory, VotePositionValue
)


class RollCallVote(Base):
    """
    A recorded roll call. Id format: "h{congress}-{session}-{roll}".
    bill_id is nulled when the referenced bill was not imported.
    """
    __tablename__ = "roll_call_votes"

    id = Column(String(32), primary_key=True)
    bill_id = Column(String(32), ForeignKey("bills.id"), nullable=True, index=True)

    chamber = Column(Enum(Chamber), nullable=False)
    congress_number = Column(Integer, nullable=False, index=True)
    session = Column(Integer, nullable=False)
    roll_number = Column(Integer, nullable=False)

    vote_type = Column(Enum(VoteType), nullable=False, default=VoteType.ROLL_CALL)
    vote_category = Column(Enum(VoteCategory), nullable=False, default=VoteCategory.UNKNOWN)
    question = Column(Text, nullable=False)
    result = Column(Enum(VoteResult), nullable=False, default=VoteResult.UNKNOWN)

    yeas = Column(Integer, nullable=False, default=0)
    nays = Column(Integer, nullable=False, default=0)
    present = Column(Integer, nullable=False, default=0)
    not_voting = Column(Integer, nullable=False, default=0)

    vote_date = Column(Date, nullable=True)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    positions = relationship("VotePosition", back_populates="roll_call")

    __table_args__ = (
        Index("idx_roll_call_natural_key", "chamber", "congress_number", "session", "roll_number", unique=True),
    )


class VotePosition(Base):
    """One legislator's position on one roll call."""
    __tablename__ = "vote_positions"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    roll_call_id = Column(String(32), ForeignKey("roll_call_votes.id"), nullable=False)
    legislator_id = Column(String(16), ForeignKey("legislators.id"), nullable=False, index=True)

    position = Column(Enum(VotePositionValue), nullable=False)
    is_proxy = Column(Boolean, nullable=False, default=False)
    paired_with = Column(String(16), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    roll_call = relationship("RollCallVote", back_populates="positions")

    __table_args__ = (
        Index("idx_vote_position_roll_call_legislator", "roll_call_id", "legislator_id", unique=True),
    )
