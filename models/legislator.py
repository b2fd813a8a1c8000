from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, Index
from datetime import datetime
from models.base import Base, Chamber, Party


class Legislator(Base):
    """
    A member of Congress, keyed by bioguide id.

    Current members are imported with in_office=True; historical members
    from the non-current member listing are stored with in_office=False.
    """
    __tablename__ = "legislators"

    id = Column(String(16), primary_key=True)  # Bioguide id, e.g. "P000197"

    first_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)

    party = Column(Enum(Party), nullable=False, default=Party.O, index=True)
    chamber = Column(Enum(Chamber), nullable=False, index=True)
    state = Column(String(2), nullable=False, index=True)
    district = Column(Integer, nullable=True)
    in_office = Column(Boolean, nullable=False, default=True, index=True)

    # Sync tracking
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_legislator_chamber_in_office", "chamber", "in_office"),
    )
