from sqlalchemy import Column, String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, Chamber, CommitteeType


class Committee(Base):
    """
    Congressional committee or subcommittee, keyed by system code.

    parent_id is nullable: a subcommittee whose parent has not been stored
    yet is written without the link and re-linked in a later pass.
    """
    __tablename__ = "committees"

    id = Column(String(16), primary_key=True)  # System code, e.g. "hsag00"
    name = Column(String(500), nullable=False)
    chamber = Column(Enum(Chamber), nullable=False, index=True)
    committee_type = Column(Enum(CommitteeType), nullable=False, default=CommitteeType.STANDING)
    parent_id = Column(String(16), ForeignKey("committees.id"), nullable=True, index=True)

    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    parent = relationship("Committee", remote_side=[id], backref="subcommittees")
