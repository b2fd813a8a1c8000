from sqlalchemy import Column, String, Integer, Text, Date, DateTime, Enum, Index
from datetime import datetime
from models.base import Base, BillType, BillStatus, Chamber


class Bill(Base):
    """
    A bill or resolution. The id is deterministic: "{type}-{number}-{congress}"
    (e.g. "hr-1234-118"), so repeated imports upsert the same row.
    """
    __tablename__ = "bills"

    id = Column(String(32), primary_key=True)
    congress_number = Column(Integer, nullable=False, index=True)
    bill_type = Column(Enum(BillType), nullable=False)
    bill_number = Column(Integer, nullable=False)

    title = Column(Text, nullable=True)
    status = Column(Enum(BillStatus), nullable=False, default=BillStatus.INTRODUCED, index=True)
    origin_chamber = Column(Enum(Chamber), nullable=True)

    introduced_date = Column(Date, nullable=True)
    last_action_date = Column(Date, nullable=True)
    last_action_text = Column(Text, nullable=True)

    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_bill_congress_type_number", "congress_number", "bill_type", "bill_number", unique=True),
    )
