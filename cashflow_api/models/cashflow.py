"""
Cashflow model: a single income (positive) or expense (negative) entry.
"""
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Uuid, func, Index
from sqlalchemy.orm import relationship

from cashflow_api.db.base import Base


class Cashflow(Base):
    __tablename__ = "cashflows"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    value = Column(Numeric(10, 2), nullable=False)
    description = Column(String(500), nullable=True)
    time = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", back_populates="cashflows")

    __table_args__ = (
        Index('idx_cashflows_user_time', 'user_id', 'time'),
    )
