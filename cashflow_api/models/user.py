import uuid
from sqlalchemy import Column, String, DateTime, Uuid, func
from sqlalchemy.orm import relationship

from cashflow_api.db.base import Base


class User(Base):
    """An account that owns cashflow records."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Case-sensitive, unique
    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    cashflows = relationship("Cashflow", back_populates="owner", cascade="all, delete-orphan")
