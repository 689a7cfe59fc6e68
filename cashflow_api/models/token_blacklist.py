"""
Token blacklist model for the database revocation backend.
"""
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func

from cashflow_api.db.base import Base


class TokenBlacklist(Base):
    """
    Store revoked JWT tokens.

    Tokens are added here when a user logs out while REVOCATION_BACKEND=database.
    """
    __tablename__ = "token_blacklist"

    # SHA-256 of the token string
    token_hash = Column(String(64), primary_key=True)

    blacklisted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # When the token expires on its own; rows past this point can be purged
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_token_blacklist_expires', 'expires_at'),
    )
