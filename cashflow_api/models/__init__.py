"""
SQLAlchemy models for the Cashflow API.
"""
from cashflow_api.models.user import User
from cashflow_api.models.cashflow import Cashflow
from cashflow_api.models.token_blacklist import TokenBlacklist


__all__ = [
    "User",
    "Cashflow",
    "TokenBlacklist",
]
