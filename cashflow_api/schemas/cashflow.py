"""
Cashflow request/response schemas.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MAX_AMOUNT = Decimal("999999.99")


class CashflowCreate(BaseModel):
    amount: Decimal = Field(ge=-MAX_AMOUNT, le=MAX_AMOUNT, allow_inf_nan=False)
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[datetime] = None


class CashflowUpdate(BaseModel):
    """Partial update; omitted fields keep their stored values."""
    amount: Optional[Decimal] = Field(default=None, ge=-MAX_AMOUNT, le=MAX_AMOUNT, allow_inf_nan=False)
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[datetime] = None


class CashflowResponse(BaseModel):
    id: UUID
    value: float
    description: Optional[str]
    time: datetime

    model_config = ConfigDict(from_attributes=True)


class CashflowList(BaseModel):
    cashflows: List[CashflowResponse]
    sum: float
    count: int
