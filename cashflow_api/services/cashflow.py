"""
Cashflow CRUD scoped to a single user.

Every query filters on ``user_id`` so one user can never read or change another
user's records; a foreign id behaves exactly like a missing one.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cashflow_api.models.cashflow import Cashflow

CENTS = Decimal("0.01")


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store timestamps as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class CashflowPage:
    items: List[Cashflow]
    total: int
    sum: Decimal


class CashflowService:
    def __init__(self, db: Session, user_id: uuid.UUID):
        self.db = db
        self.user_id = user_id

    def _query(self):
        return self.db.query(Cashflow).filter(Cashflow.user_id == self.user_id)

    def list(self, page: int = 1, limit: int = 10) -> CashflowPage:
        """One page of records (newest first) plus the count and sum over all of them."""
        total, value_sum = (
            self.db.query(func.count(Cashflow.id), func.coalesce(func.sum(Cashflow.value), 0))
            .filter(Cashflow.user_id == self.user_id)
            .one()
        )
        items = (
            self._query()
            .order_by(Cashflow.time.desc(), Cashflow.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return CashflowPage(items=items, total=total, sum=Decimal(str(value_sum)))

    def get(self, cashflow_id: uuid.UUID) -> Optional[Cashflow]:
        return self._query().filter(Cashflow.id == cashflow_id).first()

    def add(self, amount: Decimal, description: Optional[str] = None, date: Optional[datetime] = None) -> Cashflow:
        cashflow = Cashflow(
            user_id=self.user_id,
            value=amount.quantize(CENTS),
            description=description,
            time=to_naive_utc(date) or datetime.now(timezone.utc).replace(tzinfo=None),
        )
        self.db.add(cashflow)
        self.db.commit()
        self.db.refresh(cashflow)
        return cashflow

    def update(
        self,
        cashflow_id: uuid.UUID,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> Optional[Cashflow]:
        """Apply the given fields; returns None when the record does not exist."""
        cashflow = self.get(cashflow_id)
        if cashflow is None:
            return None

        if amount is not None:
            cashflow.value = amount.quantize(CENTS)
        if description is not None:
            cashflow.description = description
        if date is not None:
            cashflow.time = to_naive_utc(date)

        self.db.commit()
        self.db.refresh(cashflow)
        return cashflow

    def delete(self, cashflow_id: uuid.UUID) -> bool:
        cashflow = self.get(cashflow_id)
        if cashflow is None:
            return False
        self.db.delete(cashflow)
        self.db.commit()
        return True
