from decimal import Decimal
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ExpenseShare(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    expense_id: int
    user_id: int
    paid_amount: Decimal = Decimal("0")
    owed_amount: Decimal = Decimal("0")

    @property
    def contribution(self) -> Decimal:
        # > 0: fronted more than their share, < 0: consumed more than they paid
        return self.paid_amount - self.owed_amount


class Transfer(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    from_user_id: int
    to_user_id: int
    amount: Decimal = Field(ge=0)
    group_id: Optional[int] = None


class LedgerSnapshot(BaseModel):
    """Raw rows relevant to one scope, as returned by a ledger reader."""

    model_config = ConfigDict(frozen=True)

    participants: FrozenSet[int]
    shares: Tuple[ExpenseShare, ...] = ()
    transfers: Tuple[Transfer, ...] = ()


class NetBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    amount: Decimal


class SimplifiedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_user_id: int
    to_user_id: int
    amount: Decimal

    @model_validator(mode="after")
    def _distinct_endpoints(self):
        if self.from_user_id == self.to_user_id:
            raise ValueError("A transaction cannot pay oneself")
        return self


class SimplifiedDebts(BaseModel):
    transactions: List[SimplifiedTransaction]
    original_count: int
    optimized_count: int
    savings: int
