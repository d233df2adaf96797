from typing import Literal, Optional
from pydantic import BaseModel

UNKNOWN_NAME = "Unknown"

class NetBalanceOut(BaseModel):
    user_id: int
    name: str = UNKNOWN_NAME
    amount: float

class SettlementSuggestion(BaseModel):
    from_id: int
    from_name: str = UNKNOWN_NAME
    to_id: int
    to_name: str = UNKNOWN_NAME
    amount: float

class FriendBalanceOut(BaseModel):
    user_id: int
    friend_id: int
    friend_name: str = UNKNOWN_NAME
    # positive: friend owes user, negative: user owes friend
    balance: float
    direction: Literal["owes_you", "you_owe", "settled"]
    message: str

class GroupDebtsOut(BaseModel):
    group_id: int
    net: list[NetBalanceOut]
    transactions: list[SettlementSuggestion]
    original_count: int
    optimized_count: int
    savings: int
    message: str

class BalanceSummaryOut(BaseModel):
    user_id: int
    # None: every group, "non-group": outside any group, int: that group
    group: Optional[str] = None
    total: float
    you_owe: float
    you_are_owed: float
    balances: list[NetBalanceOut]
