from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from splitledger.core.dependencies import get_ledger_reader
from splitledger.core.errors import InvalidScopeError
from splitledger.schemas.balances import BalanceSummaryOut, FriendBalanceOut, GroupDebtsOut
from splitledger.services.ledger_reader import NON_GROUP, LedgerReader
from splitledger.services.balance_service import (
    get_group_simplified_debts,
    get_pair_balance,
    get_user_balance_summary,
)

# Callers are authorized upstream; these routes only compute.
router = APIRouter()


def parse_group_filter(group: Optional[str]):
    if group is None or group == NON_GROUP:
        return group
    if group.isdigit():
        return int(group)
    raise InvalidScopeError(f"group must be a group id or '{NON_GROUP}', got {group!r}")


@router.get("/users/{user_id}/friends/{friend_id}", response_model=FriendBalanceOut)
async def friend_balance(
    user_id: int,
    friend_id: int,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return await get_pair_balance(reader, user_id, friend_id)


@router.get("/users/{user_id}/summary", response_model=BalanceSummaryOut)
async def balance_summary(
    user_id: int,
    group: Optional[str] = None,
    friend_id: Optional[List[int]] = Query(None),
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return await get_user_balance_summary(
        reader, user_id, group_id=parse_group_filter(group), friend_ids=friend_id
    )


@router.get("/groups/{group_id}/simplified-debts", response_model=GroupDebtsOut)
async def group_simplified_debts(
    group_id: int,
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return await get_group_simplified_debts(reader, group_id)
