import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Dict, Iterable, Optional, TypeVar

from splitledger.core.config import settings
from splitledger.core.errors import DataAccessError
from splitledger.core.utils import EPSILON, ZERO, qround
from splitledger.schemas.balances import (
    BalanceSummaryOut,
    FriendBalanceOut,
    GroupDebtsOut,
    NetBalanceOut,
    SettlementSuggestion,
    UNKNOWN_NAME,
)
from splitledger.schemas.ledger import SimplifiedDebts
from splitledger.services.balance_calculator import (
    compute_net_balances,
    compute_pair_balances,
    compute_pairwise_balances,
)
from splitledger.services.debt_simplifier import simplify
from splitledger.services.ledger_reader import GroupFilter, LedgerReader

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def read_scope(read: Awaitable[T], timeout: Optional[float] = None) -> T:
    """
    Await a ledger read with a deadline.

    The result is only handed back once complete; a timed out or
    cancelled read never yields partial rows.
    """
    if timeout is None:
        timeout = settings.LEDGER_READ_TIMEOUT

    try:
        return await asyncio.wait_for(read, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("Ledger read timed out after %.1fs", timeout)
        raise DataAccessError(f"Ledger read timed out after {timeout}s") from e


def savings_message(debts: SimplifiedDebts) -> str:
    if debts.savings > 0:
        plural = "s" if debts.savings != 1 else ""
        return (
            f"Optimized {debts.original_count} transactions to {debts.optimized_count}, "
            f"saving {debts.savings} transaction{plural}!"
        )
    return "Already optimized!"


def describe_pair_balance(amount: Decimal, friend_label: str):
    """Direction and message for a balance seen from the current user's side."""
    if amount > EPSILON:
        return "owes_you", f"{friend_label} owes you {qround(amount)}"
    if amount < -EPSILON:
        return "you_owe", f"You owe {friend_label} {qround(-amount)}"
    return "settled", "You are all settled up"


async def read_names(reader: LedgerReader, user_ids: Iterable[int]) -> Dict[int, str]:
    """Display names for ``user_ids``; ids without a user row map to "Unknown"."""
    ids = set(user_ids)
    names = await read_scope(reader.get_user_names(ids))
    return {uid: names.get(uid) or UNKNOWN_NAME for uid in ids}


async def get_pair_balance(
    reader: LedgerReader,
    user_id: int,
    friend_id: int,
) -> FriendBalanceOut:
    snapshot = await read_scope(reader.read_pair(user_id, friend_id))
    balances = compute_pair_balances(user_id, friend_id, snapshot.shares, snapshot.transfers)
    names = await read_names(reader, [friend_id])

    # user's own balance in the pair: positive means the friend owes them
    amount = balances[user_id].amount
    direction, message = describe_pair_balance(amount, names[friend_id])

    return FriendBalanceOut(
        user_id=user_id,
        friend_id=friend_id,
        friend_name=names[friend_id],
        balance=float(amount) if direction != "settled" else 0.0,
        direction=direction,
        message=message,
    )


async def get_group_simplified_debts(reader: LedgerReader, group_id: int) -> GroupDebtsOut:
    snapshot = await read_scope(reader.read_group(group_id))
    balances = compute_net_balances(snapshot.participants, snapshot.shares, snapshot.transfers)
    debts = simplify(balances)
    names = await read_names(reader, balances)

    logger.info(
        "Group %s: %d members, %d suggested transactions",
        group_id, len(balances), debts.optimized_count,
    )

    return GroupDebtsOut(
        group_id=group_id,
        net=[
            NetBalanceOut(user_id=uid, name=names[uid], amount=float(balances[uid].amount))
            for uid in sorted(balances)
        ],
        transactions=[
            SettlementSuggestion(
                from_id=tx.from_user_id,
                from_name=names[tx.from_user_id],
                to_id=tx.to_user_id,
                to_name=names[tx.to_user_id],
                amount=float(tx.amount),
            )
            for tx in debts.transactions
        ],
        original_count=debts.original_count,
        optimized_count=debts.optimized_count,
        savings=debts.savings,
        message=savings_message(debts),
    )


async def get_user_balance_summary(
    reader: LedgerReader,
    user_id: int,
    group_id: GroupFilter = None,
    friend_ids: Optional[Iterable[int]] = None,
) -> BalanceSummaryOut:
    snapshot = await read_scope(reader.read_user(user_id, group_id))
    pairwise = compute_pairwise_balances(
        user_id, snapshot.shares, snapshot.transfers, friend_ids=friend_ids
    )

    you_owe = ZERO
    you_are_owed = ZERO
    open_balances = []

    for other in sorted(pairwise):
        amount = pairwise[other]
        if amount > EPSILON:
            you_are_owed = qround(you_are_owed + amount)
        elif amount < -EPSILON:
            you_owe = qround(you_owe - amount)
        else:
            continue
        open_balances.append((other, amount))

    names = await read_names(reader, [other for other, _ in open_balances])

    return BalanceSummaryOut(
        user_id=user_id,
        group=None if group_id is None else str(group_id),
        total=float(qround(you_are_owed - you_owe)),
        you_owe=float(you_owe),
        you_are_owed=float(you_are_owed),
        balances=[
            NetBalanceOut(user_id=other, name=names[other], amount=float(amount))
            for other, amount in open_balances
        ],
    )
