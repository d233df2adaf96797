"""
Net balance calculation.

Sign conventions used everywhere in this module:

- a positive balance means the participant is owed money, a negative one
  means they owe money;
- an expense share moves its participant by ``paid_amount - owed_amount``;
- a transfer raises the payer's balance and lowers the payee's by its
  amount, so paying off a debt brings both sides back towards zero.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Union

from splitledger.core.errors import InvariantViolation
from splitledger.core.utils import EPSILON, ZERO, qround
from splitledger.schemas.ledger import (
    ExpenseShare,
    NetBalance,
    SimplifiedTransaction,
    Transfer,
)
from splitledger.services.debt_simplifier import balance_amount, simplify

logger = logging.getLogger(__name__)


def _fold(participants: Iterable[int], shares: Iterable[ExpenseShare], transfers: Iterable[Transfer]) -> Dict[int, Decimal]:
    balances = {uid: ZERO for uid in participants}

    for share in shares:
        # rows of removed members or outside the scope
        if share.user_id not in balances:
            continue
        balances[share.user_id] = qround(balances[share.user_id] + share.contribution)

    for t in transfers:
        if t.from_user_id not in balances or t.to_user_id not in balances:
            continue
        if t.from_user_id == t.to_user_id or t.amount <= 0:
            continue
        balances[t.from_user_id] = qround(balances[t.from_user_id] + t.amount)
        balances[t.to_user_id] = qround(balances[t.to_user_id] - t.amount)

    return balances


def verify_zero_sum(balances: Mapping[int, Union[NetBalance, Decimal]], strict: bool = False) -> bool:
    total = sum((balance_amount(v) for v in balances.values()), ZERO)

    if abs(total) <= EPSILON:
        return True

    violation = InvariantViolation(qround(total), len(balances))
    if strict:
        raise violation

    logger.error("Ledger invariant violated: %s", violation)
    return False


def compute_net_balances(participants, shares, transfers) -> Dict[int, NetBalance]:
    """
    Fold raw rows into one signed balance per participant.

    Every participant appears in the result, including ones with no
    activity. Shares and transfers that touch anyone outside
    ``participants`` are ignored. A non-zero total is logged and the
    best-effort result is still returned.
    """
    balances = _fold(participants, shares, transfers)
    verify_zero_sum(balances)

    return {
        uid: NetBalance(user_id=uid, amount=amount)
        for uid, amount in balances.items()
    }


def _group_by_expense(shares: Iterable[ExpenseShare]) -> Dict[int, List[ExpenseShare]]:
    grouped: Dict[int, List[ExpenseShare]] = {}
    for share in shares:
        grouped.setdefault(share.expense_id, []).append(share)
    return grouped


def attribute_expense(shares: Iterable[ExpenseShare]) -> List[SimplifiedTransaction]:
    """Who pays whom for a single expense, from its participants' contributions."""
    contributions: Dict[int, Decimal] = {}
    for share in shares:
        contributions[share.user_id] = qround(
            contributions.get(share.user_id, ZERO) + share.contribution
        )
    return simplify(contributions).transactions


def compute_pair_balances(user_a: int, user_b: int, shares, transfers) -> Dict[int, NetBalance]:
    """
    Net balances of a two-person scope.

    Expenses with other participants are first attributed per expense, and
    only the part flowing between the pair is kept, so the two balances
    always mirror each other.
    """
    pair = {user_a, user_b}
    attributed: List[ExpenseShare] = []

    for expense_id, rows in _group_by_expense(shares).items():
        for tx in attribute_expense(rows):
            if {tx.from_user_id, tx.to_user_id} != pair:
                continue
            attributed.append(ExpenseShare(
                expense_id=expense_id,
                user_id=tx.to_user_id,
                paid_amount=tx.amount,
                owed_amount=ZERO,
            ))
            attributed.append(ExpenseShare(
                expense_id=expense_id,
                user_id=tx.from_user_id,
                paid_amount=ZERO,
                owed_amount=tx.amount,
            ))

    return compute_net_balances(pair, attributed, transfers)


def compute_pairwise_balances(user_id: int, shares, transfers, friend_ids: Optional[Iterable[int]] = None) -> Dict[int, Decimal]:
    """
    Balance of ``user_id`` against each counterparty.

    Positive: the counterparty owes ``user_id``. Negative: ``user_id``
    owes the counterparty. With ``friend_ids`` only those counterparties
    are kept.
    """
    balances: Dict[int, Decimal] = {}
    wanted = None if friend_ids is None else set(friend_ids)

    def move(other: int, delta: Decimal):
        if wanted is not None and other not in wanted:
            return
        balances[other] = qround(balances.get(other, ZERO) + delta)

    for rows in _group_by_expense(shares).values():
        for tx in attribute_expense(rows):
            if tx.to_user_id == user_id:
                move(tx.from_user_id, tx.amount)
            elif tx.from_user_id == user_id:
                move(tx.to_user_id, -tx.amount)

    for t in transfers:
        if t.from_user_id == t.to_user_id or t.amount <= 0:
            continue
        if t.from_user_id == user_id:
            move(t.to_user_id, t.amount)
        elif t.to_user_id == user_id:
            move(t.from_user_id, -t.amount)

    return balances


def is_settled(balances: Mapping[int, Union[NetBalance, Decimal]], tolerance: Decimal = EPSILON) -> bool:
    """A scope is settled when every balance is within ``tolerance`` of zero."""
    return all(abs(balance_amount(v)) <= tolerance for v in balances.values())
