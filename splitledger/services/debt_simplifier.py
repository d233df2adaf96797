import logging
from decimal import Decimal
from typing import List, Mapping, Union

from splitledger.core.utils import EPSILON, qround
from splitledger.schemas.ledger import NetBalance, SimplifiedDebts, SimplifiedTransaction

logger = logging.getLogger(__name__)


def balance_amount(value: Union[NetBalance, Decimal]) -> Decimal:
    if isinstance(value, NetBalance):
        return value.amount
    return value


def _by_magnitude(entry):
    # largest first, user id breaks ties so output is reproducible
    return (-entry[1], entry[0])


def simplify(balances: Mapping[int, Union[NetBalance, Decimal]]) -> SimplifiedDebts:
    """
    Greedy largest-debtor vs largest-creditor matching.

    Not an exact minimum-transaction solver (that problem is NP-hard); it
    finishes in at most len(debtors) + len(creditors) - 1 steps and only
    ever pays between two different participants of ``balances``.
    """
    debtors = []    # [user_id, amount_to_pay]
    creditors = []  # [user_id, amount_to_receive]

    for uid, value in balances.items():
        amount = qround(balance_amount(value))
        if amount < -EPSILON:
            debtors.append([uid, -amount])
        elif amount > EPSILON:
            creditors.append([uid, amount])

    debtors.sort(key=_by_magnitude)
    creditors.sort(key=_by_magnitude)

    transactions: List[SimplifiedTransaction] = []
    i = 0
    j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        settled = min(debtor[1], creditor[1])

        if settled > EPSILON:
            transactions.append(SimplifiedTransaction(
                from_user_id=debtor[0],
                to_user_id=creditor[0],
                amount=qround(settled),
            ))

        debtor[1] = qround(debtor[1] - settled)
        creditor[1] = qround(creditor[1] - settled)

        if debtor[1] <= EPSILON:
            i += 1
        if creditor[1] <= EPSILON:
            j += 1

    non_zero = len(debtors) + len(creditors)
    optimized_count = len(transactions)
    original_count = max(non_zero // 2, optimized_count)

    logger.debug(
        "Simplified %d non-zero balances into %d transactions",
        non_zero, optimized_count,
    )

    return SimplifiedDebts(
        transactions=transactions,
        original_count=original_count,
        optimized_count=optimized_count,
        savings=original_count - optimized_count,
    )
