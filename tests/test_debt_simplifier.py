"""
Tests for the greedy debt simplifier.

Balances are plain dicts; no reader or database involved.
"""

import random
from collections import defaultdict
from decimal import Decimal

from splitledger.core.utils import EPSILON, qround
from splitledger.schemas.ledger import NetBalance
from splitledger.services.debt_simplifier import simplify


def D(value) -> Decimal:
    return Decimal(str(value))


def as_net(amounts: dict) -> dict:
    return {uid: NetBalance(user_id=uid, amount=D(a)) for uid, a in amounts.items()}


def random_balances(rng: random.Random, size: int) -> dict:
    while True:
        amounts = {
            uid: D(rng.choice([-1, 1]) * rng.randint(2, 50000)) / 100
            for uid in range(1, size)
        }
        # last participant absorbs the remainder so the map is zero-sum
        amounts[size] = -sum(amounts.values(), D(0))
        if abs(amounts[size]) > EPSILON:
            return amounts


def net_effect(transactions) -> dict:
    effect = defaultdict(lambda: D(0))
    for tx in transactions:
        effect[tx.from_user_id] += tx.amount
        effect[tx.to_user_id] -= tx.amount
    return effect


class TestScenarios:

    def test_greedy_reduction(self):
        # A=1, B=2, C=3, D=4
        result = simplify(as_net({1: -30, 2: -20, 3: 25, 4: 25}))

        triples = [(t.from_user_id, t.to_user_id, t.amount) for t in result.transactions]
        assert triples == [
            (1, 3, D("25.00")),
            (1, 4, D("5.00")),
            (2, 4, D("20.00")),
        ]
        assert result.optimized_count == 3
        assert result.original_count >= 3
        assert result.savings == result.original_count - result.optimized_count

    def test_already_settled(self):
        result = simplify(as_net({1: 0, 2: "0.01", 3: "-0.01"}))

        assert result.transactions == []
        assert result.optimized_count == 0
        assert result.original_count == 0
        assert result.savings == 0

    def test_empty_map(self):
        result = simplify({})
        assert result.transactions == []
        assert result.savings == 0

    def test_two_people(self):
        result = simplify(as_net({1: 50, 2: -50}))

        assert len(result.transactions) == 1
        tx = result.transactions[0]
        assert (tx.from_user_id, tx.to_user_id, tx.amount) == (2, 1, D("50.00"))

    def test_accepts_plain_decimals(self):
        result = simplify({1: D(10), 2: D(-10)})
        assert result.optimized_count == 1


class TestCounts:

    def test_original_count_is_half_of_non_zero_balances(self):
        # one creditor, four debtors: greedy needs four payments
        result = simplify(as_net({1: 40, 2: -10, 3: -10, 4: -10, 5: -10}))

        assert result.optimized_count == 4
        assert result.original_count == 4
        assert result.savings == 0

    def test_epsilon_entries_do_not_count(self):
        result = simplify(as_net({1: 10, 2: -10, 3: "0.01"}))
        assert result.original_count == 1


class TestProperties:

    def test_no_self_transactions(self):
        rng = random.Random(7)
        for _ in range(50):
            result = simplify(random_balances(rng, rng.randint(2, 12)))
            for tx in result.transactions:
                assert tx.from_user_id != tx.to_user_id
                assert tx.amount > EPSILON

    def test_conservation(self):
        rng = random.Random(11)
        for _ in range(50):
            balances = random_balances(rng, rng.randint(2, 12))
            effect = net_effect(simplify(balances).transactions)

            for uid, amount in balances.items():
                assert abs(effect[uid] - (-amount)) <= EPSILON

    def test_only_participants_appear(self):
        rng = random.Random(3)
        balances = random_balances(rng, 8)
        for tx in simplify(balances).transactions:
            assert tx.from_user_id in balances
            assert tx.to_user_id in balances

    def test_step_bound(self):
        rng = random.Random(5)
        for _ in range(50):
            balances = random_balances(rng, rng.randint(2, 12))
            non_zero = sum(1 for a in balances.values() if abs(qround(a)) > EPSILON)
            assert simplify(balances).optimized_count <= max(non_zero - 1, 0)

    def test_idempotent(self):
        balances = as_net({1: -30, 2: -20, 3: 25, 4: 25})
        assert simplify(balances) == simplify(balances)

    def test_equal_magnitudes_break_ties_by_user_id(self):
        first = simplify(as_net({9: -10, 4: -10, 7: 10, 2: 10}))
        second = simplify(as_net({2: 10, 7: 10, 4: -10, 9: -10}))

        pairs = [(t.from_user_id, t.to_user_id) for t in first.transactions]
        assert pairs == [(4, 2), (9, 7)]
        assert first == second

    def test_input_is_not_mutated(self):
        balances = as_net({1: -30, 2: -20, 3: 25, 4: 25})
        before = dict(balances)
        simplify(balances)
        assert balances == before
