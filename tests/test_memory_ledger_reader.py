from decimal import Decimal

import pytest
from pydantic import ValidationError

from splitledger.core.errors import InvalidScopeError, NotFoundError
from splitledger.schemas.ledger import ExpenseShare
from splitledger.services.ledger_reader import NON_GROUP

A, B, C = 1, 2, 3
GROUP = 10


def D(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def seeded(ledger):
    ledger.add_group(GROUP, members={A, B})
    # A and B together
    ledger.add_expense(1, [
        {"user_id": A, "paid_amount": D(100), "owed_amount": D(50)},
        {"user_id": B, "paid_amount": D(0), "owed_amount": D(50)},
    ], group_id=GROUP)
    # A and C only
    ledger.add_expense(2, [
        {"user_id": A, "paid_amount": D(30), "owed_amount": D(15)},
        {"user_id": C, "paid_amount": D(0), "owed_amount": D(15)},
    ])
    # deleted, A and B
    ledger.add_expense(3, [
        {"user_id": A, "paid_amount": D(80), "owed_amount": D(40)},
        {"user_id": B, "paid_amount": D(0), "owed_amount": D(40)},
    ], group_id=GROUP, is_deleted=True)
    # group expense that still carries a former member
    ledger.add_expense(4, [
        {"user_id": B, "paid_amount": D(60), "owed_amount": D(20)},
        {"user_id": A, "paid_amount": D(0), "owed_amount": D(20)},
        {"user_id": C, "paid_amount": D(0), "owed_amount": D(20)},
    ], group_id=GROUP)
    ledger.add_transfer(B, A, D(10), group_id=GROUP)
    ledger.add_transfer(A, B, D(5))
    ledger.add_transfer(A, C, D(7))
    return ledger


class TestReadPair:

    @pytest.mark.asyncio
    async def test_only_expenses_shared_by_both(self, seeded):
        snapshot = await seeded.read_pair(A, B)

        assert snapshot.participants == frozenset({A, B})
        assert {s.expense_id for s in snapshot.shares} == {1, 4}

    @pytest.mark.asyncio
    async def test_third_party_rows_of_shared_expense_are_returned(self, seeded):
        snapshot = await seeded.read_pair(A, B)
        assert ExpenseShare(expense_id=4, user_id=C, paid_amount=D(0), owed_amount=D(20)) in snapshot.shares

    @pytest.mark.asyncio
    async def test_transfers_in_both_directions(self, seeded):
        snapshot = await seeded.read_pair(A, B)

        assert sorted((t.from_user_id, t.to_user_id) for t in snapshot.transfers) == [(A, B), (B, A)]

    @pytest.mark.asyncio
    async def test_unknown_user(self, seeded):
        with pytest.raises(NotFoundError) as exc:
            await seeded.read_pair(A, 99)
        assert exc.value.kind == "user"
        assert exc.value.identifier == 99

    @pytest.mark.asyncio
    async def test_same_user_twice(self, seeded):
        with pytest.raises(InvalidScopeError):
            await seeded.read_pair(A, A)


class TestReadGroup:

    @pytest.mark.asyncio
    async def test_members_and_rows(self, seeded):
        snapshot = await seeded.read_group(GROUP)

        assert snapshot.participants == frozenset({A, B})
        assert {s.expense_id for s in snapshot.shares} == {1, 4}
        assert [(t.from_user_id, t.to_user_id) for t in snapshot.transfers] == [(B, A)]

    @pytest.mark.asyncio
    async def test_rows_of_former_members_are_not_filtered(self, seeded):
        snapshot = await seeded.read_group(GROUP)
        assert C in {s.user_id for s in snapshot.shares}

    @pytest.mark.asyncio
    async def test_unknown_group(self, seeded):
        with pytest.raises(NotFoundError):
            await seeded.read_group(999)

    @pytest.mark.asyncio
    async def test_deleted_group(self, seeded):
        seeded.add_group(11, members={A}, is_deleted=True)
        with pytest.raises(NotFoundError):
            await seeded.read_group(11)

    @pytest.mark.asyncio
    async def test_empty_group(self, seeded):
        seeded.add_group(12)
        snapshot = await seeded.read_group(12)

        assert snapshot.participants == frozenset()
        assert snapshot.shares == ()
        assert snapshot.transfers == ()


class TestReadUser:

    @pytest.mark.asyncio
    async def test_all_activity_of_user(self, seeded):
        snapshot = await seeded.read_user(C)

        assert snapshot.participants == frozenset({A, B, C})
        assert {s.expense_id for s in snapshot.shares} == {2, 4}
        assert [(t.from_user_id, t.to_user_id) for t in snapshot.transfers] == [(A, C)]

    @pytest.mark.asyncio
    async def test_unknown_user(self, seeded):
        with pytest.raises(NotFoundError):
            await seeded.read_user(42)

    @pytest.mark.asyncio
    async def test_group_filter(self, seeded):
        snapshot = await seeded.read_user(A, GROUP)

        assert {s.expense_id for s in snapshot.shares} == {1, 4}
        assert [(t.from_user_id, t.to_user_id) for t in snapshot.transfers] == [(B, A)]

    @pytest.mark.asyncio
    async def test_non_group_filter(self, seeded):
        snapshot = await seeded.read_user(A, NON_GROUP)

        assert snapshot.participants == frozenset({A, B, C})
        assert {s.expense_id for s in snapshot.shares} == {2}
        assert [(t.from_user_id, t.to_user_id) for t in snapshot.transfers] == [(A, B), (A, C)]

    @pytest.mark.asyncio
    async def test_no_filter_keeps_everything(self, seeded):
        snapshot = await seeded.read_user(A)

        assert {s.expense_id for s in snapshot.shares} == {1, 2, 4}
        assert len(snapshot.transfers) == 3

    @pytest.mark.asyncio
    async def test_bad_filter(self, seeded):
        with pytest.raises(InvalidScopeError):
            await seeded.read_user(A, "everything")


class TestUserNames:

    @pytest.mark.asyncio
    async def test_known_names_only(self, seeded):
        seeded.set_name(A, "Asha")
        seeded.set_name(B, "Bilal")

        assert await seeded.get_user_names([A, B, C]) == {A: "Asha", B: "Bilal"}

    @pytest.mark.asyncio
    async def test_empty(self, seeded):
        assert await seeded.get_user_names([]) == {}


class TestSnapshotIsImmutable:

    @pytest.mark.asyncio
    async def test_later_writes_do_not_leak_into_snapshot(self, seeded):
        snapshot = await seeded.read_pair(A, B)
        seeded.add_transfer(A, B, D(1))

        assert len(snapshot.transfers) == 2

    @pytest.mark.asyncio
    async def test_rows_are_frozen(self, seeded):
        snapshot = await seeded.read_pair(A, B)
        with pytest.raises(ValidationError):
            snapshot.shares[0].paid_amount = D(1)
