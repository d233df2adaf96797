from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from splitledger.core.errors import NotFoundError
from splitledger.schemas.ledger import ExpenseShare, LedgerSnapshot, Transfer
from splitledger.services.ledger_reader import (
    GroupFilter,
    LedgerReader,
    build_snapshot,
    ensure_distinct_pair,
    ensure_group_filter,
    matches_group,
)


@dataclass
class StoredExpense:
    id: int
    shares: List[ExpenseShare]
    group_id: Optional[int] = None
    is_deleted: bool = False

    def user_ids(self) -> Set[int]:
        return {s.user_id for s in self.shares}


@dataclass
class StoredGroup:
    id: int
    members: Set[int] = field(default_factory=set)
    is_deleted: bool = False


class InMemoryLedgerReader(LedgerReader):
    """Ledger backend kept in plain dicts and lists."""

    def __init__(self):
        self.users: Set[int] = set()
        self.names: Dict[int, str] = {}
        self.groups: Dict[int, StoredGroup] = {}
        self.expenses: Dict[int, StoredExpense] = {}
        self.transfers: List[Transfer] = []

    # writes used by fixtures and embedding applications

    def add_user(self, *user_ids: int):
        self.users.update(user_ids)

    def set_name(self, user_id: int, name: str):
        self.add_user(user_id)
        self.names[user_id] = name

    def add_group(self, group_id: int, members=(), is_deleted: bool = False):
        self.add_user(*members)
        self.groups[group_id] = StoredGroup(group_id, set(members), is_deleted)
        return self.groups[group_id]

    def add_expense(self, expense_id: int, shares, group_id: Optional[int] = None, is_deleted: bool = False):
        rows = [
            s if isinstance(s, ExpenseShare) else ExpenseShare(expense_id=expense_id, **s)
            for s in shares
        ]
        self.add_user(*(s.user_id for s in rows))
        self.expenses[expense_id] = StoredExpense(expense_id, rows, group_id, is_deleted)
        return self.expenses[expense_id]

    def add_transfer(self, from_user_id: int, to_user_id: int, amount, group_id: Optional[int] = None):
        transfer = Transfer(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            group_id=group_id,
        )
        self.add_user(from_user_id, to_user_id)
        self.transfers.append(transfer)
        return transfer

    # LedgerReader

    def _require_user(self, user_id: int):
        if user_id not in self.users:
            raise NotFoundError("user", user_id)

    def _live_expenses(self):
        return (e for e in self.expenses.values() if not e.is_deleted)

    async def read_pair(self, user_a: int, user_b: int) -> LedgerSnapshot:
        ensure_distinct_pair(user_a, user_b)
        self._require_user(user_a)
        self._require_user(user_b)

        pair = {user_a, user_b}
        shares = [
            s
            for e in self._live_expenses()
            if pair <= e.user_ids()
            for s in e.shares
        ]
        transfers = [
            t for t in self.transfers
            if {t.from_user_id, t.to_user_id} == pair
        ]
        return build_snapshot(pair, shares, transfers)

    async def read_group(self, group_id: int) -> LedgerSnapshot:
        group = self.groups.get(group_id)
        if group is None or group.is_deleted:
            raise NotFoundError("group", group_id)

        shares = [
            s
            for e in self._live_expenses()
            if e.group_id == group_id
            for s in e.shares
        ]
        transfers = [t for t in self.transfers if t.group_id == group_id]
        return build_snapshot(group.members, shares, transfers)

    async def read_user(self, user_id: int, group_id: GroupFilter = None) -> LedgerSnapshot:
        ensure_group_filter(group_id)
        self._require_user(user_id)

        shares = [
            s
            for e in self._live_expenses()
            if user_id in e.user_ids() and matches_group(e.group_id, group_id)
            for s in e.shares
        ]
        transfers = [
            t for t in self.transfers
            if user_id in (t.from_user_id, t.to_user_id)
            and matches_group(t.group_id, group_id)
        ]
        participants = {user_id}
        participants.update(s.user_id for s in shares)
        for t in transfers:
            participants.update((t.from_user_id, t.to_user_id))
        return build_snapshot(participants, shares, transfers)

    async def get_user_names(self, user_ids: Iterable[int]) -> Dict[int, str]:
        return {uid: self.names[uid] for uid in set(user_ids) if uid in self.names}
