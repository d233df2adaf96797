"""
Ledger reader interface.

A reader resolves a scope (a pair of users, a group, or a single user's
activity) to the raw expense-share and transfer rows relevant to it. Readers
are pure data access: they never compute balances and never mutate what
they return. Each storage backend gets its own implementation; the balance
calculator and debt simplifier are shared by all of them.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Union

from pydantic import ValidationError

from splitledger.core.errors import DataAccessError, InvalidScopeError
from splitledger.schemas.ledger import ExpenseShare, LedgerSnapshot, Transfer

# read_user filter: only expenses and transfers outside any group
NON_GROUP = "non-group"

GroupFilter = Optional[Union[int, str]]


class LedgerReader(ABC):

    @abstractmethod
    async def read_pair(self, user_a: int, user_b: int) -> LedgerSnapshot:
        """
        Rows relevant to the balance between two users.

        Shares: every share row of every non-deleted expense on which both
        users have a share row. Transfers: every transfer between the two,
        in either direction.

        Raises:
            InvalidScopeError: if both ids are the same user
            NotFoundError: if either user does not exist
            DataAccessError: if the store fails or returns malformed rows
        """

    @abstractmethod
    async def read_group(self, group_id: int) -> LedgerSnapshot:
        """
        Rows relevant to a group.

        Participants are the current members. Shares of removed members
        are returned as-is; the calculator skips them.

        Raises:
            NotFoundError: if the group does not exist or was deleted
            DataAccessError: if the store fails or returns malformed rows
        """

    @abstractmethod
    async def read_user(self, user_id: int, group_id: GroupFilter = None) -> LedgerSnapshot:
        """
        Every non-deleted expense the user took part in and every transfer
        the user sent or received. Participants are the user plus every
        counterparty found in those rows.

        ``group_id`` narrows both expenses and transfers: None keeps
        everything, NON_GROUP keeps rows tagged with no group, an int keeps
        rows of that group only.

        Raises:
            InvalidScopeError: if ``group_id`` is neither None, NON_GROUP nor an int
            NotFoundError: if the user does not exist
            DataAccessError: if the store fails or returns malformed rows
        """

    @abstractmethod
    async def get_user_names(self, user_ids: Iterable[int]) -> Dict[int, str]:
        """
        Display names of the given users. Unknown ids are left out of the
        result; callers pick their own fallback.

        Raises:
            DataAccessError: if the store fails
        """


def ensure_distinct_pair(user_a: int, user_b: int):
    if user_a == user_b:
        raise InvalidScopeError("A balance pair needs two different users")


def ensure_group_filter(group_id: GroupFilter):
    if group_id is None or group_id == NON_GROUP:
        return
    if isinstance(group_id, bool) or not isinstance(group_id, int):
        raise InvalidScopeError(f"Unknown group filter {group_id!r}")


def matches_group(row_group_id: Optional[int], group_id: GroupFilter) -> bool:
    if group_id is None:
        return True
    if group_id == NON_GROUP:
        return row_group_id is None
    return row_group_id == group_id


def build_snapshot(participants: Iterable[int], share_rows, transfer_rows) -> LedgerSnapshot:
    """Validate raw backend rows into an immutable snapshot."""
    try:
        shares = tuple(ExpenseShare.model_validate(row) for row in share_rows)
        transfers = tuple(Transfer.model_validate(row) for row in transfer_rows)
        return LedgerSnapshot(
            participants=frozenset(participants),
            shares=shares,
            transfers=transfers,
        )
    except ValidationError as e:
        raise DataAccessError(f"Malformed ledger rows: {e}") from e
