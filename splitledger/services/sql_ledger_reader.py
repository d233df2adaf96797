import logging
from typing import Dict, Iterable

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from splitledger.core.errors import DataAccessError, NotFoundError
from splitledger.models.user import User
from splitledger.models.group import Group
from splitledger.models.group_member import GroupMember
from splitledger.models.expense import Expense
from splitledger.models.expense_participant import ExpenseParticipant
from splitledger.models.settlement import Settlement
from splitledger.schemas.ledger import LedgerSnapshot
from splitledger.services.ledger_reader import (
    NON_GROUP,
    GroupFilter,
    LedgerReader,
    build_snapshot,
    ensure_distinct_pair,
    ensure_group_filter,
)

logger = logging.getLogger(__name__)


class SqlLedgerReader(LedgerReader):
    """Ledger backend over the SQLAlchemy async session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _require_users(self, *user_ids: int):
        q = select(User.id).where(User.id.in_(user_ids))
        found = set((await self.db.scalars(q)).all())

        for uid in user_ids:
            if uid not in found:
                raise NotFoundError("user", uid)

    async def read_pair(self, user_a: int, user_b: int) -> LedgerSnapshot:
        ensure_distinct_pair(user_a, user_b)

        try:
            await self._require_users(user_a, user_b)

            # expenses on which both users have a share row
            shared_expenses = (
                select(ExpenseParticipant.expense_id)
                .join(Expense, Expense.id == ExpenseParticipant.expense_id)
                .where(
                    ExpenseParticipant.user_id.in_([user_a, user_b]),
                    Expense.is_deleted == False,
                )
                .group_by(ExpenseParticipant.expense_id)
                .having(func.count(func.distinct(ExpenseParticipant.user_id)) == 2)
            )

            shares_q = (
                select(ExpenseParticipant)
                .where(ExpenseParticipant.expense_id.in_(shared_expenses))
                .order_by(ExpenseParticipant.expense_id, ExpenseParticipant.id)
            )

            transfers_q = (
                select(Settlement)
                .where(
                    or_(
                        and_(Settlement.from_user_id == user_a, Settlement.to_user_id == user_b),
                        and_(Settlement.from_user_id == user_b, Settlement.to_user_id == user_a),
                    )
                )
                .order_by(Settlement.id)
            )

            shares = (await self.db.scalars(shares_q)).all()
            transfers = (await self.db.scalars(transfers_q)).all()
        except SQLAlchemyError as e:
            raise DataAccessError(f"Failed to read ledger for users {user_a}, {user_b}") from e

        logger.debug(
            "Pair scope %s/%s: %d shares, %d transfers",
            user_a, user_b, len(shares), len(transfers),
        )
        return build_snapshot({user_a, user_b}, shares, transfers)

    async def read_group(self, group_id: int) -> LedgerSnapshot:
        try:
            q_group = select(Group.id).where(
                Group.id == group_id,
                Group.is_deleted == False,
            )
            if await self.db.scalar(q_group) is None:
                raise NotFoundError("group", group_id)

            members_q = select(GroupMember.user_id).where(GroupMember.group_id == group_id)

            shares_q = (
                select(ExpenseParticipant)
                .join(Expense, Expense.id == ExpenseParticipant.expense_id)
                .where(
                    Expense.group_id == group_id,
                    Expense.is_deleted == False,
                )
                .order_by(ExpenseParticipant.expense_id, ExpenseParticipant.id)
            )

            transfers_q = (
                select(Settlement)
                .where(Settlement.group_id == group_id)
                .order_by(Settlement.id)
            )

            members = (await self.db.scalars(members_q)).all()
            shares = (await self.db.scalars(shares_q)).all()
            transfers = (await self.db.scalars(transfers_q)).all()
        except SQLAlchemyError as e:
            raise DataAccessError(f"Failed to read ledger for group {group_id}") from e

        logger.debug(
            "Group scope %s: %d members, %d shares, %d transfers",
            group_id, len(members), len(shares), len(transfers),
        )
        return build_snapshot(members, shares, transfers)

    async def read_user(self, user_id: int, group_id: GroupFilter = None) -> LedgerSnapshot:
        ensure_group_filter(group_id)

        try:
            await self._require_users(user_id)

            my_expenses = (
                select(ExpenseParticipant.expense_id)
                .join(Expense, Expense.id == ExpenseParticipant.expense_id)
                .where(
                    ExpenseParticipant.user_id == user_id,
                    Expense.is_deleted == False,
                )
            )

            transfers_filter = or_(
                Settlement.from_user_id == user_id,
                Settlement.to_user_id == user_id,
            )

            if group_id == NON_GROUP:
                my_expenses = my_expenses.where(Expense.group_id.is_(None))
                transfers_filter = and_(transfers_filter, Settlement.group_id.is_(None))
            elif group_id is not None:
                my_expenses = my_expenses.where(Expense.group_id == group_id)
                transfers_filter = and_(transfers_filter, Settlement.group_id == group_id)

            shares_q = (
                select(ExpenseParticipant)
                .where(ExpenseParticipant.expense_id.in_(my_expenses))
                .order_by(ExpenseParticipant.expense_id, ExpenseParticipant.id)
            )

            transfers_q = (
                select(Settlement)
                .where(transfers_filter)
                .order_by(Settlement.id)
            )

            shares = (await self.db.scalars(shares_q)).all()
            transfers = (await self.db.scalars(transfers_q)).all()
        except SQLAlchemyError as e:
            raise DataAccessError(f"Failed to read ledger for user {user_id}") from e

        participants = {user_id}
        participants.update(s.user_id for s in shares)
        for t in transfers:
            participants.update((t.from_user_id, t.to_user_id))

        return build_snapshot(participants, shares, transfers)

    async def get_user_names(self, user_ids: Iterable[int]) -> Dict[int, str]:
        ids = set(user_ids)
        if not ids:
            return {}

        try:
            res = await self.db.execute(select(User.id, User.name).where(User.id.in_(ids)))
            return {row.id: row.name for row in res}
        except SQLAlchemyError as e:
            raise DataAccessError("Failed to read user names") from e
