from sqlalchemy import Column, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from splitledger.db.session import Base

class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"
    __table_args__ = (
        UniqueConstraint("expense_id", "user_id", name="uq_expense_participant_user"),
    )

    id = Column(Integer, primary_key=True)
    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    owed_amount = Column(Numeric(12, 2), nullable=False, default=0)

    expense = relationship("Expense", back_populates="participants")
