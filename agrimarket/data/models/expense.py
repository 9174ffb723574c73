from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Text, DateTime, Numeric, CheckConstraint

from agrimarket.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class ExpenseModel(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    farmer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    category = Column(String(80), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    description = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_expense_amount_nonneg"),
    )
