from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from agrimarket.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class TradeModel(Base):
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True)
    farmer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True)

    quantity = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, completed, cancelled

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_trade_qty_positive"),
        CheckConstraint("amount >= 0", name="ck_trade_amount_nonneg"),
    )

    product = relationship("ProductModel")
    farmer = relationship("UserModel", foreign_keys=[farmer_id])
    buyer = relationship("UserModel", foreign_keys=[buyer_id])
