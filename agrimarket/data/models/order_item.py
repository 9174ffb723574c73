from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship

from agrimarket.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="u_order_product"),
        CheckConstraint("quantity >= 1", name="ck_order_item_qty_positive"),
    )

    order = relationship("OrderModel", back_populates="items")
    product = relationship("ProductModel")
