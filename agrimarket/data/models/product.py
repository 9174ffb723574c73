from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, JSON, CheckConstraint,
)
from sqlalchemy.orm import relationship

from agrimarket.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    farmer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(20), nullable=False, index=True)
    images = Column(JSON, nullable=False, default=list)
    location = Column(String(255), nullable=False, default="")
    harvest_date = Column(DateTime(timezone=True), nullable=True)
    organic = Column(Boolean, nullable=False, default=False)
    rating = Column(Numeric(3, 2), nullable=False, default=0)

    # units live in exactly one bucket: available, held by pending trades, or sold
    stock = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)
    sold = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_nonneg"),
        CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
        CheckConstraint("reserved >= 0", name="ck_product_reserved_nonneg"),
        CheckConstraint("sold >= 0", name="ck_product_sold_nonneg"),
    )

    farmer = relationship("UserModel")
    reviews = relationship(
        "ReviewModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ReviewModel.created_at",
    )


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    product = relationship("ProductModel", back_populates="reviews")
    user = relationship("UserModel")
