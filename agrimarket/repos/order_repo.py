# agrimarket/repos/order_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_cart_by_customer(self, customer_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(
                OrderModel.customer_id == customer_id,
                OrderModel.status == "cart",
            )
        ).scalar_one_or_none()

    def list_orders_by_customer(self, customer_id: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.customer_id == customer_id, OrderModel.status != "cart")
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_item(self, order: OrderModel, product_id: int) -> OrderItemModel | None:
        for item in order.items:
            if item.product_id == product_id:
                return item
        return None

    def add_item(self, order: OrderModel, item: OrderItemModel) -> None:
        order.items.append(item)
        self.db.flush()

    def delete_item(self, order: OrderModel, item: OrderItemModel) -> None:
        order.items.remove(item)
        self.db.flush()

    def update_order_version(self, order_id: int, old_version: int, new_data: dict) -> int:
        # UPDATE orders SET ..., version = old + 1 WHERE id = :id AND version = :old
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(order_id)
        return result.rowcount

    def _expire_cached(self, order_id: int) -> None:
        cached = self.db.identity_map.get(identity_key(OrderModel, order_id))
        if cached is not None:
            self.db.expire(cached)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
