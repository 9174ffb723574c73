# agrimarket/services/order_service.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.trade import TradeModel
from agrimarket.domain.errors import NotFound, InvalidArgument, Conflict
from agrimarket.repos.order_repo import OrderRepo
from agrimarket.repos.trade_repo import TradeRepo
from agrimarket.services.notification_service import NotificationService
from agrimarket.services.stock_service import StockService
from agrimarket.services.views import order_view, trade_view
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order side of the customer workflow, kept apart from CartService.

    Checkout turns the cart into a pending order plus one pending trade per
    line. Farmer confirmation happens later on the trades themselves.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.trades = TradeRepo(db)
        self.stock = StockService(db)
        self.notification_service = NotificationService()

    def checkout(self, customer_id: int):
        """
        Use case: checkout of the customer's cart.

        1. Verifies there is a non-empty cart
        2. Reserves stock for every line (compare-and-swap, never negative)
        3. Creates a pending trade per line, linked to the order
        4. Flips the order to pending, guarded by its version
        5. Notifies the farmers (async)

        Steps 2-4 are one transaction; any failure rolls all of them back.
        """
        cart = self.repo.get_cart_by_customer(customer_id)

        if not cart:
            raise NotFound("Cart not found")

        if not cart.items:
            raise InvalidArgument("Cart is empty")

        cart_id = cart.id
        old_version = cart.version
        logger.info(f"Checkout of cart {cart_id} for customer {customer_id}")

        created = []
        try:
            lines = [(i.product, i.quantity) for i in cart.items]
            for product, quantity in lines:
                amount = product.price * quantity
                farmer_id = product.farmer_id
                product_id = product.id

                self.stock.reserve(product_id, quantity)

                trade = self.trades.create_trade(
                    TradeModel(
                        farmer_id=farmer_id,
                        buyer_id=customer_id,
                        product_id=product_id,
                        order_id=cart_id,
                        quantity=quantity,
                        amount=amount,
                        status="pending",
                    )
                )
                created.append(trade)

            total = sum(t.amount for t in created)
            rowcount = self.repo.update_order_version(
                order_id=cart_id,
                old_version=old_version,
                new_data={
                    "status": "pending",
                    "total": total,
                    "version": old_version + 1,
                },
            )
            if rowcount == 0:
                raise Conflict("Cart was modified by another request")

            self.repo.commit()
        except IntegrityError:
            self.repo.rollback()
            raise Conflict("Cart was modified by another request")
        except Exception as e:
            logger.warning(f"Checkout of cart {cart_id} rolled back: {e}")
            self.repo.rollback()
            raise

        logger.info(f"Cart {cart_id} checked out into {len(created)} trades")

        for trade in created:
            self.notification_service.send_trade_notification(trade.farmer_id, trade.id)

        return {
            "message": "Checkout successful. Your order has been placed and is pending farmer confirmation.",
            "trades": [trade_view(t) for t in created],
            "order": order_view(self.repo.get_order(cart_id)),
        }

    def list_orders(self, customer_id: int):
        return [order_view(o) for o in self.repo.list_orders_by_customer(customer_id)]

    def list_trades(self, buyer_id: int):
        return [trade_view(t) for t in self.trades.list_by_buyer(buyer_id)]
