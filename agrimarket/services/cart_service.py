# agrimarket/services/cart_service.py
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.order_item import OrderItemModel
from agrimarket.domain.errors import NotFound, InvalidArgument, Conflict
from agrimarket.repos.order_repo import OrderRepo
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.services.views import order_view, empty_cart_view
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


def compute_total(order: OrderModel) -> Decimal:
    # always from the current product price, never the price at add time
    return sum((i.product.price * i.quantity for i in order.items), Decimal("0.00"))


class CartService:
    """
    Use cases for the customer's cart: an order in status ``cart``.

    Queries (get) only read. Commands (add, update, remove) mutate the line
    items, recompute the total and bump the order version with a conditional
    update so two concurrent writers cannot both win.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)

    # query
    def get_cart(self, customer_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_customer(customer_id)
        if not cart:
            return empty_cart_view()
        return order_view(cart)

    # commands
    def add_item(self, customer_id: int, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        if quantity < 1:
            raise InvalidArgument("Quantity must be at least 1")

        product = self.products.get_product(product_id)
        if not product:
            logger.warning(f"Product {product_id} not found while adding to cart of {customer_id}")
            raise NotFound("Product not found")

        cart = self.repo.get_cart_by_customer(customer_id)

        if not cart:
            return self._create_cart(customer_id, product, quantity)

        existing_item = self.repo.get_item(cart, product_id)
        if existing_item:
            logger.info(
                f"Product {product_id} already in cart {cart.id}, quantity "
                f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
            )
            existing_item.quantity += quantity
        else:
            logger.info(f"Adding product {product_id} to cart {cart.id}")
            self.repo.add_item(cart, OrderItemModel(product=product, quantity=quantity))

        return self._save(cart)

    def update_quantity(self, customer_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity is None or quantity < 1:
            raise InvalidArgument("Quantity must be at least 1")

        product = self.products.get_product(product_id)
        if not product:
            raise NotFound("Product not found")

        if quantity > product.stock:
            raise Conflict(
                f"Only {product.stock} items available in stock",
                available=product.stock,
                requested=quantity,
            )

        cart = self.repo.get_cart_by_customer(customer_id)
        if not cart:
            raise NotFound("Cart not found")

        item = self.repo.get_item(cart, product_id)
        if not item:
            raise NotFound("Item not found in cart")

        item.quantity = quantity
        return self._save(cart)

    def remove_item(self, customer_id: int, product_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_customer(customer_id)
        if not cart:
            raise NotFound("Cart not found")

        item = self.repo.get_item(cart, product_id)
        if item:
            logger.info(f"Removing product {product_id} from cart {cart.id}")
            self.repo.delete_item(cart, item)

        return self._save(cart)

    def _create_cart(self, customer_id: int, product, quantity: int) -> Dict[str, Any]:
        cart = OrderModel(
            customer_id=customer_id,
            status="cart",
            version=1,
            items=[OrderItemModel(product=product, quantity=quantity)],
        )
        cart.total = compute_total(cart)

        try:
            self.repo.create_order(cart)
            self.repo.commit()
        except IntegrityError:
            # lost the race against another request creating the cart
            self.repo.rollback()
            raise Conflict("Customer already has an open cart")

        logger.info(f"Created cart {cart.id} for customer {customer_id}")
        return order_view(cart)

    def _save(self, cart: OrderModel) -> Dict[str, Any]:
        old_version = cart.version
        cart_id = cart.id

        try:
            total = compute_total(cart)
            rowcount = self.repo.update_order_version(
                order_id=cart_id,
                old_version=old_version,
                new_data={"version": old_version + 1, "total": total},
            )
        except IntegrityError:
            self.repo.rollback()
            raise Conflict("Cart was modified by another request")

        if rowcount == 0:
            self.repo.rollback()
            raise Conflict("Cart was modified by another request")

        self.repo.commit()
        logger.info(f"Cart {cart_id} saved, version {old_version + 1}, total {total}")

        return order_view(self.repo.get_order(cart_id))
