# agrimarket/services/product_service.py
import math
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select, exists
from sqlalchemy.orm import Session

from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.order_item import OrderItemModel
from agrimarket.data.models.product import ProductModel, ReviewModel
from agrimarket.data.models.trade import TradeModel
from agrimarket.domain.errors import NotFound, Forbidden, Conflict
from agrimarket.domain.schemas import ProductCreate, ProductUpdate
from agrimarket.repos.order_repo import OrderRepo
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.services.cart_service import compute_total
from agrimarket.services.stock_service import StockService
from agrimarket.services.views import product_view
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class ProductService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)
        self.stock = StockService(db)

    def search(
        self,
        category=None,
        min_price=None,
        max_price=None,
        organic=None,
        search=None,
        sort_by="createdAt",
        sort_order="desc",
        page=1,
        limit=10,
    ):
        products, total = self.repo.search(
            category=category,
            min_price=min_price,
            max_price=max_price,
            organic=organic,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {
            "products": [product_view(p) for p in products],
            "total_pages": math.ceil(total / limit),
            "current_page": page,
            "total": total,
        }

    def get(self, product_id: int):
        return product_view(self._get_or_404(product_id))

    def create(self, farmer_id: int, payload: ProductCreate):
        data = payload.model_dump(mode="json", exclude={"price"})
        product = ProductModel(
            farmer_id=farmer_id,
            name=payload.name.strip(),
            description=payload.description,
            price=payload.price,
            category=payload.category.value,
            images=data["images"],
            stock=payload.stock,
            location=payload.location,
            harvest_date=payload.harvest_date,
            organic=payload.organic,
        )
        created = self.repo.create_product(product)
        logger.info(f"Farmer {farmer_id} listed product {created.id} ({created.name}, stock {created.stock})")
        return product_view(created)

    def update(self, farmer_id: int, product_id: int, payload: ProductUpdate):
        product = self._get_owned_or_403(farmer_id, product_id)

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "images" in changes:
            changes["images"] = payload.model_dump(mode="json", include={"images"})["images"]
        if "category" in changes:
            changes["category"] = changes["category"].value
        new_stock = changes.pop("stock", None)

        try:
            for field, value in changes.items():
                setattr(product, field, value)
            if new_stock is not None:
                # overwrite, not a delta from the value read above
                self.stock.set_stock(product_id, new_stock)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Product {product_id} updated by farmer {farmer_id}: {sorted(payload.model_fields_set)}")
        return product_view(self._get_or_404(product_id))

    def delete(self, farmer_id: int, product_id: int):
        product = self._get_owned_or_403(farmer_id, product_id)

        has_trades = self.db.execute(
            select(exists().where(TradeModel.product_id == product_id))
        ).scalar()
        if has_trades:
            logger.warning(f"Refusing to delete product {product_id}: it has trades")
            raise Conflict("Product has trades and cannot be deleted")

        # pull it out of open carts first
        cart_lines = self.db.execute(
            select(OrderItemModel)
            .join(OrderModel, OrderItemModel.order_id == OrderModel.id)
            .where(OrderItemModel.product_id == product_id, OrderModel.status == "cart")
        ).scalars().all()
        carts = OrderRepo(self.db)
        try:
            for item in cart_lines:
                cart = item.order
                cart_id, old_version = cart.id, cart.version
                cart.items.remove(item)
                changed = carts.update_order_version(
                    cart_id, old_version, {"version": old_version + 1, "total": compute_total(cart)}
                )
                if changed == 0:
                    logger.warning(f"Cart {cart_id} changed while deleting product {product_id}")
                    raise Conflict("Cart was modified by another request")
            self.repo.delete_product(product)
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Product {product_id} deleted by farmer {farmer_id}, removed from {len(cart_lines)} carts")
        return {"message": "Product deleted successfully"}

    def add_review(self, user_id: int, product_id: int, rating: int, comment: str):
        product = self._get_or_404(product_id)

        self.repo.add_review(product, ReviewModel(user_id=user_id, rating=rating, comment=comment))
        ratings = [r.rating for r in product.reviews]
        product.rating = (Decimal(sum(ratings)) / len(ratings)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        self.repo.commit()

        logger.info(f"User {user_id} reviewed product {product_id} with {rating}")
        return product_view(self._get_or_404(product_id))

    def _get_or_404(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    def _get_owned_or_403(self, farmer_id: int, product_id: int) -> ProductModel:
        product = self._get_or_404(product_id)
        if product.farmer_id != farmer_id:
            raise Forbidden("Not authorized to modify this product")
        return product
