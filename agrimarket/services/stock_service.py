# agrimarket/services/stock_service.py
from sqlalchemy.orm import Session

from agrimarket.domain.errors import Conflict, NotFound, InvalidArgument
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)

STOCK = "stock"
RESERVED = "reserved"
SOLD = "sold"

# where a trade's units live for each trade status
BUCKET_FOR_STATUS = {
    "pending": RESERVED,
    "completed": SOLD,
    "cancelled": STOCK,
}


class StockService:
    """
    Single entry point for every change to a product's unit counts.

    Units are never created or destroyed here, only moved between the
    ``stock`` (available), ``reserved`` and ``sold`` buckets, except for
    ``adjust_stock`` and ``set_stock`` which restock or write off available
    units. All moves
    are one conditional UPDATE, so a concurrent request can never push a
    bucket below zero. Nothing is committed here: callers own the transaction.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def adjust_stock(self, product_id: int, delta: int) -> None:
        if delta == 0:
            return
        self._apply(product_id, {STOCK: delta})
        logger.info(f"Stock of product {product_id} adjusted by {delta}")

    def set_stock(self, product_id: int, stock: int) -> None:
        if stock < 0:
            raise InvalidArgument("Stock cannot be negative")
        if not self.repo.set_stock(product_id, stock):
            raise NotFound("Product not found")
        logger.info(f"Stock of product {product_id} set to {stock}")

    def move(self, product_id: int, quantity: int, source: str, target: str) -> None:
        if quantity <= 0:
            raise InvalidArgument("Quantity must be a positive number")
        if source == target:
            return
        self._apply(product_id, {source: -quantity, target: quantity})
        logger.info(f"Moved {quantity} units of product {product_id} from {source} to {target}")

    def reserve(self, product_id: int, quantity: int) -> None:
        self.move(product_id, quantity, STOCK, RESERVED)

    def release(self, product_id: int, quantity: int) -> None:
        self.move(product_id, quantity, RESERVED, STOCK)

    def transition(self, product_id: int, quantity: int, old_status: str, new_status: str) -> None:
        """Move a trade's units to the bucket matching its new status."""
        try:
            source = BUCKET_FOR_STATUS[old_status]
            target = BUCKET_FOR_STATUS[new_status]
        except KeyError as e:
            raise InvalidArgument(f"Invalid trade status: {e.args[0]}")
        self.move(product_id, quantity, source, target)

    def _apply(self, product_id: int, deltas: dict[str, int]) -> None:
        rowcount = self.repo.apply_bucket_deltas(product_id, deltas)
        if rowcount:
            return

        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound("Product not found")

        short = [b for b, d in deltas.items() if d < 0 and getattr(product, b) < -d]
        bucket = short[0] if short else STOCK
        available = getattr(product, bucket)
        required = -deltas.get(bucket, 0)
        logger.warning(
            f"Rejected stock change on product {product_id}: {bucket}={available}, needed {required}"
        )
        if bucket == STOCK:
            raise Conflict("Insufficient stock", available=available, required=required)
        raise Conflict(
            f"Inconsistent {bucket} count for product", available=available, required=required
        )
