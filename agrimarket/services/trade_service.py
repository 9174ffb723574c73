# agrimarket/services/trade_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from agrimarket.data.models.trade import TradeModel
from agrimarket.domain.errors import NotFound, InvalidArgument, Conflict
from agrimarket.domain.schemas import TradeStatus
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.repos.trade_repo import TradeRepo
from agrimarket.repos.user_repo import UserRepo
from agrimarket.services.stock_service import StockService
from agrimarket.services.views import trade_view
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)

_STATUSES = {s.value for s in TradeStatus}


class TradeService:
    """
    Farmer side of the trade ledger.

    Stock follows reserve-then-confirm: a pending trade holds reserved units,
    completing it turns them into sold units, cancelling gives them back.
    Each status change and its stock move commit together.
    """

    def __init__(self, db: Session):
        self.repo = TradeRepo(db)
        self.products = ProductRepo(db)
        self.users = UserRepo(db)
        self.stock = StockService(db)

    def list(self, farmer_id: int):
        return [trade_view(t) for t in self.repo.list_by_farmer(farmer_id)]

    def create(
        self,
        farmer_id: int,
        product_id: int,
        quantity: int,
        amount: Decimal,
        buyer_id: int | None = None,
    ):
        if quantity is None or quantity <= 0:
            raise InvalidArgument("Quantity must be a positive number")
        if amount is None or amount <= 0:
            raise InvalidArgument("Amount must be a positive number")

        product = self.products.get_owned(product_id, farmer_id)
        if not product:
            raise NotFound("Product not found")

        if buyer_id is not None and not self.users.get_user(buyer_id):
            raise NotFound("Buyer not found")

        try:
            self.stock.reserve(product.id, quantity)
            trade = self.repo.create_trade(
                TradeModel(
                    farmer_id=farmer_id,
                    buyer_id=buyer_id,
                    product_id=product.id,
                    quantity=quantity,
                    amount=amount,
                    status="pending",
                )
            )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Farmer {farmer_id} created trade {trade.id} for {quantity} x product {product_id}")
        return trade_view(trade)

    def update_status(self, farmer_id: int, trade_id: int, status: str):
        if status not in _STATUSES:
            raise InvalidArgument(f"Invalid trade status: {status}")

        trade = self.repo.get_owned(trade_id, farmer_id)
        if not trade:
            raise NotFound("Trade not found")

        old_status = trade.status
        if old_status == status:
            return trade_view(trade)

        try:
            self.stock.transition(trade.product_id, trade.quantity, old_status, status)

            rowcount = self.repo.update_status(trade_id, old_status, status)
            if rowcount == 0:
                raise Conflict("Trade was modified by another request")

            self.repo.commit()
        except Exception as e:
            logger.warning(f"Status change {old_status} -> {status} of trade {trade_id} rejected: {e}")
            self.repo.rollback()
            raise

        logger.info(f"Trade {trade_id} moved {old_status} -> {status}")
        return trade_view(self.repo.get_trade(trade_id))
