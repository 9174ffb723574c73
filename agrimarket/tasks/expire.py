# agrimarket/tasks/expire.py
from datetime import datetime, timezone, timedelta

from sqlalchemy.exc import SQLAlchemyError

from agrimarket.celery_worker import celery_app
from agrimarket.data.database import SessionLocal
import agrimarket.data.models  # noqa: F401  (registers every mapper for the worker)
from agrimarket.domain.errors import MarketError
from agrimarket.repos.trade_repo import TradeRepo
from agrimarket.services.stock_service import StockService
from agrimarket.utils.settings import RESERVATION_TTL_SECONDS
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


def expire_reservations(db, now: datetime | None = None) -> int:
    """Cancel stale pending trades and return their units to stock."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=RESERVATION_TTL_SECONDS)

    repo = TradeRepo(db)
    stock = StockService(db)

    trades = repo.list_pending_before(cutoff)
    logger.info(f"Found {len(trades)} pending trades to expire")

    expired = 0
    for trade in trades:
        trade_id = trade.id
        try:
            stock.release(trade.product_id, trade.quantity)
            if repo.update_status(trade_id, "pending", "cancelled") == 0:
                # farmer acted on it meanwhile
                repo.rollback()
                continue
            repo.commit()
            expired += 1
        except (MarketError, SQLAlchemyError) as e:
            repo.rollback()
            logger.warning(f"Failed to expire trade {trade_id}: {e}")

    return expired


@celery_app.task(name="agrimarket.tasks.expire.expire_reservations_task")
def expire_reservations_task():
    logger.info("Expire reservations task started")

    db = SessionLocal()
    try:
        return expire_reservations(db)
    finally:
        db.close()
