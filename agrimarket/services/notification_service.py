# agrimarket/services/notification_service.py
from agrimarket.celery_worker import celery_app
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Sends notifications to marketplace users.
    Uses Celery so the request never waits on delivery.
    """

    @staticmethod
    def send_trade_notification(farmer_id: int, trade_id: int):
        """
        Tells the farmer a trade is waiting for confirmation.
        """
        send_trade_notification_task.delay(farmer_id, trade_id)


@celery_app.task(name="agrimarket.services.notification_service.send_trade_notification_task")
def send_trade_notification_task(farmer_id: int, trade_id: int):
    """
    Celery task; delivery channel is a log line for now.
    """
    logger.info(f"[NOTIFICATION] Farmer {farmer_id}: trade {trade_id} is pending confirmation")

    return {"farmer_id": farmer_id, "trade_id": trade_id, "status": "sent"}
