# agrimarket/celery_worker.py
from celery import Celery

from agrimarket.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "agrimarket",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# import task modules explicitly so the worker registers them
celery_app.conf.imports = (
    "agrimarket.tasks.expire",
    "agrimarket.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-reservations-every-hour": {
        "task": "agrimarket.tasks.expire.expire_reservations_task",
        "schedule": 60.0 * 60,
    },
}

celery_app.conf.timezone = "UTC"
