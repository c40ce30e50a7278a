# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAZNE: explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "cleanup-expired-guests-hourly": {
        "task": "storefront.tasks.expire.cleanup_expired_guests_task",
        "schedule": 60.0 * 60,  # co godzine
    },
}

celery_app.conf.timezone = "UTC"
