# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_paid(order_id: int, user_id: str | None, guest_token: str | None):
        """
        Powiadomienie o oplaconym zamowieniu.
        """
        send_order_paid_task.delay(order_id, user_id, guest_token)


@celery_app.task(name="storefront.services.notification_service.send_order_paid_task")
def send_order_paid_task(order_id: int, user_id: str | None, guest_token: str | None):
    """
    Celery task - w prawdziwym systemie wyslalby email/push.
    Teraz tylko loguje.
    """
    owner = f"user {user_id}" if user_id else "guest"
    logger.info(f"[NOTIFICATION] {owner}: order {order_id} is paid")

    return {"order_id": order_id, "user_id": user_id, "status": "sent"}
