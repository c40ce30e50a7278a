# storefront/tasks/expire.py
from datetime import datetime, timezone

from storefront.celery_worker import celery_app
from storefront.data.database import db_session
from storefront.repos.guest_repo import GuestRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def cleanup_expired_guests(db, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    removed = GuestRepo(db).delete_expired(now)
    db.commit()
    logger.info(f"Removed {removed} expired guests with their carts")
    return removed


@celery_app.task(name="storefront.tasks.expire.cleanup_expired_guests_task")
def cleanup_expired_guests_task():
    logger.info("Cleanup expired guests task started")

    db = db_session()
    try:
        return cleanup_expired_guests(db)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
