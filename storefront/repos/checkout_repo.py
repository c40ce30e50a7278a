# storefront/repos/checkout_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.checkout_session import CheckoutSessionModel


class CheckoutRepo:
    def __init__(self, db: Session):
        self.db = db

    def save(self, record: CheckoutSessionModel) -> CheckoutSessionModel:
        self.db.add(record)
        self.db.flush()
        return record

    def get_by_session_id(self, session_id: str) -> CheckoutSessionModel | None:
        return self.db.execute(
            select(CheckoutSessionModel).where(CheckoutSessionModel.session_id == session_id)
        ).scalar_one_or_none()
