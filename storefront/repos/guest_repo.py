# storefront/repos/guest_repo.py
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.guest import GuestModel


class GuestRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, session_token: str) -> GuestModel | None:
        return self.db.execute(
            select(GuestModel).where(GuestModel.session_token == session_token)
        ).scalar_one_or_none()

    def insert(self, session_token: str, expires_at: datetime) -> GuestModel | None:
        try:
            with self.db.begin_nested():
                guest = GuestModel(session_token=session_token, expires_at=expires_at)
                self.db.add(guest)
        except IntegrityError:
            return None
        return guest

    def delete(self, guest_id: int) -> int:
        return self.db.execute(
            delete(GuestModel).where(GuestModel.id == guest_id).execution_options(synchronize_session=False)
        ).rowcount

    def delete_expired(self, now: datetime) -> int:
        """Drop expired guests together with their carts and cart items."""
        expired = select(GuestModel.id).where(GuestModel.expires_at < now)
        carts = select(CartModel.id).where(CartModel.guest_id.in_(expired))

        self.db.execute(
            delete(CartItemModel).where(CartItemModel.cart_id.in_(carts)).execution_options(synchronize_session=False)
        )
        self.db.execute(
            delete(CartModel).where(CartModel.guest_id.in_(expired)).execution_options(synchronize_session=False)
        )
        return self.db.execute(
            delete(GuestModel).where(GuestModel.expires_at < now).execution_options(synchronize_session=False)
        ).rowcount
