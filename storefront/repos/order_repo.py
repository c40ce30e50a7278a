# storefront/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.payment import PaymentModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.payment))
        ).scalar_one_or_none()

    def find_by_transaction(self, transaction_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .join(PaymentModel, PaymentModel.order_id == OrderModel.id)
            .where(PaymentModel.transaction_id == transaction_id)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.payment))
        ).scalar_one_or_none()

    def find_by_checkout_session(self, session_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.checkout_session_id == session_id)
            .options(selectinload(OrderModel.items), selectinload(OrderModel.payment))
        ).scalar_one_or_none()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
