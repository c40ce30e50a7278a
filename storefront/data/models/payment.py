from sqlalchemy import Column, Integer, ForeignKey, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from storefront.data.database import Base


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True)

    method = Column(String(20), nullable=False, default="stripe")
    status = Column(String(20), nullable=False, default="completed")
    # klucz idempotencji - unikalny, drugi insert tego samego transaction_id wywali IntegrityError
    transaction_id = Column(String(255), nullable=False, unique=True)
    paid_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="payment")
