from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Integer, String, DateTime

from storefront.data.database import Base


class CheckoutSessionModel(Base):
    """Price-frozen copy of a cart, written once when the gateway session is created."""

    __tablename__ = "checkout_sessions"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(255), nullable=False, unique=True)

    # bez FK: snapshot ma przezyc usuniecie koszyka
    cart_id = Column(Integer, nullable=False, index=True)
    owner_user_id = Column(String(64), nullable=True)
    owner_guest_token = Column(String(64), nullable=True)

    total_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    lines = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
