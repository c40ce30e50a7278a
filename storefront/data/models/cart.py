#storefront/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Integer, ForeignKey, String, DateTime
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)

    # dokladnie jeden wlasciciel: user albo guest
    user_id = Column(String(64), nullable=True, unique=True)
    guest_id = Column(Integer, ForeignKey("guests.id", ondelete="CASCADE"), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL AND guest_id IS NOT NULL) OR (user_id IS NOT NULL AND guest_id IS NULL)",
            name="ck_cart_single_owner",
        ),
    )
