# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime


class AddItemIn(BaseModel):
    """Dodanie wariantu do koszyka. Ilosc <= 0 odrzuca serwis (InvalidQuantity)."""

    variant_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = 1


class UpdateItemIn(BaseModel):
    """Nowa, absolutna ilosc. 0 lub mniej usuwa pozycje."""

    quantity: int


class CartItemOut(BaseModel):
    id: int
    variant_id: str
    name: str
    image: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartOut(BaseModel):
    """Read model koszyka - sumy liczone przy kazdym odczycie."""

    id: int
    user_id: str | None = None
    guest_id: int | None = None
    items: List[CartItemOut]
    total_items: int
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class CartMutationOut(BaseModel):
    action: str
    message: str
    cart: CartOut


class MergeOut(BaseModel):
    merged: bool
    items_merged: int
    cart: CartOut | None = None


class CheckoutIn(BaseModel):
    cart_id: int = Field(..., gt=0)


class CheckoutOut(BaseModel):
    url: str
    session_id: str
    total_cents: int


class CheckoutSessionOut(BaseModel):
    session_id: str
    payment_status: str | None = None
    payment_intent: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class OrderItemOut(BaseModel):
    variant_id: str
    name: str | None = None
    quantity: int
    price_at_purchase: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    method: str
    status: str
    transaction_id: str
    paid_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Read model zamowienia."""

    id: int
    status: str
    total_amount: Decimal
    created_at: datetime
    items: List[OrderItemOut]
    payment: PaymentOut | None = None

    model_config = ConfigDict(from_attributes=True)


class WebhookAck(BaseModel):
    received: bool = True
    outcome: str
    order_id: int | None = None
