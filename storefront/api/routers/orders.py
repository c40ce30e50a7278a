# storefront/api/routers/orders.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_payment_gateway, raise_http
from storefront.data.database import get_db
from storefront.domain.errors import CommerceError
from storefront.domain.schemas import OrderOut
from storefront.gateway.port import PaymentGateway
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/by-session/{session_id}", response_model=OrderOut)
def get_order_by_session(
    session_id: str,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Strona sukcesu odpytuje to, az webhook utworzy zamowienie.
    """
    try:
        return OrderService(db, gateway).get_order_by_session(session_id)
    except CommerceError as e:
        raise_http(e)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    try:
        return OrderService(db, gateway).get_order(order_id)
    except CommerceError as e:
        raise_http(e)
