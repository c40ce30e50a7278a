# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import current_identity, get_payment_gateway, get_product_client, raise_http
from storefront.data.database import get_db
from storefront.domain.errors import CommerceError
from storefront.domain.identity import Identity
from storefront.domain.schemas import CheckoutIn, CheckoutOut, CheckoutSessionOut
from storefront.gateway.port import PaymentGateway
from storefront.services.checkout_service import CheckoutService
from storefront.services.product_client import ProductClient

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutOut)
def begin_checkout(
    payload: CheckoutIn,
    identity: Identity = Depends(current_identity),
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Zamraza koszyk i zwraca URL do hostowanej platnosci.
    """
    if identity is None:
        raise HTTPException(status_code=404, detail={"code": "cart_not_found", "message": "Cart not found or access denied"})
    try:
        return CheckoutService(db, product_client, gateway).begin_checkout(payload.cart_id, identity)
    except CommerceError as e:
        raise_http(e)


@router.get("/sessions/{session_id}", response_model=CheckoutSessionOut)
def get_checkout_session(
    session_id: str,
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    try:
        return CheckoutService(db, product_client, gateway).get_session(session_id)
    except CommerceError as e:
        raise_http(e)
