# storefront/api/deps.py
from typing import NoReturn

from fastapi import Cookie, Header, HTTPException, Response

from storefront.domain.errors import CommerceError
from storefront.domain.identity import AuthenticatedUser, Guest, Identity
from storefront.gateway import get_gateway
from storefront.gateway.port import PaymentGateway
from storefront.services.cart_resolver import ResolvedCart
from storefront.services.notification_service import NotificationService
from storefront.services.product_client import ProductClient
from storefront.utils.settings import GUEST_TTL_SECONDS

GUEST_COOKIE = "guest_session"


def current_identity(
    x_user_id: str | None = Header(default=None),
    guest_session: str | None = Cookie(default=None),
) -> Identity:
    """User id comes from the upstream auth layer; otherwise the guest cookie, otherwise nobody."""
    if x_user_id:
        return AuthenticatedUser(user_id=x_user_id)
    if guest_session:
        return Guest(session_token=guest_session)
    return None


def guest_identity(guest_session: str | None = Cookie(default=None)) -> Guest | None:
    return Guest(session_token=guest_session) if guest_session else None


def get_product_client() -> ProductClient:
    return ProductClient()


def get_payment_gateway() -> PaymentGateway:
    try:
        return get_gateway()
    except CommerceError as e:
        raise_http(e)


def get_notification_service() -> NotificationService:
    return NotificationService()


def remember_guest(response: Response, resolved: ResolvedCart) -> None:
    if resolved.issued_token:
        response.set_cookie(
            GUEST_COOKIE,
            resolved.issued_token,
            max_age=GUEST_TTL_SECONDS,
            httponly=True,
            samesite="lax",
        )


def raise_http(e: CommerceError) -> NoReturn:
    raise HTTPException(status_code=e.status_code, detail={"code": e.code, "message": str(e)}) from e
