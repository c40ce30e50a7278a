# storefront/services/checkout_service.py
from typing import Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.checkout_session import CheckoutSessionModel
from storefront.domain.errors import CartNotFound, EmptyCart, GatewayError, InsufficientStock
from storefront.domain.identity import AuthenticatedUser, Guest, Identity
from storefront.domain.pricing import to_cents
from storefront.domain.snapshot import CheckoutSnapshot, SnapshotLine
from storefront.gateway.port import PaymentGateway
from storefront.repos.cart_repo import CartRepo
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.guest_repo import GuestRepo
from storefront.services.product_client import ProductClient
from storefront.utils.settings import APP_BASE_URL, CURRENCY
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def absolute_image_url(url: str | None, base_url: str = APP_BASE_URL) -> str | None:
    """Gateway cannot resolve relative paths; static assets are served under /api."""
    if not url:
        return None
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("/static/"):
        return f"{base_url}/api{url}"
    if not url.startswith("/"):
        url = f"/{url}"
    return f"{base_url}{url}"


class CheckoutService:
    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        gateway: PaymentGateway,
        base_url: str = APP_BASE_URL,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.guests = GuestRepo(db)
        self.checkouts = CheckoutRepo(db)
        self.product_client = product_client
        self.gateway = gateway
        self.base_url = base_url.rstrip("/")

    def begin_checkout(self, cart_id: int, identity: Identity) -> Dict[str, Any]:
        """
        Use Case: zamrozenie koszyka i przekierowanie do bramki platnosci.

        1. Sprawdza wlasciciela koszyka
        2. Czyta pozycje, aktualne ceny i stan magazynu prosto z katalogu
        3. Buduje snapshot w groszach i liczy total od nowa
        4. Tworzy sesje w bramce, zapisuje snapshot pod jej id
        """
        cart = self._owned_cart(cart_id, identity)
        snapshot = self.build_snapshot(cart, identity)

        session = self.gateway.create_checkout_session(
            lines=snapshot.lines,
            currency=snapshot.currency,
            success_url=f"{self.base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.base_url}/cart",
            metadata=snapshot.metadata(),
        )
        if not session.url:
            raise GatewayError("Payment provider returned no redirect URL")

        try:
            self.checkouts.save(
                CheckoutSessionModel(
                    session_id=session.session_id,
                    cart_id=snapshot.cart_id,
                    owner_user_id=snapshot.owner_user_id,
                    owner_guest_token=snapshot.owner_guest_token,
                    total_cents=snapshot.total_cents,
                    currency=snapshot.currency,
                    lines=snapshot.lines_json(),
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            # sesja w bramce juz jest; bez snapshotu zamowienie zbuduje sie z koszyka
            self.db.rollback()
            logger.error(f"Nie zapisano snapshotu dla sesji {session.session_id}: {e}")

        logger.info(
            f"Checkout koszyka {cart_id}: sesja {session.session_id}, "
            f"{len(snapshot.lines)} pozycji, {snapshot.total_cents} centow"
        )
        return {"url": session.url, "session_id": session.session_id, "total_cents": snapshot.total_cents}

    def build_snapshot(self, cart: CartModel, identity: Identity) -> CheckoutSnapshot:
        items = self.carts.get_items(cart.id)
        if not items:
            raise EmptyCart()

        lines = []
        for item in items:
            variant = self.product_client.fetch_variant(item.variant_id)
            # merge nie sprawdza magazynu, wiec robimy to tutaj, przed bramka
            if variant.stock_level < item.quantity:
                raise InsufficientStock(variant.id, item.quantity, variant.stock_level)
            lines.append(
                SnapshotLine(
                    variant_id=variant.id,
                    name=variant.name,
                    unit_price_cents=to_cents(variant.unit_price),
                    quantity=item.quantity,
                    image_url=absolute_image_url(variant.image_url, self.base_url),
                )
            )

        return CheckoutSnapshot(
            cart_id=cart.id,
            lines=tuple(lines),
            currency=CURRENCY,
            owner_user_id=identity.user_id if isinstance(identity, AuthenticatedUser) else None,
            owner_guest_token=identity.session_token if isinstance(identity, Guest) else None,
        )

    def get_session(self, session_id: str) -> Dict[str, Any]:
        session = self.gateway.retrieve_session(session_id)
        return {
            "session_id": session.session_id,
            "payment_status": session.payment_status,
            "payment_intent": session.payment_intent,
            "metadata": session.metadata,
        }

    def _owned_cart(self, cart_id: int, identity: Identity) -> CartModel:
        cart = self.carts.get_cart(cart_id)
        if cart is None:
            raise CartNotFound()

        if isinstance(identity, AuthenticatedUser) and cart.user_id == identity.user_id:
            return cart
        if isinstance(identity, Guest):
            record = self.guests.get_by_token(identity.session_token)
            if record is not None and cart.guest_id == record.id:
                return cart
        # brak dostepu wyglada jak brak koszyka
        raise CartNotFound()
