# storefront/services/order_service.py
from decimal import Decimal, InvalidOperation
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.payment import PaymentModel
from storefront.domain.errors import (
    EmptyCart,
    GatewaySessionNotFound,
    InvalidSignature,
    MissingMetadata,
    OrderConflict,
    OrderNotFound,
    PaymentNotCompleted,
    VariantNotFound,
)
from storefront.domain.order_status import OrderStatus, transition
from storefront.domain.pricing import from_cents
from storefront.domain.snapshot import CheckoutSnapshot
from storefront.gateway.port import PaymentGateway
from storefront.repos.cart_repo import CartRepo
from storefront.repos.checkout_repo import CheckoutRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.notification_service import NotificationService
from storefront.services.product_client import ProductClient
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.

    Zamowienie powstaje dokladnie raz na transakcje platnicza: unikalny
    payments.transaction_id jest bramka idempotencji, a Order, OrderItems
    i Payment ida w jednej transakcji. Do momentu insertu nic nie jest
    zapisywane, wiec ponowienie webhooka po timeoucie jest bezpieczne.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        product_client: ProductClient | None = None,
        notification_service: NotificationService | None = None,
        clear_cart_on_order: bool | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.checkouts = CheckoutRepo(db)
        self.gateway = gateway
        self.product_client = product_client or ProductClient()
        self.notification_service = notification_service or NotificationService()
        self.clear_cart_on_order = (
            settings.CLEAR_CART_ON_ORDER if clear_cart_on_order is None else clear_cart_on_order
        )

    def handle_webhook(self, payload: bytes, signature: str | None) -> Dict[str, Any]:
        """
        Use Case: zdarzenie z bramki platnosci.
        Podpis sprawdzany przed czymkolwiek innym.
        """
        if not signature:
            raise InvalidSignature("Missing webhook signature")
        event = self.gateway.construct_event(payload, signature)

        if event.type == CHECKOUT_COMPLETED:
            if not event.object_id:
                raise MissingMetadata("Webhook event carries no session id")
            return self.on_payment_confirmed(event.object_id)

        if event.type == "payment_intent.payment_failed":
            logger.error(f"Payment failed: {event.object_id} {event.data.get('last_payment_error')}")
            return {"outcome": "logged", "order_id": None}

        if event.type == "payment_intent.succeeded":
            logger.info(f"Payment succeeded: {event.object_id}")
            return {"outcome": "logged", "order_id": None}

        logger.info(f"Unhandled event type: {event.type}")
        return {"outcome": "ignored", "order_id": None}

    def on_payment_confirmed(self, session_id: str) -> Dict[str, Any]:
        """
        Use Case: materializacja zamowienia po potwierdzeniu platnosci.

        1. Pobiera sesje z bramki (status platnosci, payment intent)
        2. Czyta metadata: cartId, totalAmount
        3. Jesli Payment z tym transaction_id juz jest - sukces bez drugiego zamowienia
        4. Insert Order + OrderItems + Payment w jednej transakcji
        """
        session = self.gateway.retrieve_session(session_id)
        if session.payment_status != "paid":
            raise PaymentNotCompleted(session_id, session.payment_status)

        transaction_id = session.payment_intent or session.session_id
        cart_id, total_amount = self._parse_metadata(session.metadata)

        existing = self.repo.find_by_transaction(transaction_id)
        if existing is not None:
            logger.info(f"Payment {transaction_id} already processed as order {existing.id}, skipping")
            return {"outcome": "already_processed", "order_id": existing.id}

        lines = self._order_lines(session_id, cart_id)
        user_id = session.metadata.get("userId") or None

        try:
            order = OrderModel(
                cart_id=cart_id,
                user_id=user_id,
                checkout_session_id=session_id,
                status=OrderStatus.PENDING.value,
                total_amount=total_amount,
            )
            transition(order, OrderStatus.PAID)
            order.items = [
                OrderItemModel(
                    variant_id=variant_id,
                    name=name,
                    quantity=quantity,
                    price_at_purchase=price,
                )
                for variant_id, name, quantity, price in lines
            ]
            order.payment = PaymentModel(method="stripe", status="completed", transaction_id=transaction_id)
            self.repo.add_order(order)

            if self.clear_cart_on_order:
                self.carts.clear_items(cart_id)

            self.repo.commit()
        except IntegrityError:
            # rownolegle dostarczony ten sam event wygral insert
            self.repo.rollback()
            existing = self.repo.find_by_transaction(transaction_id)
            if existing is None:
                raise OrderConflict()
            logger.info(f"Payment {transaction_id} won by a concurrent delivery (order {existing.id})")
            return {"outcome": "already_processed", "order_id": existing.id}
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Order for session {session_id} not created: {e}")
            raise OrderConflict() from e

        logger.info(f"Order {order.id} created from cart {cart_id} (payment {transaction_id})")

        try:
            self.notification_service.send_order_paid(order.id, user_id, session.metadata.get("guestToken") or None)
        except Exception as e:
            # zamowienie juz jest, powiadomienie to best effort
            logger.warning(f"Failed to enqueue notification for order {order.id}: {e}")

        return {"outcome": "created", "order_id": order.id}

    def _parse_metadata(self, metadata: dict[str, str]) -> tuple[int, Decimal]:
        raw_cart, raw_total = metadata.get("cartId"), metadata.get("totalAmount")
        if not raw_cart or not raw_total:
            raise MissingMetadata()
        try:
            return int(raw_cart), Decimal(raw_total)
        except (ValueError, InvalidOperation) as e:
            raise MissingMetadata(f"Malformed cart metadata: cartId={raw_cart!r} totalAmount={raw_total!r}") from e

    def _order_lines(self, session_id: str, cart_id: int) -> list[tuple[str, str | None, int, Decimal]]:
        """Snapshot z checkoutu jesli jest; inaczej biezace pozycje koszyka."""
        record = self.checkouts.get_by_session_id(session_id)
        if record is not None:
            return [
                (line.variant_id, line.name, line.quantity, from_cents(line.unit_price_cents))
                for line in CheckoutSnapshot.lines_from_json(record.lines)
            ]

        logger.warning(f"No checkout snapshot for session {session_id}, using cart {cart_id}")
        lines = []
        for item in self.carts.get_items(cart_id):
            try:
                variant = self.product_client.fetch_variant(item.variant_id)
            except VariantNotFound:
                logger.warning(f"Variant {item.variant_id} missing from catalog, skipped")
                continue
            lines.append((item.variant_id, variant.name, item.quantity, variant.unit_price))
        if not lines:
            raise EmptyCart("No items found in cart")
        return lines

    # query
    def get_order(self, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFound()
        return self._order_dict(order)

    def get_order_by_session(self, session_id: str) -> Dict[str, Any]:
        order = self.repo.find_by_checkout_session(session_id)
        if order is None:
            order = self.repo.find_by_transaction(session_id)
        if order is None:
            try:
                session = self.gateway.retrieve_session(session_id)
            except GatewaySessionNotFound as e:
                raise OrderNotFound() from e
            if session.payment_intent:
                order = self.repo.find_by_transaction(session.payment_intent)
        if order is None:
            raise OrderNotFound()
        return self._order_dict(order)

    @staticmethod
    def _order_dict(order: OrderModel) -> Dict[str, Any]:
        payment = order.payment
        return {
            "id": order.id,
            "status": order.status,
            "total_amount": order.total_amount,
            "created_at": order.created_at,
            "items": [
                {
                    "variant_id": i.variant_id,
                    "name": i.name,
                    "quantity": i.quantity,
                    "price_at_purchase": i.price_at_purchase,
                }
                for i in order.items
            ],
            "payment": (
                {
                    "method": payment.method,
                    "status": payment.status,
                    "transaction_id": payment.transaction_id,
                    "paid_at": payment.paid_at,
                }
                if payment
                else None
            ),
        }
