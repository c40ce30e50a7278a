"""Stripe Checkout adapter."""

import stripe

from storefront.domain.errors import (
    GatewayConfigError,
    GatewayError,
    GatewayImageError,
    GatewayPricingError,
    GatewaySessionNotFound,
    GatewayTimeout,
    InvalidSignature,
)
from storefront.domain.snapshot import SnapshotLine
from storefront.gateway.port import GatewayEvent, GatewaySession, PaymentGateway
from storefront.utils.retry import gateway_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _plain(obj) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def map_stripe_error(e: Exception) -> GatewayError:
    message = str(e)
    code = getattr(e, "code", None)

    if isinstance(e, stripe.APIConnectionError):
        return GatewayTimeout()
    if isinstance(e, stripe.AuthenticationError) or "Invalid API key" in message:
        return GatewayConfigError()
    if "No such checkout.session" in message:
        return GatewaySessionNotFound(message)
    if "No such price" in message:
        return GatewayPricingError()
    if "Not a valid URL" in message or code == "url_invalid":
        return GatewayImageError()
    return GatewayError(message or None)


def _line_item(line: SnapshotLine, currency: str) -> dict:
    return {
        "price_data": {
            "currency": currency,
            "product_data": {
                "name": line.name,
                "images": [line.image_url] if line.image_url else [],
            },
            "unit_amount": line.unit_price_cents,
        },
        "quantity": line.quantity,
    }


def _session(session) -> GatewaySession:
    intent = session.payment_intent
    if intent is not None and not isinstance(intent, str):
        intent = intent.id
    return GatewaySession(
        session_id=session.id,
        url=session.url,
        payment_status=session.payment_status,
        payment_intent=intent,
        metadata={k: str(v) for k, v in _plain(session.metadata).items()},
    )


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str, webhook_secret: str, timeout: int = 10) -> None:
        if not api_key:
            raise GatewayConfigError()
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @gateway_retry()
    def _create(self, **params):
        return stripe.checkout.Session.create(api_key=self.api_key, **params)

    @gateway_retry()
    def _retrieve(self, session_id: str):
        return stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)

    def create_checkout_session(
        self,
        lines: tuple[SnapshotLine, ...],
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> GatewaySession:
        try:
            session = self._create(
                mode="payment",
                payment_method_types=["card"],
                line_items=[_line_item(line, currency) for line in lines],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed: {type(e).__name__}: {e}")
            raise map_stripe_error(e) from e
        return _session(session)

    def retrieve_session(self, session_id: str) -> GatewaySession:
        try:
            session = self._retrieve(session_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe session {session_id} retrieve failed: {e}")
            raise map_stripe_error(e) from e
        return _session(session)

    def construct_event(self, payload: bytes, signature: str) -> GatewayEvent:
        if not self.webhook_secret:
            raise GatewayConfigError("Webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise InvalidSignature() from e

        obj = _plain(event["data"]["object"])
        return GatewayEvent(type=event["type"], object_id=obj.get("id"), data=obj)
