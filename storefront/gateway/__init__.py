"""Payment gateway factory.

get_gateway() picks the adapter from PAYMENT_GATEWAY (fake by default);
set_gateway() / reset_gateway() let tests swap it.
"""

from storefront.gateway.port import PaymentGateway
from storefront.utils import settings

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        mode = settings.PAYMENT_GATEWAY.strip().lower()
        if mode == "stripe":
            from storefront.gateway.stripe_adapter import StripeGateway

            _current_gateway = StripeGateway(
                api_key=settings.STRIPE_SECRET_KEY,
                webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
                timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            )
        elif mode == "fake":
            from storefront.gateway.fake_adapter import FakeGateway

            _current_gateway = FakeGateway(webhook_secret=settings.STRIPE_WEBHOOK_SECRET or "whsec_fake")
        else:
            raise ValueError(f"Unknown PAYMENT_GATEWAY={mode!r}. Expected fake or stripe.")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
