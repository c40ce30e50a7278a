# storefront/domain/errors.py
"""Typed failures raised by the cart, checkout and order services.

Routers turn these into HTTP responses via ``status_code``; nothing from
SQLAlchemy, requests or stripe is allowed to leave a service unconverted.
"""


class CommerceError(Exception):
    code = "commerce_error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return self.code.replace("_", " ").capitalize()


# walidacja

class InvalidQuantity(CommerceError):
    code = "invalid_quantity"

    def __init__(self, quantity: int) -> None:
        super().__init__(f"Quantity must be greater than 0 (got {quantity})")
        self.quantity = quantity


class EmptyCart(CommerceError):
    code = "empty_cart"

    def default_message(self) -> str:
        return "Cart is empty"


class MissingMetadata(CommerceError):
    code = "missing_metadata"

    def default_message(self) -> str:
        return "Missing cart information in session metadata"


class PaymentNotCompleted(CommerceError):
    code = "payment_not_completed"
    status_code = 409

    def __init__(self, session_id: str, payment_status: str | None) -> None:
        super().__init__(f"Payment for session {session_id} is not completed (status={payment_status})")
        self.session_id = session_id
        self.payment_status = payment_status


# not found

class NotFound(CommerceError):
    status_code = 404


class VariantNotFound(NotFound):
    code = "variant_not_found"

    def __init__(self, variant_id: str) -> None:
        super().__init__(f"Product variant {variant_id} not found")
        self.variant_id = variant_id


class ItemNotFound(NotFound):
    code = "item_not_found"

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Cart item {item_id} not found")
        self.item_id = item_id


class CartNotFound(NotFound):
    code = "cart_not_found"

    def default_message(self) -> str:
        return "Cart not found or access denied"


class OrderNotFound(NotFound):
    code = "order_not_found"

    def default_message(self) -> str:
        return "Order not found"


# konflikty

class InsufficientStock(CommerceError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, variant_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for {variant_id}: requested {requested}, available {available}"
        )
        self.variant_id = variant_id
        self.requested = requested
        self.available = available


class CartConflict(CommerceError):
    code = "cart_conflict"
    status_code = 409

    def default_message(self) -> str:
        return "Cart was modified by another request, please retry"


class OrderConflict(CommerceError):
    code = "order_conflict"
    status_code = 409

    def default_message(self) -> str:
        return "Order could not be recorded, please retry"


class InvalidTransition(CommerceError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Order cannot move from {current} to {target}")
        self.current = current
        self.target = target


# autentycznosc

class InvalidSignature(CommerceError):
    code = "invalid_signature"

    def default_message(self) -> str:
        return "Webhook signature verification failed"


# upstream

class CatalogUnavailable(CommerceError):
    code = "catalog_unavailable"
    status_code = 503


class GatewayError(CommerceError):
    """Base class for payment gateway failures."""

    code = "gateway_error"
    status_code = 502
    retryable = False

    def default_message(self) -> str:
        return "Failed to create checkout session"


class GatewayPricingError(GatewayError):
    code = "gateway_pricing_error"

    def default_message(self) -> str:
        return "Product pricing error. Please refresh and try again."


class GatewayConfigError(GatewayError):
    code = "gateway_config_error"
    status_code = 503

    def default_message(self) -> str:
        return "Payment system configuration error. Please contact support."


class GatewayImageError(GatewayError):
    code = "gateway_image_error"

    def default_message(self) -> str:
        return "Product image configuration error. Please contact support."


class GatewayTimeout(GatewayError):
    code = "gateway_timeout"
    status_code = 504
    retryable = True

    def default_message(self) -> str:
        return "Payment provider did not respond in time, please retry"


class GatewaySessionNotFound(GatewayError):
    code = "gateway_session_not_found"
    status_code = 404

    def default_message(self) -> str:
        return "Checkout session not found"
