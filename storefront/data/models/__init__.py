#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from storefront.data.models.guest import GuestModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.checkout_session import CheckoutSessionModel
from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.payment import PaymentModel

__all__ = [
    "GuestModel",
    "CartModel",
    "CartItemModel",
    "CheckoutSessionModel",
    "OrderModel",
    "OrderItemModel",
    "PaymentModel",
]
