from decimal import Decimal

import pytest
from sqlalchemy import func, select

from storefront.data.models.order import OrderModel
from storefront.data.models.payment import PaymentModel
from storefront.domain.errors import (
    InvalidSignature,
    MissingMetadata,
    OrderNotFound,
    PaymentNotCompleted,
)
from storefront.domain.identity import AuthenticatedUser
from storefront.services.cart_resolver import CartResolver
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService

USER = AuthenticatedUser("u-1")


def _count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def _checkout(db, catalog, gateway, *items) -> tuple[int, str]:
    cart_id = CartResolver(db).resolve(USER).cart_id
    carts = CartService(db, catalog)
    for variant_id, quantity in items:
        carts.add_item(cart_id, variant_id, quantity)
    session_id = CheckoutService(db, catalog, gateway, base_url="http://shop.test").begin_checkout(cart_id, USER)[
        "session_id"
    ]
    return cart_id, session_id


@pytest.fixture
def orders(db, catalog, gateway, notifier) -> OrderService:
    return OrderService(db, gateway, product_client=catalog, notification_service=notifier)


def _deliver(orders: OrderService, gateway, session_id: str, event_type: str = "checkout.session.completed"):
    payload = gateway.event_payload(session_id, event_type)
    return orders.handle_webhook(payload, gateway.sign(payload))


def test_paid_session_becomes_order(db, catalog, gateway, orders, notifier) -> None:
    cart_id, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 2))
    paid = gateway.complete(session_id)

    result = _deliver(orders, gateway, session_id)

    assert result["outcome"] == "created"
    order = orders.get_order(result["order_id"])
    assert order["status"] == "paid"
    assert order["total_amount"] == Decimal("180.00")
    assert [(i["variant_id"], i["quantity"], i["price_at_purchase"]) for i in order["items"]] == [
        ("tee-black-m", 2, Decimal("90.00"))
    ]
    assert order["payment"]["transaction_id"] == paid.payment_intent
    assert order["payment"]["method"] == "stripe"
    assert order["payment"]["status"] == "completed"
    assert notifier.sent == [(result["order_id"], "u-1", None)]


def test_duplicate_delivery_creates_one_order(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))
    gateway.complete(session_id)

    first = _deliver(orders, gateway, session_id)
    second = _deliver(orders, gateway, session_id)

    assert second == {"outcome": "already_processed", "order_id": first["order_id"]}
    assert _count(db, OrderModel) == 1
    assert _count(db, PaymentModel) == 1


def test_concurrent_delivery_losing_the_insert_reports_success(
    db, catalog, gateway, orders, notifier, monkeypatch: pytest.MonkeyPatch
) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("sock-3pk", 3))
    gateway.complete(session_id)
    first = _deliver(orders, gateway, session_id)

    late = OrderService(db, gateway, product_client=catalog, notification_service=notifier)
    real_find = late.repo.find_by_transaction
    calls = []

    def stale_find(transaction_id):
        # pierwsze sprawdzenie nie widzi jeszcze zwyciezcy
        calls.append(transaction_id)
        return None if len(calls) == 1 else real_find(transaction_id)

    monkeypatch.setattr(late.repo, "find_by_transaction", stale_find)

    result = late.on_payment_confirmed(session_id)

    assert result == {"outcome": "already_processed", "order_id": first["order_id"]}
    assert _count(db, OrderModel) == 1
    assert len(notifier.sent) == 1


def test_prices_are_frozen_at_checkout(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 2))
    catalog.add("tee-black-m", "120.00", stock=5)
    gateway.complete(session_id)

    order = orders.get_order(_deliver(orders, gateway, session_id)["order_id"])

    assert order["items"][0]["price_at_purchase"] == Decimal("90.00")
    assert order["total_amount"] == Decimal("180.00")


def test_sale_price_is_charged(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("cap-red", 2))
    gateway.complete(session_id)

    order = orders.get_order(_deliver(orders, gateway, session_id)["order_id"])

    assert order["items"][0]["price_at_purchase"] == Decimal("19.99")
    assert order["total_amount"] == Decimal("39.98")


@pytest.mark.parametrize("signature", [None, "", "v1=deadbeef"])
def test_bad_signature_has_no_side_effects(db, catalog, gateway, orders, notifier, signature) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))
    gateway.complete(session_id)
    payload = gateway.event_payload(session_id)

    with pytest.raises(InvalidSignature):
        orders.handle_webhook(payload, signature)

    assert _count(db, OrderModel) == 0
    assert notifier.sent == []


def test_tampered_payload_is_rejected(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))
    gateway.complete(session_id)
    payload = gateway.event_payload(session_id)
    signature = gateway.sign(payload)

    with pytest.raises(InvalidSignature):
        orders.handle_webhook(payload.replace(b"checkout", b"Checkout"), signature)

    assert _count(db, OrderModel) == 0


def test_unpaid_session_is_not_materialized(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))

    with pytest.raises(PaymentNotCompleted) as exc:
        _deliver(orders, gateway, session_id)

    assert exc.value.payment_status == "unpaid"
    assert _count(db, OrderModel) == 0


def test_session_without_cart_metadata_fails(db, gateway, orders) -> None:
    session = gateway.create_checkout_session(
        lines=(), currency="usd", success_url="http://x", cancel_url="http://x", metadata={}
    )
    gateway.complete(session.session_id)

    with pytest.raises(MissingMetadata):
        orders.on_payment_confirmed(session.session_id)

    assert _count(db, OrderModel) == 0


def test_falls_back_to_cart_when_snapshot_is_missing(db, catalog, gateway, orders) -> None:
    cart_id = CartResolver(db).resolve(USER).cart_id
    CartService(db, catalog).add_item(cart_id, "sock-3pk", 2)
    session = gateway.create_checkout_session(
        lines=(),
        currency="usd",
        success_url="http://x",
        cancel_url="http://x",
        metadata={"cartId": str(cart_id), "userId": "u-1", "totalAmount": "25.00"},
    )
    gateway.complete(session.session_id)

    order = orders.get_order(orders.on_payment_confirmed(session.session_id)["order_id"])

    assert [(i["variant_id"], i["quantity"], i["price_at_purchase"]) for i in order["items"]] == [
        ("sock-3pk", 2, Decimal("12.50"))
    ]


def test_cart_is_kept_unless_clearing_is_enabled(db, catalog, gateway, notifier) -> None:
    cart_id, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))
    gateway.complete(session_id)
    carts = CartService(db, catalog)

    OrderService(db, gateway, product_client=catalog, notification_service=notifier).on_payment_confirmed(session_id)
    assert carts.get_cart(cart_id)["total_items"] == 1

    _, other_session = _checkout(db, catalog, gateway)
    gateway.complete(other_session)
    OrderService(
        db, gateway, product_client=catalog, notification_service=notifier, clear_cart_on_order=True
    ).on_payment_confirmed(other_session)
    assert carts.get_cart(cart_id)["items"] == []


def test_notification_failure_keeps_the_order(db, catalog, gateway) -> None:
    class BrokenNotifier:
        def send_order_paid(self, order_id, user_id, guest_token):
            raise ConnectionError("broker down")

    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))
    gateway.complete(session_id)

    result = OrderService(
        db, gateway, product_client=catalog, notification_service=BrokenNotifier()
    ).on_payment_confirmed(session_id)

    assert result["outcome"] == "created"
    assert _count(db, OrderModel) == 1


@pytest.mark.parametrize(
    ("event_type", "outcome"),
    [
        ("payment_intent.succeeded", "logged"),
        ("payment_intent.payment_failed", "logged"),
        ("customer.created", "ignored"),
    ],
)
def test_other_events_are_acknowledged_without_orders(db, catalog, gateway, orders, event_type, outcome) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))
    gateway.complete(session_id)

    result = _deliver(orders, gateway, session_id, event_type)

    assert result == {"outcome": outcome, "order_id": None}
    assert _count(db, OrderModel) == 0


def test_order_lookup_by_session(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 2))
    gateway.complete(session_id)
    order_id = _deliver(orders, gateway, session_id)["order_id"]

    assert orders.get_order_by_session(session_id)["id"] == order_id


def test_order_lookup_for_unpaid_session_is_not_found(db, catalog, gateway, orders) -> None:
    _, session_id = _checkout(db, catalog, gateway, ("tee-black-m", 1))

    with pytest.raises(OrderNotFound):
        orders.get_order_by_session(session_id)


def test_missing_order_is_not_found(db, gateway, orders) -> None:
    with pytest.raises(OrderNotFound):
        orders.get_order(999)


def test_order_lookup_for_unknown_session_is_not_found(db, gateway, orders) -> None:
    with pytest.raises(OrderNotFound):
        orders.get_order_by_session("cs_test_never_created")
