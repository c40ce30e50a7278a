from storefront.api.deps import GUEST_COOKIE

USER = {"X-User-Id": "u-1"}


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_anonymous_visitor_gets_guest_cart_and_cookie(client) -> None:
    response = client.get("/cart")

    assert response.status_code == 200
    assert GUEST_COOKIE in response.cookies
    body = response.json()
    assert body["items"] == []
    assert body["total_items"] == 0
    assert body["guest_id"] is not None

    # ten sam cookie = ten sam koszyk
    assert client.get("/cart").json()["id"] == body["id"]


def test_add_item_returns_fresh_cart(client) -> None:
    response = client.post("/cart/items", json={"variant_id": "tee-black-m", "quantity": 2}, headers=USER)

    assert response.status_code == 200
    body = response.json()
    assert body["action"] == "added"
    assert body["cart"]["total_items"] == 2
    assert body["cart"]["subtotal"] == "180.00"
    assert body["cart"]["items"][0]["unit_price"] == "90.00"


def test_insufficient_stock_is_conflict(client) -> None:
    response = client.post("/cart/items", json={"variant_id": "cap-red", "quantity": 4}, headers=USER)

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "insufficient_stock"


def test_invalid_quantity_and_unknown_variant(client) -> None:
    zero = client.post("/cart/items", json={"variant_id": "tee-black-m", "quantity": 0}, headers=USER)
    missing = client.post("/cart/items", json={"variant_id": "ghost", "quantity": 1}, headers=USER)

    assert zero.status_code == 400
    assert zero.json()["detail"]["code"] == "invalid_quantity"
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "variant_not_found"


def test_update_and_remove_item(client) -> None:
    added = client.post("/cart/items", json={"variant_id": "sock-3pk", "quantity": 1}, headers=USER).json()
    item_id = added["cart"]["items"][0]["id"]

    updated = client.patch(f"/cart/items/{item_id}", json={"quantity": 4}, headers=USER)
    assert updated.json()["cart"]["total_items"] == 4

    removed = client.delete(f"/cart/items/{item_id}", headers=USER)
    assert removed.json()["action"] == "removed"
    assert removed.json()["cart"]["items"] == []

    again = client.delete(f"/cart/items/{item_id}", headers=USER)
    assert again.status_code == 404


def test_guest_cart_merges_on_login(client) -> None:
    client.post("/cart/items", json={"variant_id": "tee-black-m", "quantity": 2})
    client.post("/cart/items", json={"variant_id": "tee-black-m", "quantity": 3}, headers=USER)

    response = client.post("/cart/merge", headers=USER)

    assert response.status_code == 200
    body = response.json()
    assert body["merged"] is True
    assert body["cart"]["items"][0]["quantity"] == 5
    assert "Max-Age=0" in response.headers["set-cookie"]

    again = client.post("/cart/merge", headers=USER)
    assert again.json() == {"merged": False, "items_merged": 0, "cart": None}


def test_merge_requires_login(client) -> None:
    client.get("/cart")

    assert client.post("/cart/merge").status_code == 401


def test_checkout_of_empty_cart_is_rejected(client) -> None:
    cart_id = client.get("/cart", headers=USER).json()["id"]

    response = client.post("/checkout", json={"cart_id": cart_id}, headers=USER)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "empty_cart"


def test_checkout_of_someone_elses_cart_is_not_found(client) -> None:
    cart_id = client.post("/cart/items", json={"variant_id": "sock-3pk"}, headers=USER).json()["cart"]["id"]

    response = client.post("/checkout", json={"cart_id": cart_id}, headers={"X-User-Id": "u-2"})

    assert response.status_code == 404


def test_paid_checkout_produces_exactly_one_order(client, gateway) -> None:
    cart_id = client.post(
        "/cart/items", json={"variant_id": "tee-black-m", "quantity": 2}, headers=USER
    ).json()["cart"]["id"]
    checkout = client.post("/checkout", json={"cart_id": cart_id}, headers=USER).json()
    assert checkout["total_cents"] == 18000

    session_id = checkout["session_id"]
    assert client.get(f"/orders/by-session/{session_id}").status_code == 404

    gateway.complete(session_id)
    payload = gateway.event_payload(session_id)
    headers = {"stripe-signature": gateway.sign(payload)}

    first = client.post("/webhooks/payments", content=payload, headers=headers)
    second = client.post("/webhooks/payments", content=payload, headers=headers)

    assert first.status_code == 200
    assert first.json()["outcome"] == "created"
    assert second.json() == {"received": True, "outcome": "already_processed", "order_id": first.json()["order_id"]}

    order = client.get(f"/orders/by-session/{session_id}").json()
    assert order["status"] == "paid"
    assert order["total_amount"] == "180.00"
    assert order["items"][0]["price_at_purchase"] == "90.00"
    assert client.get(f"/orders/{order['id']}").json()["id"] == order["id"]


def test_webhook_with_bad_signature_is_rejected(client, gateway) -> None:
    cart_id = client.post("/cart/items", json={"variant_id": "sock-3pk"}, headers=USER).json()["cart"]["id"]
    session_id = client.post("/checkout", json={"cart_id": cart_id}, headers=USER).json()["session_id"]
    gateway.complete(session_id)
    payload = gateway.event_payload(session_id)

    response = client.post("/webhooks/payments", content=payload, headers={"stripe-signature": "v1=forged"})
    unsigned = client.post("/webhooks/payments", content=payload)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "invalid_signature"
    assert unsigned.status_code == 400
    assert client.get(f"/orders/by-session/{session_id}").status_code == 404


def test_gateway_failure_is_reported_with_its_kind(client, gateway) -> None:
    from storefront.domain.errors import GatewayTimeout

    cart_id = client.post("/cart/items", json={"variant_id": "sock-3pk"}, headers=USER).json()["cart"]["id"]
    gateway.fail_with(GatewayTimeout())

    response = client.post("/checkout", json={"cart_id": cart_id}, headers=USER)

    assert response.status_code == 504
    assert response.json()["detail"]["code"] == "gateway_timeout"


def test_success_page_lookup_for_unknown_session_is_not_found(client) -> None:
    response = client.get("/orders/by-session/cs_test_never_created")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "order_not_found"
