from conftest import BUYER, OTHER_BUYER, stock_of, order_row


def _fill_cart(client, *lines, headers=BUYER):
    for product_id, quantity in lines:
        r = client.post("/cart/items", json={"product_id": product_id, "quantity": quantity}, headers=headers)
        assert r.status_code == 200


def test_create_order_totals_and_reservation(client, add_product):
    a = add_product(price_cents=15999, stock=10, name="Respirator", sku="RSP")
    b = add_product(price_cents=12999, stock=10, name="Gown", sku="GWN")
    _fill_cart(client, (a, 1), (b, 2))

    r = client.post("/orders", json={"po_number": "PO-77"}, headers=BUYER)

    assert r.status_code == 201
    order = r.json()
    assert order["status"] == "CREATED"
    assert order["payment_status"] == "PENDING"
    assert order["po_number"] == "PO-77"
    assert order["subtotal_cents"] == 41997
    assert order["tax_cents"] == 6289
    assert order["shipping_cents"] == 0
    assert order["total_cents"] == 48286
    assert sorted((l["product_id"], l["quantity"], l["unit_price_cents"]) for l in order["lines"]) == [
        (a, 1, 15999),
        (b, 2, 12999),
    ]
    assert {l["sku"] for l in order["lines"]} == {"RSP", "GWN"}

    assert stock_of(a) == 9
    assert stock_of(b) == 8

    # cart is emptied and linked to the order
    cart = client.get("/cart", headers=BUYER).json()
    assert cart["items"] == []
    assert cart["order_id"] == order["id"]


def test_insufficient_stock_changes_nothing(client, add_product):
    a = add_product(price_cents=1000, stock=10, name="Plenty")
    b = add_product(price_cents=1000, stock=1, name="Scarce")
    _fill_cart(client, (a, 3), (b, 2))

    r = client.post("/orders", json={}, headers=BUYER)

    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["code"] == "INSUFFICIENT_STOCK"
    assert detail["product_name"] == "Scarce"
    assert detail["requested"] == 2
    assert detail["available"] == 1

    assert stock_of(a) == 10
    assert stock_of(b) == 1
    assert client.get("/orders", headers=BUYER).json()["pagination"]["total"] == 0
    # cart is left as it was
    assert len(client.get("/cart", headers=BUYER).json()["items"]) == 2


def test_empty_cart_rejected(client):
    r = client.post("/orders", json={}, headers=BUYER)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "EMPTY_CART"


def test_cancel_restores_stock(client, add_product):
    a = add_product(price_cents=1000, stock=5, name="A")
    b = add_product(price_cents=3000, stock=5, name="B")
    _fill_cart(client, (a, 2), (b, 5))
    order_id = client.post("/orders", json={}, headers=BUYER).json()["id"]
    assert stock_of(a) == 3
    assert stock_of(b) == 0

    r = client.delete(f"/orders/{order_id}", headers=BUYER)

    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"
    assert stock_of(a) == 5
    assert stock_of(b) == 5

    # second cancel is an invalid transition and releases nothing
    r = client.delete(f"/orders/{order_id}", headers=BUYER)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "INVALID_TRANSITION"
    assert stock_of(a) == 5


def test_cannot_cancel_paid_order(client, add_product, provider):
    from conftest import make_event, sign

    pid = add_product(price_cents=1000, stock=5)
    _fill_cart(client, (pid, 2))
    order_id = client.post("/orders", json={}, headers=BUYER).json()["id"]

    payload = make_event("checkout.session.completed", order_id, payment_status="paid")
    assert client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": sign(payload)}).status_code == 200
    assert order_row(order_id).status == "PAID"

    r = client.delete(f"/orders/{order_id}", headers=BUYER)

    assert r.status_code == 400
    assert r.json()["detail"]["current"] == "PAID"
    assert order_row(order_id).status == "PAID"
    assert stock_of(pid) == 3


def test_orders_are_private(client, add_product):
    pid = add_product(price_cents=1000, stock=5)
    _fill_cart(client, (pid, 1))
    order_id = client.post("/orders", json={}, headers=BUYER).json()["id"]

    assert client.get(f"/orders/{order_id}", headers=OTHER_BUYER).status_code == 403
    assert client.delete(f"/orders/{order_id}", headers=OTHER_BUYER).status_code == 403
    assert client.get("/orders/999", headers=BUYER).status_code == 404
    assert client.delete("/orders/999", headers=BUYER).status_code == 404
    assert order_row(order_id).status == "CREATED"


def test_list_orders_paginated_newest_first(client, add_product):
    pid = add_product(price_cents=1000, stock=10)
    ids = []
    for _ in range(3):
        _fill_cart(client, (pid, 1))
        ids.append(client.post("/orders", json={}, headers=BUYER).json()["id"])

    r = client.get("/orders?page=1&limit=2", headers=BUYER)
    body = r.json()
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert [o["id"] for o in body["data"]] == [ids[2], ids[1]]

    r = client.get("/orders?page=2&limit=2", headers=BUYER)
    assert [o["id"] for o in r.json()["data"]] == [ids[0]]

    assert client.get("/orders", headers=OTHER_BUYER).json()["data"] == []


def test_ship_requires_admin_and_paid(client, add_product, admin):
    from conftest import make_event, sign

    pid = add_product(price_cents=1000, stock=5)
    _fill_cart(client, (pid, 1))
    order_id = client.post("/orders", json={}, headers=BUYER).json()["id"]

    assert client.post(f"/orders/{order_id}/ship", headers=BUYER).status_code == 403

    r = client.post(f"/orders/{order_id}/ship", headers=admin)
    assert r.status_code == 400

    payload = make_event("payment_intent.succeeded", order_id, id="pi_1")
    client.post("/webhooks/payment", content=payload, headers={"Stripe-Signature": sign(payload)})

    r = client.post(f"/orders/{order_id}/ship", headers=admin)
    assert r.status_code == 200
    assert r.json()["status"] == "SHIPPED"
    assert client.delete(f"/orders/{order_id}", headers=BUYER).status_code == 400


def test_last_unit_goes_to_first_order(client, add_product):
    pid = add_product(price_cents=1000, stock=1, name="Last box")
    _fill_cart(client, (pid, 1), headers=BUYER)
    _fill_cart(client, (pid, 1), headers=OTHER_BUYER)

    first = client.post("/orders", json={}, headers=BUYER)
    second = client.post("/orders", json={}, headers=OTHER_BUYER)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"]["available"] == 0
    assert stock_of(pid) == 0
    assert client.get("/orders", headers=OTHER_BUYER).json()["pagination"]["total"] == 0
