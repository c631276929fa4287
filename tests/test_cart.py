from conftest import BUYER


def test_cart_requires_actor(client):
    r = client.get("/cart")
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "UNAUTHENTICATED"


def test_empty_cart_created_on_first_visit(client):
    r = client.get("/cart", headers=BUYER)
    assert r.status_code == 200
    body = r.json()
    assert body["items"] == []
    assert body["totals"]["subtotal_cents"] == 0


def test_add_item_increments_existing_line(client, add_product):
    pid = add_product(price_cents=2500, stock=10)

    client.post("/cart/items", json={"product_id": pid, "quantity": 2}, headers=BUYER)
    r = client.post("/cart/items", json={"product_id": pid, "quantity": 3}, headers=BUYER)

    assert r.status_code == 200
    items = r.json()["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 5
    assert items[0]["line_total_cents"] == 12500


def test_add_by_sku(client, add_product):
    add_product(price_cents=700, stock=10, name="Wipes", sku="WIP-1")

    r = client.post("/cart/items", json={"sku": "WIP-1", "quantity": 1}, headers=BUYER)

    assert r.status_code == 200
    assert r.json()["items"][0]["product"]["sku"] == "WIP-1"


def test_cart_keeps_price_snapshot(client, add_product, admin):
    pid = add_product(price_cents=1000, stock=10, sku="SNAP")
    client.post("/cart/items", json={"product_id": pid, "quantity": 1}, headers=BUYER)

    r = client.put(f"/products/{pid}", json={"price_cents": 9999}, headers=admin)
    assert r.status_code == 200

    r = client.post("/cart/items", json={"product_id": pid, "quantity": 1}, headers=BUYER)
    item = r.json()["items"][0]
    assert item["unit_price_cents"] == 1000
    assert item["quantity"] == 2


def test_adding_does_not_reserve_stock(client, add_product):
    pid = add_product(price_cents=1000, stock=1)

    # carts may hold more than is in stock, reservation happens at order time
    r = client.post("/cart/items", json={"product_id": pid, "quantity": 5}, headers=BUYER)
    assert r.status_code == 200

    r = client.get(f"/products/{pid}")
    assert r.json()["current_stock"] == 1


def test_add_item_validation(client, add_product):
    pid = add_product(price_cents=1000, stock=1)

    r = client.post("/cart/items", json={"product_id": pid, "quantity": 0}, headers=BUYER)
    assert r.status_code == 422

    r = client.post("/cart/items", json={"quantity": 1}, headers=BUYER)
    assert r.status_code == 422

    r = client.post("/cart/items", json={"product_id": 999, "quantity": 1}, headers=BUYER)
    assert r.status_code == 404


def test_update_to_zero_removes_line(client, add_product):
    a = add_product(price_cents=1000, stock=5, name="A")
    b = add_product(price_cents=2000, stock=5, name="B")
    client.post("/cart/items", json={"product_id": a, "quantity": 1}, headers=BUYER)
    client.post("/cart/items", json={"product_id": b, "quantity": 1}, headers=BUYER)

    r = client.put(f"/cart/items/{a}", json={"quantity": 0}, headers=BUYER)
    assert [i["product_id"] for i in r.json()["items"]] == [b]

    r = client.put(f"/cart/items/{b}", json={"quantity": 4}, headers=BUYER)
    assert r.json()["items"][0]["quantity"] == 4


def test_remove_item(client, add_product):
    pid = add_product(price_cents=1000, stock=5)
    client.post("/cart/items", json={"product_id": pid, "quantity": 1}, headers=BUYER)

    r = client.delete(f"/cart/items/{pid}", headers=BUYER)
    assert r.status_code == 200
    assert r.json()["items"] == []

    r = client.delete(f"/cart/items/{pid}", headers=BUYER)
    assert r.status_code == 404


def test_totals_preview(client, add_product):
    pid = add_product(price_cents=5000, stock=5)
    r = client.post("/cart/items", json={"product_id": pid, "quantity": 1}, headers=BUYER)

    totals = r.json()["totals"]
    assert totals == {
        "subtotal_cents": 5000,
        "tax_cents": 250 + 499,
        "shipping_cents": 1000,
        "total_cents": 5000 + 749 + 1000,
    }
