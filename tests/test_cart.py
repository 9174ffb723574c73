from decimal import Decimal


def _add(client, customer, product_id, quantity=None):
    payload = {"productId": product_id}
    if quantity is not None:
        payload["quantity"] = quantity
    return client.post("/api/customer/cart/add", json=payload, headers=customer["headers"])


def test_empty_cart_when_none_exists(client, customer):
    resp = client.get("/api/customer/cart", headers=customer["headers"])

    assert resp.status_code == 200
    cart = resp.json()["cart"]
    assert cart["items"] == []
    assert Decimal(str(cart["total"])) == 0


def test_add_creates_cart_then_increments_line(client, customer, make_product):
    product = make_product(price="2.50")

    first = _add(client, customer, product["id"])
    second = _add(client, customer, product["id"], 3)

    assert first.status_code == 200
    assert first.json()["cart"]["items"][0]["quantity"] == 1
    cart = second.json()["cart"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 4
    assert Decimal(str(cart["total"])) == Decimal("10.00")
    assert cart["status"] == "cart"


def test_add_missing_product_is_404(client, customer):
    resp = _add(client, customer, 12345)
    assert resp.status_code == 404


def test_total_always_equals_sum_of_lines(client, customer, make_product):
    a = make_product(name="A", price="1.25")
    b = make_product(name="B", price="3.10")
    _add(client, customer, a["id"], 3)
    cart = _add(client, customer, b["id"], 2).json()["cart"]

    line_sum = sum(Decimal(str(i["lineTotal"])) for i in cart["items"])
    assert Decimal(str(cart["total"])) == line_sum == Decimal("9.95")


def test_total_uses_current_price(client, farmer, customer, make_product):
    product = make_product(price="2.00")
    _add(client, customer, product["id"], 2)
    client.put(f"/api/products/{product['id']}", json={"price": "3.00"}, headers=farmer["headers"])

    cart = _add(client, customer, product["id"], 1).json()["cart"]
    assert Decimal(str(cart["total"])) == Decimal("9.00")


def test_update_quantity(client, customer, make_product):
    product = make_product(price="4.00", stock=5)
    _add(client, customer, product["id"])

    resp = client.put(
        f"/api/customer/cart/update/{product['id']}",
        json={"quantity": 5},
        headers=customer["headers"],
    )

    assert resp.status_code == 200
    cart = resp.json()["cart"]
    assert cart["items"][0]["quantity"] == 5
    assert Decimal(str(cart["total"])) == Decimal("20.00")


def test_update_quantity_rejections(client, customer, make_product):
    product = make_product(stock=5)
    other = make_product(name="Other")
    url = f"/api/customer/cart/update/{product['id']}"

    # no cart yet
    assert client.put(url, json={"quantity": 1}, headers=customer["headers"]).status_code == 404

    _add(client, customer, product["id"])
    assert client.put(url, json={"quantity": 0}, headers=customer["headers"]).status_code == 400
    assert client.put(url, json={"quantity": 6}, headers=customer["headers"]).status_code == 400
    assert client.put(
        "/api/customer/cart/update/999", json={"quantity": 1}, headers=customer["headers"]
    ).status_code == 404
    assert client.put(
        f"/api/customer/cart/update/{other['id']}", json={"quantity": 1}, headers=customer["headers"]
    ).status_code == 404


def test_over_stock_update_reports_available(client, customer, make_product):
    product = make_product(stock=3)
    _add(client, customer, product["id"])

    resp = client.put(
        f"/api/customer/cart/update/{product['id']}",
        json={"quantity": 4},
        headers=customer["headers"],
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Only 3 items available in stock"


def test_remove_item_and_remove_missing_line(client, customer, make_product):
    a = make_product(name="A", price="1.00")
    b = make_product(name="B", price="2.00")
    _add(client, customer, a["id"])
    _add(client, customer, b["id"])

    removed = client.delete(f"/api/customer/cart/remove/{a['id']}", headers=customer["headers"])
    missing = client.delete(f"/api/customer/cart/remove/{a['id']}", headers=customer["headers"])

    assert removed.status_code == 200
    assert [i["product"]["name"] for i in removed.json()["cart"]["items"]] == ["B"]
    assert Decimal(str(removed.json()["cart"]["total"])) == Decimal("2.00")
    assert missing.status_code == 200
    assert [i["product"]["name"] for i in missing.json()["cart"]["items"]] == ["B"]


def test_remove_without_cart_is_404(client, customer):
    resp = client.delete("/api/customer/cart/remove/1", headers=customer["headers"])
    assert resp.status_code == 404


def test_each_mutation_bumps_version(client, customer, make_product):
    product = make_product()
    v1 = _add(client, customer, product["id"]).json()["cart"]["version"]
    v2 = _add(client, customer, product["id"]).json()["cart"]["version"]
    v3 = client.delete(
        f"/api/customer/cart/remove/{product['id']}", headers=customer["headers"]
    ).json()["cart"]["version"]

    assert v1 < v2 < v3
