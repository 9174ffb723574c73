import pytest


def _create_trade(client, farmer, product_id, quantity=2, amount="20.00", **extra):
    payload = {"productId": product_id, "quantity": quantity, "amount": amount, **extra}
    return client.post("/api/farmer/trades", json=payload, headers=farmer["headers"])


def _set_status(client, farmer, trade_id, status):
    return client.put(
        f"/api/farmer/trades/{trade_id}/status",
        json={"status": status},
        headers=farmer["headers"],
    )


def _buckets(client, product_id):
    p = client.get(f"/api/products/{product_id}").json()
    return p["stock"], p["reserved"], p["sold"]


def test_create_trade_reserves_stock(client, farmer, customer, make_product):
    product = make_product(stock=10)

    resp = _create_trade(client, farmer, product["id"], buyerId=customer["id"])

    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"
    assert resp.json()["buyer"]["id"] == customer["id"]
    assert _buckets(client, product["id"]) == (8, 2, 0)


def test_create_trade_validation(client, farmer, other_farmer, make_product):
    product = make_product(stock=3)
    theirs = make_product(owner=other_farmer, name="Theirs")

    assert _create_trade(client, farmer, product["id"], quantity=0).status_code == 422
    assert _create_trade(client, farmer, product["id"], amount="0").status_code == 422
    assert _create_trade(client, farmer, theirs["id"]).status_code == 404
    assert _create_trade(client, farmer, product["id"], buyerId=9999).status_code == 404
    assert _create_trade(client, farmer, product["id"], quantity=4).status_code == 400
    assert _buckets(client, product["id"]) == (3, 0, 0)


def test_list_trades_only_own(client, farmer, other_farmer, make_product):
    mine = make_product()
    theirs = make_product(owner=other_farmer, name="Theirs")
    _create_trade(client, farmer, mine["id"])
    _create_trade(client, other_farmer, theirs["id"])

    trades = client.get("/api/farmer/trades", headers=farmer["headers"]).json()
    assert [t["productId"] for t in trades] == [mine["id"]]


def test_complete_moves_reserved_to_sold_without_touching_stock(client, farmer, make_product):
    product = make_product(stock=10)
    trade = _create_trade(client, farmer, product["id"]).json()

    resp = _set_status(client, farmer, trade["id"], "completed")

    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"
    assert _buckets(client, product["id"]) == (8, 0, 2)


def test_completed_back_to_pending_leaves_stock_unchanged(client, farmer, make_product):
    product = make_product(stock=10)
    trade = _create_trade(client, farmer, product["id"]).json()
    _set_status(client, farmer, trade["id"], "completed")
    stock_before = _buckets(client, product["id"])[0]

    resp = _set_status(client, farmer, trade["id"], "pending")

    assert resp.status_code == 200
    assert _buckets(client, product["id"]) == (stock_before, 2, 0)


@pytest.mark.parametrize("path", [
    ["cancelled"],
    ["completed", "cancelled"],
])
def test_cancel_returns_units_to_stock(client, farmer, make_product, path):
    product = make_product(stock=10)
    trade = _create_trade(client, farmer, product["id"]).json()

    for status in path:
        assert _set_status(client, farmer, trade["id"], status).status_code == 200

    assert _buckets(client, product["id"]) == (10, 0, 0)


def test_reviving_cancelled_trade_needs_stock(client, farmer, make_product):
    product = make_product(stock=2)
    trade = _create_trade(client, farmer, product["id"], quantity=2).json()
    _set_status(client, farmer, trade["id"], "cancelled")
    # stock is sold elsewhere in the meantime
    _create_trade(client, farmer, product["id"], quantity=1)

    resp = _set_status(client, farmer, trade["id"], "completed")

    assert resp.status_code == 400
    assert resp.json()["error"] == "Insufficient stock"
    assert _set_status(client, farmer, trade["id"], "pending").status_code == 400
    assert _buckets(client, product["id"]) == (1, 1, 0)

    trades = client.get("/api/farmer/trades", headers=farmer["headers"]).json()
    assert {t["id"]: t["status"] for t in trades}[trade["id"]] == "cancelled"


def test_same_status_is_noop(client, farmer, make_product):
    product = make_product(stock=10)
    trade = _create_trade(client, farmer, product["id"]).json()

    resp = _set_status(client, farmer, trade["id"], "pending")

    assert resp.status_code == 200
    assert _buckets(client, product["id"]) == (8, 2, 0)


def test_unknown_status_and_foreign_trade(client, farmer, other_farmer, make_product):
    product = make_product()
    trade = _create_trade(client, farmer, product["id"]).json()

    assert _set_status(client, farmer, trade["id"], "shipped").status_code == 400
    assert _set_status(client, other_farmer, trade["id"], "completed").status_code == 404
    assert _set_status(client, farmer, 9999, "completed").status_code == 404


def test_buckets_never_negative_through_a_sequence(client, farmer, make_product):
    product = make_product(stock=5)
    a = _create_trade(client, farmer, product["id"], quantity=3).json()
    b = _create_trade(client, farmer, product["id"], quantity=2).json()
    assert _create_trade(client, farmer, product["id"], quantity=1).status_code == 400

    for trade_id, status in [
        (a["id"], "completed"), (b["id"], "cancelled"), (a["id"], "pending"),
        (b["id"], "completed"), (a["id"], "cancelled"), (b["id"], "pending"),
    ]:
        _set_status(client, farmer, trade_id, status)
        stock, reserved, sold = _buckets(client, product["id"])
        assert min(stock, reserved, sold) >= 0
        assert stock + reserved + sold == 5
