"""
Two sessions interleaved by hand: ``stale`` reads first, ``client`` writes and
commits, then ``stale`` acts on what it read. Every guarded write must refuse.
"""
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from agrimarket.data.database import SessionLocal
from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.trade import TradeModel
from agrimarket.domain.errors import Conflict
from agrimarket.domain.schemas import ProductUpdate
from agrimarket.services.cart_service import CartService
from agrimarket.services.order_service import OrderService
from agrimarket.services.product_service import ProductService
from agrimarket.services.trade_service import TradeService

from conftest import register


@pytest.fixture
def stale():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _add(client, customer, product_id, quantity=1):
    resp = client.post(
        "/api/customer/cart/add",
        json={"productId": product_id, "quantity": quantity},
        headers=customer["headers"],
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["cart"]


def _cart(client, customer):
    return client.get("/api/customer/cart", headers=customer["headers"]).json()["cart"]


def _buckets(client, product_id):
    p = client.get(f"/api/products/{product_id}").json()
    return p["stock"], p["reserved"], p["sold"]


def _trade_count(db):
    return db.execute(select(func.count()).select_from(TradeModel)).scalar_one()


def test_cart_write_on_old_version_is_refused(client, customer, make_product, stale):
    product = make_product()
    _add(client, customer, product["id"])
    assert CartService(stale).get_cart(customer["id"])["version"] == 1

    _add(client, customer, product["id"])

    with pytest.raises(Conflict) as exc:
        CartService(stale).add_item(customer["id"], product["id"], 5)

    assert exc.value.message == "Cart was modified by another request"
    cart = _cart(client, customer)
    assert cart["version"] == 2
    assert cart["items"][0]["quantity"] == 2


def test_second_open_cart_is_refused(client, customer, make_product, stale, monkeypatch):
    product = make_product()
    _add(client, customer, product["id"])

    svc = CartService(stale)
    # as if the existing cart had not been committed yet when this request looked
    monkeypatch.setattr(svc.repo, "get_cart_by_customer", lambda customer_id: None)

    with pytest.raises(Conflict) as exc:
        svc.add_item(customer["id"], product["id"], 3)

    assert exc.value.message == "Customer already has an open cart"
    stale.rollback()
    open_carts = stale.execute(
        select(func.count()).select_from(OrderModel).where(OrderModel.status == "cart")
    ).scalar_one()
    assert open_carts == 1
    assert _cart(client, customer)["items"][0]["quantity"] == 1


def test_checkout_of_old_cart_version_creates_nothing(client, customer, make_product, stale):
    tomatoes = make_product(stock=10)
    beans = make_product(name="Beans", price="4.00", stock=10)
    _add(client, customer, tomatoes["id"], 2)
    CartService(stale).get_cart(customer["id"])

    _add(client, customer, beans["id"], 1)

    with pytest.raises(Conflict):
        OrderService(stale).checkout(customer["id"])

    assert _trade_count(stale) == 0
    assert _buckets(client, tomatoes["id"]) == (10, 0, 0)
    cart = _cart(client, customer)
    assert cart["status"] == "cart"
    assert len(cart["items"]) == 2

    # the fresh cart still checks out
    resp = client.post("/api/customer/cart/checkout", headers=customer["headers"])
    assert resp.status_code == 200
    assert len(resp.json()["trades"]) == 2


def test_status_change_from_old_status_is_refused(client, farmer, make_product, stale):
    product = make_product(stock=10)
    first, _ = [
        client.post(
            "/api/farmer/trades",
            json={"productId": product["id"], "quantity": 2, "amount": "20.00"},
            headers=farmer["headers"],
        ).json()
        for _ in range(2)
    ]
    TradeService(stale).list(farmer["id"])

    cancel = client.put(
        f"/api/farmer/trades/{first['id']}/status", json={"status": "cancelled"}, headers=farmer["headers"]
    )
    assert cancel.status_code == 200
    assert _buckets(client, product["id"]) == (8, 2, 0)

    # the other trade's reservation would cover the move, only the status guard stops it
    with pytest.raises(Conflict) as exc:
        TradeService(stale).update_status(farmer["id"], first["id"], "completed")

    assert exc.value.message == "Trade was modified by another request"
    assert _buckets(client, product["id"]) == (8, 2, 0)
    trades = {t["id"]: t["status"] for t in client.get("/api/farmer/trades", headers=farmer["headers"]).json()}
    assert trades[first["id"]] == "cancelled"


def test_two_checkouts_compete_for_scarce_stock(client, customer, make_product):
    other = register(client, "customer", "second@example.com")
    product = make_product(stock=3)
    _add(client, customer, product["id"], 2)
    _add(client, other, product["id"], 2)

    first = client.post("/api/customer/cart/checkout", headers=customer["headers"])
    second = client.post("/api/customer/cart/checkout", headers=other["headers"])

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {"error": "Insufficient stock", "available": 1, "required": 2}
    assert _buckets(client, product["id"]) == (1, 2, 0)
    assert _cart(client, other)["items"][0]["quantity"] == 2


def test_product_delete_does_not_overwrite_newer_cart(client, farmer, customer, make_product, stale):
    gone = make_product()
    beans = make_product(name="Beans", price="4.00")
    _add(client, customer, gone["id"])
    CartService(stale).get_cart(customer["id"])

    _add(client, customer, beans["id"])

    with pytest.raises(Conflict):
        ProductService(stale).delete(farmer["id"], gone["id"])

    assert client.get(f"/api/products/{gone['id']}").status_code == 200
    assert len(_cart(client, customer)["items"]) == 2

    # a retry sees the current cart and goes through
    assert client.delete(f"/api/products/{gone['id']}", headers=farmer["headers"]).status_code == 200
    cart = _cart(client, customer)
    assert [i["product"]["name"] for i in cart["items"]] == ["Beans"]
    assert Decimal(str(cart["total"])) == Decimal("4.00")
    assert cart["version"] == 3


def test_restock_sets_the_requested_value_after_a_checkout(client, farmer, customer, make_product, stale):
    product = make_product(stock=10)
    ProductService(stale).get(product["id"])

    _add(client, customer, product["id"], 3)
    assert client.post("/api/customer/cart/checkout", headers=customer["headers"]).status_code == 200

    ProductService(stale).update(farmer["id"], product["id"], ProductUpdate(stock=20))

    assert _buckets(client, product["id"]) == (20, 3, 0)
