from decimal import Decimal

import pytest

from agrimarket.data.models.product import ProductModel
from agrimarket.data.models.user import UserModel
from agrimarket.domain.errors import Conflict, NotFound, InvalidArgument
from agrimarket.services.stock_service import StockService


@pytest.fixture
def product(db):
    farmer = UserModel(name="F", email="f@example.com", password_hash="x", role="farmer")
    db.add(farmer)
    db.flush()
    p = ProductModel(farmer_id=farmer.id, name="Corn", price=Decimal("1.00"), category="Grains", stock=5)
    db.add(p)
    db.commit()
    return p


def _counts(db, product_id):
    db.expire_all()
    p = db.get(ProductModel, product_id)
    return p.stock, p.reserved, p.sold


def test_adjust_stock_up_and_down(db, product):
    svc = StockService(db)

    svc.adjust_stock(product.id, 3)
    svc.adjust_stock(product.id, -8)
    db.commit()

    assert _counts(db, product.id) == (0, 0, 0)


def test_adjust_stock_never_goes_negative(db, product):
    svc = StockService(db)

    with pytest.raises(Conflict) as exc:
        svc.adjust_stock(product.id, -6)

    assert exc.value.details == {"available": 5, "required": 6}
    db.rollback()
    assert _counts(db, product.id) == (5, 0, 0)


def test_reserve_and_release(db, product):
    svc = StockService(db)

    svc.reserve(product.id, 4)
    assert _counts(db, product.id) == (1, 4, 0)
    svc.release(product.id, 4)
    db.commit()

    assert _counts(db, product.id) == (5, 0, 0)


def test_release_more_than_reserved_is_rejected(db, product):
    svc = StockService(db)
    svc.reserve(product.id, 1)

    with pytest.raises(Conflict):
        svc.release(product.id, 2)


def test_transition_follows_status_buckets(db, product):
    svc = StockService(db)
    svc.reserve(product.id, 2)

    svc.transition(product.id, 2, "pending", "completed")
    assert _counts(db, product.id) == (3, 0, 2)
    svc.transition(product.id, 2, "completed", "cancelled")
    assert _counts(db, product.id) == (5, 0, 0)


def test_unknown_status_and_bad_quantity(db, product):
    svc = StockService(db)

    with pytest.raises(InvalidArgument):
        svc.transition(product.id, 1, "pending", "shipped")
    with pytest.raises(InvalidArgument):
        svc.reserve(product.id, 0)


def test_missing_product(db):
    with pytest.raises(NotFound):
        StockService(db).reserve(42, 1)


def test_set_stock_overwrites_available_only(db, product):
    svc = StockService(db)
    svc.reserve(product.id, 2)

    svc.set_stock(product.id, 12)
    db.commit()

    assert _counts(db, product.id) == (12, 2, 0)


def test_set_stock_missing_product_or_negative(db, product):
    svc = StockService(db)

    with pytest.raises(NotFound):
        svc.set_stock(999, 1)
    with pytest.raises(InvalidArgument):
        svc.set_stock(product.id, -1)
