import pytest
import redis
from sqlalchemy.exc import OperationalError

from agrimarket.api.deps import get_rate_limiter
from agrimarket.data.database import _engine_kwargs
from agrimarket.domain.errors import RateLimited, Unavailable
from agrimarket.main import app
from agrimarket.services.cart_service import CartService
from agrimarket.services.rate_limiter import RateLimiter
from agrimarket.utils.settings import (
    BACKEND_RETRY_AFTER_SECONDS,
    DB_CONNECT_TIMEOUT_SECONDS,
    DB_STATEMENT_TIMEOUT_MS,
    REDIS_SOCKET_TIMEOUT_SECONDS,
)


class UnreachableRedis:
    def __init__(self):
        self.calls = 0

    def eval(self, *args):
        self.calls += 1
        raise redis.ConnectionError("Error 111 connecting to redis:6379. Connection refused.")


def test_limiter_store_down_is_unavailable():
    store = UnreachableRedis()

    with pytest.raises(Unavailable) as exc:
        RateLimiter(client=store).hit(1)

    assert not isinstance(exc.value, RateLimited)
    assert exc.value.status_code == 503
    assert exc.value.retry_after == BACKEND_RETRY_AFTER_SECONDS
    # retried before giving up
    assert store.calls == 3


def test_chat_with_limiter_store_down_is_503(client, customer, ai_stub):
    app.dependency_overrides[get_rate_limiter] = lambda: RateLimiter(client=UnreachableRedis())

    resp = client.post("/api/customer/chat", json={"message": "hi"}, headers=customer["headers"])

    assert resp.status_code == 503
    assert resp.json()["retryAfter"] == BACKEND_RETRY_AFTER_SECONDS
    assert resp.headers["Retry-After"] == str(BACKEND_RETRY_AFTER_SECONDS)
    assert ai_stub.prompts == []


def test_database_timeout_is_503(client, customer, monkeypatch):
    def timed_out(self, customer_id):
        raise OperationalError(
            "SELECT orders.id FROM orders", {}, Exception("canceling statement due to statement timeout")
        )

    monkeypatch.setattr(CartService, "get_cart", timed_out)

    resp = client.get("/api/customer/cart", headers=customer["headers"])

    assert resp.status_code == 503
    assert resp.json() == {
        "error": "Service temporarily unavailable. Please try again later.",
        "retryAfter": BACKEND_RETRY_AFTER_SECONDS,
    }
    assert resp.headers["Retry-After"] == str(BACKEND_RETRY_AFTER_SECONDS)


def test_postgres_engine_has_connect_and_statement_timeouts():
    kwargs = _engine_kwargs("postgresql://u:p@db:5432/agrimarket")

    assert kwargs["connect_args"]["connect_timeout"] == DB_CONNECT_TIMEOUT_SECONDS
    assert kwargs["connect_args"]["options"] == f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}"
    assert kwargs["pool_pre_ping"] is True


def test_default_limiter_client_has_socket_timeouts():
    limiter = RateLimiter()

    connection_kwargs = limiter.redis.connection_pool.connection_kwargs
    assert connection_kwargs["socket_timeout"] == REDIS_SOCKET_TIMEOUT_SECONDS
    assert connection_kwargs["socket_connect_timeout"] == REDIS_SOCKET_TIMEOUT_SECONDS
