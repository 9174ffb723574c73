import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-0123456789-0123456789-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from agrimarket.api.deps import get_ai_client, get_rate_limiter
from agrimarket.celery_worker import celery_app
from agrimarket.data.database import Base, SessionLocal, engine
from agrimarket.main import app
from agrimarket.services.rate_limiter import RateLimiter

celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True


class FakeRedis:
    """Dict-backed stand-in for the rate limiter's INCR/EXPIRE script."""

    def __init__(self):
        self.counts = {}
        self.ttls = {}

    def eval(self, script, numkeys, key, window):
        self.counts[key] = self.counts.get(key, 0) + 1
        if self.counts[key] == 1:
            self.ttls[key] = int(window)
        return [self.counts[key], self.ttls[key]]

    def expire_all(self):
        self.counts.clear()
        self.ttls.clear()


class StubAIClient:
    def __init__(self, answer="stub answer"):
        self.answer = answer
        self.prompts = []
        self.error = None

    @property
    def available(self):
        return True

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def ai_stub():
    return StubAIClient()


@pytest.fixture
def client(fake_redis, ai_stub):
    limiter = RateLimiter(client=fake_redis, max_requests=10, window=3600)
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_ai_client] = lambda: ai_stub
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def register(client, role, email, name=None, password="secret123"):
    resp = client.post(
        "/api/auth/register",
        json={"name": name or email.split("@")[0], "email": email, "password": password, "role": role},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return {
        "id": body["user"]["id"],
        "token": body["token"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


@pytest.fixture
def farmer(client):
    return register(client, "farmer", "farmer@example.com", name="Fiona Farmer")


@pytest.fixture
def other_farmer(client):
    return register(client, "farmer", "other@example.com", name="Oscar Other")


@pytest.fixture
def customer(client):
    return register(client, "customer", "customer@example.com", name="Carl Customer")


@pytest.fixture
def make_product(client, farmer):
    def _make(owner=None, **overrides):
        owner = owner or farmer
        payload = {
            "name": "Tomatoes",
            "description": "Fresh red tomatoes",
            "price": "10.00",
            "category": "Vegetables",
            "stock": 10,
            "location": "Valley Farm",
            "organic": True,
        }
        payload.update(overrides)
        resp = client.post("/api/products", json=payload, headers=owner["headers"])
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
