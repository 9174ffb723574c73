# agrimarket/api/deps.py
from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from agrimarket.data.database import get_db
from agrimarket.domain.errors import Unauthorized, Forbidden
from agrimarket.services.ai_client import AIClient
from agrimarket.services.auth_service import AuthService
from agrimarket.services.rate_limiter import RateLimiter

bearer = HTTPBearer(auto_error=False)

CUSTOMER_ROLES = {"customer", "buyer"}


@dataclass(frozen=True)
class Identity:
    """Who is calling; handed explicitly to every protected handler."""

    user_id: int
    role: str
    name: str
    token: str


def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Please authenticate")

    user = AuthService(db).authenticate(credentials.credentials)
    return Identity(user_id=user.id, role=user.role, name=user.name, token=credentials.credentials)


def require_farmer(identity: Identity = Depends(get_identity)) -> Identity:
    if identity.role != "farmer":
        raise Forbidden("Access denied. Farmers only.")
    return identity


def require_customer(identity: Identity = Depends(get_identity)) -> Identity:
    if identity.role not in CUSTOMER_ROLES:
        raise Forbidden("Access denied. Customers only.")
    return identity


def get_ai_client() -> AIClient:
    return AIClient()


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter


@dataclass(frozen=True)
class AIQuota:
    """
    Caller's AI request allowance.

    Handlers call ``charge()`` first thing in their body, so requests that
    fail authentication or validation never count against the window.
    """

    identity: Identity
    limiter: RateLimiter

    def charge(self) -> Identity:
        self.limiter.hit(self.identity.user_id)
        return self.identity


def rate_limited(role_check):
    def dependency(
        identity: Identity = Depends(role_check),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> AIQuota:
        return AIQuota(identity=identity, limiter=limiter)

    return dependency


farmer_ai = rate_limited(require_farmer)
customer_ai = rate_limited(require_customer)
