# agrimarket/services/auth_service.py
from datetime import datetime, timezone, timedelta
import uuid

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.user import UserModel
from agrimarket.domain.errors import Conflict, NotFound, Unauthorized
from agrimarket.domain.schemas import RegisterIn
from agrimarket.repos.user_repo import UserRepo
from agrimarket.services.views import user_view
from agrimarket.utils.settings import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRES_SECONDS
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def issue_token(user_id: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(seconds=JWT_EXPIRES_SECONDS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> int:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid token format")


class AuthService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def register(self, payload: RegisterIn):
        email = payload.email.lower().strip()
        if self.repo.get_by_email(email):
            raise Conflict("Email is already registered")

        user = UserModel(
            name=payload.name.strip(),
            email=email,
            password_hash=pwd_context.hash(payload.password),
            role=payload.role.value,
            location=payload.location.strip() if payload.location else None,
        )
        try:
            created = self.repo.create_user(user)
        except IntegrityError:
            self.repo.db.rollback()
            raise Conflict("Email is already registered")

        logger.info(f"Registered {created.role} {created.id}")
        return {"user": user_view(created), "token": self._new_token(created.id)}

    def login(self, email: str, password: str):
        user = self.repo.get_by_email(email.lower().strip())
        if not user or not pwd_context.verify(password, user.password_hash):
            raise Unauthorized("Invalid login credentials")

        return {"user": user_view(user), "token": self._new_token(user.id)}

    def logout(self, user_id: int, token: str) -> None:
        self.repo.revoke_token(user_id, token)
        logger.info(f"User {user_id} logged out")

    def profile(self, user_id: int):
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return user_view(user)

    def authenticate(self, token: str) -> UserModel:
        user_id = decode_token(token)
        user = self.repo.get_user(user_id)
        if not user:
            raise Unauthorized("User not found")
        if not self.repo.has_token(user_id, token):
            raise Unauthorized("Token has been revoked")
        return user

    def _new_token(self, user_id: int) -> str:
        token = issue_token(user_id)
        self.repo.add_token(user_id, token)
        return token
