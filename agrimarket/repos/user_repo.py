from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from agrimarket.data.models.user import UserModel, UserTokenModel


class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.email == email)
        ).scalar_one_or_none()

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def add_token(self, user_id: int, token: str) -> None:
        self.db.add(UserTokenModel(user_id=user_id, token=token))
        self.db.commit()

    def has_token(self, user_id: int, token: str) -> bool:
        found = self.db.execute(
            select(UserTokenModel.id).where(
                UserTokenModel.user_id == user_id,
                UserTokenModel.token == token,
            )
        ).first()
        return found is not None

    def revoke_token(self, user_id: int, token: str) -> int:
        result = self.db.execute(
            delete(UserTokenModel).where(
                UserTokenModel.user_id == user_id,
                UserTokenModel.token == token,
            )
        )
        self.db.commit()
        return result.rowcount
