from sqlalchemy import select
from sqlalchemy.orm import Session

from agrimarket.data.models.expense import ExpenseModel


class ExpenseRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_owned(self, expense_id: int, farmer_id: int) -> ExpenseModel | None:
        return self.db.execute(
            select(ExpenseModel).where(
                ExpenseModel.id == expense_id,
                ExpenseModel.farmer_id == farmer_id,
            )
        ).scalar_one_or_none()

    def list_by_farmer(self, farmer_id: int) -> list[ExpenseModel]:
        return list(
            self.db.execute(
                select(ExpenseModel)
                .where(ExpenseModel.farmer_id == farmer_id)
                .order_by(ExpenseModel.date.desc(), ExpenseModel.id.desc())
            ).scalars()
        )

    def create_expense(self, expense: ExpenseModel) -> ExpenseModel:
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def save(self, expense: ExpenseModel) -> ExpenseModel:
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def delete_expense(self, expense: ExpenseModel) -> None:
        self.db.delete(expense)
        self.db.commit()
