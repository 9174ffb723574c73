# agrimarket/services/expense_service.py
from sqlalchemy.orm import Session

from agrimarket.data.models.expense import ExpenseModel
from agrimarket.domain.errors import NotFound
from agrimarket.domain.schemas import ExpenseIn, ExpenseUpdate
from agrimarket.repos.expense_repo import ExpenseRepo
from agrimarket.services.views import expense_view
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class ExpenseService:
    def __init__(self, db: Session):
        self.repo = ExpenseRepo(db)

    def list(self, farmer_id: int):
        return [expense_view(e) for e in self.repo.list_by_farmer(farmer_id)]

    def create(self, farmer_id: int, payload: ExpenseIn):
        expense = self.repo.create_expense(
            ExpenseModel(farmer_id=farmer_id, **payload.model_dump())
        )
        logger.info(f"Farmer {farmer_id} recorded expense {expense.id} ({expense.category}, {expense.amount})")
        return expense_view(expense)

    def update(self, farmer_id: int, expense_id: int, payload: ExpenseUpdate):
        expense = self._get_owned_or_404(farmer_id, expense_id)
        for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(expense, field, value)
        expense = self.repo.save(expense)
        logger.info(f"Expense {expense_id} updated by farmer {farmer_id}")
        return expense_view(expense)

    def delete(self, farmer_id: int, expense_id: int):
        expense = self._get_owned_or_404(farmer_id, expense_id)
        self.repo.delete_expense(expense)
        logger.info(f"Expense {expense_id} deleted by farmer {farmer_id}")
        return {"message": "Expense deleted successfully"}

    def _get_owned_or_404(self, farmer_id: int, expense_id: int) -> ExpenseModel:
        expense = self.repo.get_owned(expense_id, farmer_id)
        if not expense:
            raise NotFound("Expense not found")
        return expense
