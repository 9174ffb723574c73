# agrimarket/services/ai_service.py
import json

from sqlalchemy.orm import Session

from agrimarket.repos.expense_repo import ExpenseRepo
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.repos.trade_repo import TradeRepo
from agrimarket.services.ai_client import AIClient
from agrimarket.services.analytics_service import AnalyticsService
from agrimarket.services.views import product_view, trade_view, expense_view
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


def _dump(data) -> str:
    return json.dumps(data, indent=2, default=str)


class AIService:
    """
    Builds prompts from the caller's own marketplace data and returns the
    model's answer as plain text.
    """

    def __init__(self, db: Session, client: AIClient):
        self.client = client
        self.analytics = AnalyticsService(db)
        self.products = ProductRepo(db)
        self.trades = TradeRepo(db)
        self.expenses = ExpenseRepo(db)

    def _farmer_products(self, farmer_id: int):
        return [product_view(p, with_reviews=False) for p in self.products.list_by_farmer(farmer_id)]

    def analytics_report(self, farmer_id: int, period: str, metrics: list[str]):
        snapshot = self.analytics.snapshot(farmer_id, period)
        data = {"period": period, "metrics": metrics, **snapshot}

        prompt = (
            f"Analyze the following agricultural business data for period {period} "
            f"focusing on {', '.join(metrics)}:\n{_dump(data)}\n\n"
            "Provide detailed insights, trends, and recommendations based on this data."
        )
        logger.info(f"AI analytics for farmer {farmer_id} ({period}: {metrics})")

        return {
            "insights": self.client.generate(prompt),
            "summary": snapshot["summary"],
            "trends": snapshot["trends"],
            "period": period,
            "metrics": metrics,
        }

    def predictions(self, farmer_id: int):
        trades = [trade_view(t) for t in self.trades.list_by_farmer(farmer_id)]
        expenses = [expense_view(e) for e in self.expenses.list_by_farmer(farmer_id)]

        prompt = (
            "Based on the following data:\n"
            f"Products: {_dump(self._farmer_products(farmer_id))}\n"
            f"Trades: {_dump(trades)}\n"
            f"Expenses: {_dump(expenses)}\n"
            "Provide predictions for future sales, inventory needs, and potential expenses."
        )
        logger.info(f"AI predictions for farmer {farmer_id}")
        return {"predictions": self.client.generate(prompt)}

    def recommendations(self, farmer_id: int):
        prompt = (
            f"Based on the following products: {_dump(self._farmer_products(farmer_id))}, "
            "provide recommendations for new products or improvements."
        )
        logger.info(f"AI recommendations for farmer {farmer_id}")
        return {"recommendations": self.client.generate(prompt)}

    def market_insights(self, farmer_id: int):
        prompt = (
            f"Based on the following products: {_dump(self._farmer_products(farmer_id))}, "
            "provide market insights and trends."
        )
        logger.info(f"AI market insights for farmer {farmer_id}")
        return {"insights": self.client.generate(prompt)}

    def chat(self, user_id: int, message: str):
        prompt = (
            "As an agricultural marketplace assistant, respond to the following "
            f"customer query: {message}"
        )
        logger.info(f"AI chat for user {user_id}")
        return {"message": self.client.generate(prompt)}
