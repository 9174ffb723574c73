# agrimarket/api/routers/farmer.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agrimarket.api.deps import AIQuota, Identity, require_farmer, farmer_ai, get_ai_client
from agrimarket.data.database import get_db
from agrimarket.domain.schemas import (
    ExpenseIn,
    ExpenseUpdate,
    ExpenseOut,
    TradeCreate,
    TradeStatusIn,
    TradeOut,
    Period,
    SalesAnalytics,
    InventoryAnalytics,
    ExpenseAnalytics,
    AIAnalyticsIn,
    AIAnalyticsOut,
    PredictionsOut,
    RecommendationsOut,
    InsightsOut,
    MessageOut,
)
from agrimarket.services.ai_client import AIClient
from agrimarket.services.ai_service import AIService
from agrimarket.services.analytics_service import AnalyticsService
from agrimarket.services.expense_service import ExpenseService
from agrimarket.services.trade_service import TradeService

router = APIRouter(prefix="/api/farmer", tags=["farmer"])


# expenses

@router.post("/expenses", response_model=ExpenseOut, status_code=201)
def add_expense(
    payload: ExpenseIn,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    return ExpenseService(db).create(identity.user_id, payload)


@router.get("/expenses", response_model=List[ExpenseOut])
def list_expenses(identity: Identity = Depends(require_farmer), db: Session = Depends(get_db)):
    return ExpenseService(db).list(identity.user_id)


@router.put("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    return ExpenseService(db).update(identity.user_id, expense_id, payload)


@router.delete("/expenses/{expense_id}", response_model=MessageOut)
def delete_expense(
    expense_id: int,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    return ExpenseService(db).delete(identity.user_id, expense_id)


# trades

@router.get("/trades", response_model=List[TradeOut])
def list_trades(identity: Identity = Depends(require_farmer), db: Session = Depends(get_db)):
    return TradeService(db).list(identity.user_id)


@router.post("/trades", response_model=TradeOut, status_code=201)
def create_trade(
    payload: TradeCreate,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    svc = TradeService(db)
    return svc.create(
        farmer_id=identity.user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        amount=payload.amount,
        buyer_id=payload.buyer_id,
    )


@router.put("/trades/{trade_id}/status", response_model=TradeOut)
def update_trade_status(
    trade_id: int,
    payload: TradeStatusIn,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    """
    Confirms or cancels a trade; reserved units move to sold or back to stock.
    """
    svc = TradeService(db)
    return svc.update_status(identity.user_id, trade_id, payload.status)


# analytics

@router.get("/analytics/sales", response_model=SalesAnalytics)
def sales_analytics(
    period: Period = Period.MONTHLY,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).sales(identity.user_id, period.value)


@router.get("/analytics/inventory", response_model=InventoryAnalytics)
def inventory_analytics(identity: Identity = Depends(require_farmer), db: Session = Depends(get_db)):
    return AnalyticsService(db).inventory(identity.user_id)


@router.get("/analytics/expenses", response_model=ExpenseAnalytics)
def expense_analytics(
    period: Period = Period.MONTHLY,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).expenses_summary(identity.user_id, period.value)


# AI

@router.get("/analytics/predictions", response_model=PredictionsOut)
def predictions(
    quota: AIQuota = Depends(farmer_ai),
    client: AIClient = Depends(get_ai_client),
    db: Session = Depends(get_db),
):
    identity = quota.charge()
    return AIService(db, client).predictions(identity.user_id)


@router.post("/ai-analytics", response_model=AIAnalyticsOut)
def ai_analytics(
    payload: AIAnalyticsIn,
    quota: AIQuota = Depends(farmer_ai),
    client: AIClient = Depends(get_ai_client),
    db: Session = Depends(get_db),
):
    identity = quota.charge()
    svc = AIService(db, client)
    return svc.analytics_report(identity.user_id, payload.period.value, payload.metrics)


@router.get("/ai-recommendations", response_model=RecommendationsOut)
def ai_recommendations(
    quota: AIQuota = Depends(farmer_ai),
    client: AIClient = Depends(get_ai_client),
    db: Session = Depends(get_db),
):
    identity = quota.charge()
    return AIService(db, client).recommendations(identity.user_id)


@router.get("/market-insights", response_model=InsightsOut)
def market_insights(
    quota: AIQuota = Depends(farmer_ai),
    client: AIClient = Depends(get_ai_client),
    db: Session = Depends(get_db),
):
    identity = quota.charge()
    return AIService(db, client).market_insights(identity.user_id)
