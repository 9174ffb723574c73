# agrimarket/api/routers/customer.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agrimarket.api.deps import AIQuota, Identity, require_customer, customer_ai, get_ai_client
from agrimarket.data.database import get_db
from agrimarket.domain.schemas import (
    CartItemIn,
    QuantityIn,
    CartOut,
    CheckoutOut,
    OrderList,
    TradeList,
    ChatIn,
    ChatOut,
    MarketInsights,
)
from agrimarket.services.ai_client import AIClient
from agrimarket.services.ai_service import AIService
from agrimarket.services.analytics_service import AnalyticsService
from agrimarket.services.cart_service import CartService
from agrimarket.services.order_service import OrderService

router = APIRouter(prefix="/api/customer", tags=["customer"])


@router.get("/cart", response_model=CartOut)
def get_cart(identity: Identity = Depends(require_customer), db: Session = Depends(get_db)):
    svc = CartService(db)
    return {"cart": svc.get_cart(identity.user_id)}


@router.post("/cart/add", response_model=CartOut)
def add_to_cart(
    payload: CartItemIn,
    identity: Identity = Depends(require_customer),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    cart = svc.add_item(identity.user_id, payload.product_id, payload.quantity)
    return {"message": "Product added to cart", "cart": cart}


@router.put("/cart/update/{product_id}", response_model=CartOut)
def update_cart_item(
    product_id: int,
    payload: QuantityIn,
    identity: Identity = Depends(require_customer),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    cart = svc.update_quantity(identity.user_id, product_id, payload.quantity)
    return {"message": "Cart updated", "cart": cart}


@router.delete("/cart/remove/{product_id}", response_model=CartOut)
def remove_from_cart(
    product_id: int,
    identity: Identity = Depends(require_customer),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    cart = svc.remove_item(identity.user_id, product_id)
    return {"message": "Product removed from cart", "cart": cart}


@router.post("/cart/checkout", response_model=CheckoutOut)
def checkout(identity: Identity = Depends(require_customer), db: Session = Depends(get_db)):
    """
    Places the order: reserves stock and opens one pending trade per line.
    """
    svc = OrderService(db)
    return svc.checkout(identity.user_id)


@router.get("/orders", response_model=OrderList)
def list_orders(identity: Identity = Depends(require_customer), db: Session = Depends(get_db)):
    svc = OrderService(db)
    return {"orders": svc.list_orders(identity.user_id)}


@router.get("/trades", response_model=TradeList)
def list_trades(identity: Identity = Depends(require_customer), db: Session = Depends(get_db)):
    svc = OrderService(db)
    return {"trades": svc.list_trades(identity.user_id)}


@router.get("/market-insights", response_model=MarketInsights)
def market_insights(identity: Identity = Depends(require_customer), db: Session = Depends(get_db)):
    return AnalyticsService(db).market_insights()


@router.post("/chat", response_model=ChatOut)
def chat(
    payload: ChatIn,
    quota: AIQuota = Depends(customer_ai),
    client: AIClient = Depends(get_ai_client),
    db: Session = Depends(get_db),
):
    identity = quota.charge()
    return AIService(db, client).chat(identity.user_id, payload.message)
