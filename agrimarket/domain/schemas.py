# agrimarket/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Role(str, Enum):
    FARMER = "farmer"
    CUSTOMER = "customer"
    BUYER = "buyer"


class Category(str, Enum):
    VEGETABLES = "Vegetables"
    FRUITS = "Fruits"
    GRAINS = "Grains"
    DAIRY = "Dairy"
    MEAT = "Meat"
    OTHER = "Other"


class OrderStatus(str, Enum):
    CART = "cart"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TradeStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Period(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# ---------------------------------------------------------------- auth

class RegisterIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role
    location: Optional[str] = None


class LoginIn(CamelModel):
    email: EmailStr
    password: str


class UserOut(CamelModel):
    id: int
    name: str
    email: str
    role: str
    location: Optional[str] = None
    created_at: datetime


class UserSummary(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    location: Optional[str] = None


class AuthOut(CamelModel):
    user: UserOut
    token: str


class VerifyOut(CamelModel):
    valid: bool
    user: UserOut


class MessageOut(CamelModel):
    message: str


# ---------------------------------------------------------------- catalog

class ProductImage(CamelModel):
    url: str
    public_id: str


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    price: Decimal = Field(..., ge=0)
    category: Category
    images: List[ProductImage] = []
    stock: int = Field(..., ge=0)
    location: str = ""
    harvest_date: Optional[datetime] = None
    organic: bool = False


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    category: Optional[Category] = None
    images: Optional[List[ProductImage]] = None
    stock: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None
    harvest_date: Optional[datetime] = None
    organic: Optional[bool] = None


class ReviewIn(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


class ReviewOut(CamelModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: str
    created_at: datetime


class ProductOut(CamelModel):
    id: int
    farmer_id: int
    farmer: Optional[UserSummary] = None
    name: str
    description: str
    price: Decimal
    category: str
    images: List[ProductImage] = []
    stock: int
    reserved: int
    sold: int
    location: str
    harvest_date: Optional[datetime] = None
    organic: bool
    rating: Decimal
    reviews: List[ReviewOut] = []
    created_at: datetime


class ProductPage(CamelModel):
    products: List[ProductOut]
    total_pages: int
    current_page: int
    total: int


class ProductSummary(CamelModel):
    id: int
    name: str
    price: Decimal
    category: Optional[str] = None
    images: List[ProductImage] = []


# ---------------------------------------------------------------- cart / orders

class CartItemIn(CamelModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class QuantityIn(CamelModel):
    # range checked by the cart service so it surfaces as 400, not 422
    quantity: int


class OrderItemOut(CamelModel):
    product: ProductSummary
    quantity: int
    line_total: Decimal


class OrderOut(CamelModel):
    id: Optional[int] = None
    customer_id: Optional[int] = None
    status: str = OrderStatus.CART.value
    items: List[OrderItemOut] = []
    total: Decimal = Decimal("0.00")
    version: Optional[int] = None
    created_at: Optional[datetime] = None


class CartOut(CamelModel):
    message: Optional[str] = None
    cart: OrderOut


class OrderList(CamelModel):
    orders: List[OrderOut]


# ---------------------------------------------------------------- trades

class TradeCreate(CamelModel):
    product_id: int = Field(..., gt=0)
    buyer_id: Optional[int] = None
    quantity: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)


class TradeStatusIn(CamelModel):
    status: str


class TradeOut(CamelModel):
    id: int
    farmer_id: int
    buyer_id: Optional[int] = None
    product_id: int
    order_id: Optional[int] = None
    quantity: int
    amount: Decimal
    status: str
    product: Optional[ProductSummary] = None
    farmer: Optional[UserSummary] = None
    buyer: Optional[UserSummary] = None
    created_at: datetime


class TradeList(CamelModel):
    trades: List[TradeOut]


class CheckoutOut(CamelModel):
    message: str
    trades: List[TradeOut]
    order: OrderOut


# ---------------------------------------------------------------- expenses

class ExpenseIn(CamelModel):
    category: str = Field(..., min_length=1, max_length=80)
    amount: Decimal = Field(..., ge=0)
    date: datetime
    description: str = Field(..., min_length=1)


class ExpenseUpdate(CamelModel):
    category: Optional[str] = Field(None, min_length=1, max_length=80)
    amount: Optional[Decimal] = Field(None, ge=0)
    date: Optional[datetime] = None
    description: Optional[str] = Field(None, min_length=1)


class ExpenseOut(CamelModel):
    id: int
    farmer_id: int
    category: str
    amount: Decimal
    date: datetime
    description: str
    created_at: datetime


# ---------------------------------------------------------------- analytics

class PeriodBucket(CamelModel):
    period: str
    total: Decimal
    count: int


class TopProduct(CamelModel):
    product_id: int
    name: str
    quantity: int
    revenue: Decimal


class SalesAnalytics(CamelModel):
    total_sales: Decimal
    period_sales: List[PeriodBucket]
    top_products: List[TopProduct]


class InventoryAnalytics(CamelModel):
    total_products: int
    low_stock: int
    out_of_stock: int
    categories: Dict[str, int]


class ExpenseAnalytics(CamelModel):
    total_expenses: Decimal
    period_expenses: List[PeriodBucket]
    category_expenses: Dict[str, Decimal]


class MarketInsights(CamelModel):
    trending_products: List[dict]
    price_changes: List[dict]
    recommendations: List[dict]


# ---------------------------------------------------------------- AI

class AIAnalyticsIn(CamelModel):
    period: Period = Period.MONTHLY
    metrics: List[str] = ["sales", "inventory", "predictions"]


class AIAnalyticsOut(CamelModel):
    insights: str
    summary: dict
    trends: dict
    period: str
    metrics: List[str]


class ChatIn(CamelModel):
    message: str = Field(..., min_length=1, max_length=4000)


class ChatOut(CamelModel):
    message: str


class PredictionsOut(CamelModel):
    predictions: str


class RecommendationsOut(CamelModel):
    recommendations: str


class InsightsOut(CamelModel):
    insights: str
