# import all models so SQLAlchemy registers them in Base.metadata

from agrimarket.data.models.user import UserModel, UserTokenModel
from agrimarket.data.models.product import ProductModel, ReviewModel
from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.order_item import OrderItemModel
from agrimarket.data.models.trade import TradeModel
from agrimarket.data.models.expense import ExpenseModel

__all__ = [
    "UserModel",
    "UserTokenModel",
    "ProductModel",
    "ReviewModel",
    "OrderModel",
    "OrderItemModel",
    "TradeModel",
    "ExpenseModel",
]
