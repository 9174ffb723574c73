# agrimarket/services/views.py
"""Dict shapes handed to the response schemas."""
from decimal import Decimal


def user_summary(user) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "location": user.location,
    }


def user_view(user) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "location": user.location,
        "created_at": user.created_at,
    }


def product_summary(product) -> dict | None:
    if product is None:
        return None
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "category": product.category,
        "images": product.images or [],
    }


def product_view(product, with_reviews: bool = True) -> dict:
    return {
        "id": product.id,
        "farmer_id": product.farmer_id,
        "farmer": user_summary(product.farmer),
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "category": product.category,
        "images": product.images or [],
        "stock": product.stock,
        "reserved": product.reserved,
        "sold": product.sold,
        "location": product.location,
        "harvest_date": product.harvest_date,
        "organic": product.organic,
        "rating": product.rating,
        "reviews": [
            {
                "id": r.id,
                "user_id": r.user_id,
                "user_name": r.user.name if r.user else None,
                "rating": r.rating,
                "comment": r.comment,
                "created_at": r.created_at,
            }
            for r in product.reviews
        ] if with_reviews else [],
        "created_at": product.created_at,
    }


def order_view(order) -> dict:
    return {
        "id": order.id,
        "customer_id": order.customer_id,
        "status": order.status,
        "items": [
            {
                "product": product_summary(i.product),
                "quantity": i.quantity,
                "line_total": i.product.price * i.quantity,
            }
            for i in order.items
        ],
        "total": order.total,
        "version": order.version,
        "created_at": order.created_at,
    }


def empty_cart_view() -> dict:
    return {"status": "cart", "items": [], "total": Decimal("0.00")}


def trade_view(trade) -> dict:
    return {
        "id": trade.id,
        "farmer_id": trade.farmer_id,
        "buyer_id": trade.buyer_id,
        "product_id": trade.product_id,
        "order_id": trade.order_id,
        "quantity": trade.quantity,
        "amount": trade.amount,
        "status": trade.status,
        "product": product_summary(trade.product),
        "farmer": user_summary(trade.farmer),
        "buyer": user_summary(trade.buyer),
        "created_at": trade.created_at,
    }


def expense_view(expense) -> dict:
    return {
        "id": expense.id,
        "farmer_id": expense.farmer_id,
        "category": expense.category,
        "amount": expense.amount,
        "date": expense.date,
        "description": expense.description,
        "created_at": expense.created_at,
    }
