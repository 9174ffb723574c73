# agrimarket/services/analytics_service.py
import calendar
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import Session

from agrimarket.domain.errors import InvalidArgument
from agrimarket.domain.schemas import Period
from agrimarket.repos.expense_repo import ExpenseRepo
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.repos.trade_repo import TradeRepo
from agrimarket.utils.settings import LOW_STOCK_THRESHOLD

ZERO = Decimal("0.00")
TOP_N = 5


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _period(period) -> Period:
    try:
        return Period(period)
    except ValueError:
        raise InvalidArgument(f"Invalid period: {period}")


def period_key(moment: datetime, period: Period) -> str:
    """Label of the calendar bucket ``moment`` falls into."""
    moment = _as_utc(moment)
    if period is Period.DAILY:
        return moment.strftime("%Y-%m-%d")
    if period is Period.WEEKLY:
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    if period is Period.MONTHLY:
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y")


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    day = min(moment.day, calendar.monthrange(year, month + 1)[1])
    return moment.replace(year=year, month=month + 1, day=day)


def window_start(end: datetime, period: Period) -> datetime:
    """Start of the rolling window of one ``period`` ending at ``end``."""
    if period is Period.DAILY:
        return end - timedelta(days=1)
    if period is Period.WEEKLY:
        return end - timedelta(days=7)
    if period is Period.MONTHLY:
        return _months_back(end, 1)
    return _months_back(end, 12)


def _buckets(rows, period: Period, moment, value):
    totals = defaultdict(lambda: ZERO)
    counts = defaultdict(int)
    for row in rows:
        key = period_key(moment(row), period)
        totals[key] += value(row)
        counts[key] += 1
    return [
        {"period": key, "total": totals[key], "count": counts[key]}
        for key in sorted(totals)
    ]


def _by_category(rows, category, value):
    out = defaultdict(lambda: ZERO)
    for row in rows:
        out[category(row)] += value(row)
    return dict(out)


class AnalyticsService:
    """Read-only figures computed from a farmer's trades, products and expenses."""

    def __init__(self, db: Session):
        self.trades = TradeRepo(db)
        self.products = ProductRepo(db)
        self.expenses = ExpenseRepo(db)

    def _completed_trades(self, farmer_id: int):
        return [t for t in self.trades.list_by_farmer(farmer_id) if t.status == "completed"]

    def sales(self, farmer_id: int, period="monthly"):
        period = _period(period)
        trades = self._completed_trades(farmer_id)

        per_product = {}
        for t in trades:
            entry = per_product.setdefault(
                t.product_id,
                {"product_id": t.product_id, "name": t.product.name, "quantity": 0, "revenue": ZERO},
            )
            entry["quantity"] += t.quantity
            entry["revenue"] += t.amount

        top = sorted(per_product.values(), key=lambda e: (-e["revenue"], e["product_id"]))[:TOP_N]

        return {
            "total_sales": sum((t.amount for t in trades), ZERO),
            "period_sales": _buckets(trades, period, lambda t: t.created_at, lambda t: t.amount),
            "top_products": top,
        }

    def inventory(self, farmer_id: int):
        products = self.products.list_by_farmer(farmer_id)
        categories = defaultdict(int)
        for p in products:
            categories[p.category] += 1
        return {
            "total_products": len(products),
            "low_stock": sum(1 for p in products if p.stock < LOW_STOCK_THRESHOLD),
            "out_of_stock": sum(1 for p in products if p.stock == 0),
            "categories": dict(categories),
        }

    def expenses_summary(self, farmer_id: int, period="monthly"):
        period = _period(period)
        expenses = self.expenses.list_by_farmer(farmer_id)
        return {
            "total_expenses": sum((e.amount for e in expenses), ZERO),
            "period_expenses": _buckets(expenses, period, lambda e: e.date, lambda e: e.amount),
            "category_expenses": _by_category(expenses, lambda e: e.category, lambda e: e.amount),
        }

    def market_insights(self):
        # newest first, so ties on rating keep the most recent listings
        products = self.products.list_all()
        by_rating = sorted(products, key=lambda p: p.rating, reverse=True)

        return {
            "trending_products": [
                {"id": p.id, "name": p.name, "price": p.price, "category": p.category, "trend": "Popular"}
                for p in by_rating[:TOP_N]
            ],
            # no price history is kept, so previous equals current
            "price_changes": [
                {"id": p.id, "name": p.name, "currentPrice": p.price, "previousPrice": p.price, "change": 0}
                for p in products[:TOP_N]
            ],
            "recommendations": [
                {"id": p.id, "name": p.name, "price": p.price, "rating": p.rating, "category": p.category}
                for p in by_rating
                if p.stock > 0
            ][:TOP_N],
        }

    def snapshot(self, farmer_id: int, period="monthly", now: datetime | None = None):
        """
        Figures handed to the AI analytics prompt and returned alongside it.

        Revenue counts completed trades created inside the rolling window
        ending at ``now``; the change is measured against the window right
        before it, and is 100 when that window had no revenue.
        """
        period = _period(period)
        now = now or datetime.now(timezone.utc)
        start = window_start(now, period)
        previous_start = window_start(start, period)

        products = self.products.list_by_farmer(farmer_id)
        trades = self._completed_trades(farmer_id)
        expenses = self.expenses.list_by_farmer(farmer_id)

        current = [t for t in trades if start <= _as_utc(t.created_at) <= now]
        previous = [t for t in trades if previous_start <= _as_utc(t.created_at) < start]

        revenue = sum((t.amount for t in current), ZERO)
        previous_revenue = sum((t.amount for t in previous), ZERO)
        if previous_revenue == 0:
            change = Decimal(100)
        else:
            change = (revenue - previous_revenue) / previous_revenue * 100
        change = change.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        return {
            "summary": {
                "totalProducts": len(products),
                "totalRevenue": revenue,
                "revenueChange": change,
                "totalExpenses": sum((e.amount for e in expenses), ZERO),
                "lowStockProducts": sum(1 for p in products if p.stock < LOW_STOCK_THRESHOLD),
                "organicProducts": sum(1 for p in products if p.organic),
            },
            "trends": {
                "salesByCategory": _by_category(current, lambda t: t.product.category, lambda t: t.amount),
                "expensesByCategory": _by_category(expenses, lambda e: e.category, lambda e: e.amount),
                "stockLevels": [
                    {"name": p.name, "stock": p.stock, "category": p.category} for p in products
                ],
            },
        }
