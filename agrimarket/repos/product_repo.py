# agrimarket/repos/product_repo.py
from decimal import Decimal

from sqlalchemy import select, func, or_, update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.util import identity_key

from agrimarket.data.models.product import ProductModel, ReviewModel

_SORT_COLUMNS = {
    "createdAt": ProductModel.created_at,
    "price": ProductModel.price,
    "rating": ProductModel.rating,
    "name": ProductModel.name,
    "stock": ProductModel.stock,
}


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_owned(self, product_id: int, farmer_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(
                ProductModel.id == product_id,
                ProductModel.farmer_id == farmer_id,
            )
        ).scalar_one_or_none()

    def list_by_farmer(self, farmer_id: int) -> list[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel)
                .where(ProductModel.farmer_id == farmer_id)
                .order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
            ).scalars()
        )

    def list_all(self) -> list[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel).order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
            ).scalars()
        )

    def search(
        self,
        *,
        category: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        organic: bool | None = None,
        search: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[ProductModel], int]:
        filters = []
        if category:
            filters.append(ProductModel.category == category)
        if organic is not None:
            filters.append(ProductModel.organic.is_(organic))
        if min_price is not None:
            filters.append(ProductModel.price >= min_price)
        if max_price is not None:
            filters.append(ProductModel.price <= max_price)
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(ProductModel.name.ilike(pattern), ProductModel.description.ilike(pattern))
            )

        column = _SORT_COLUMNS.get(sort_by, ProductModel.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()

        total = self.db.execute(
            select(func.count()).select_from(ProductModel).where(*filters)
        ).scalar_one()

        rows = self.db.execute(
            select(ProductModel)
            .options(selectinload(ProductModel.farmer), selectinload(ProductModel.reviews))
            .where(*filters)
            .order_by(ordering, ProductModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars()

        return list(rows), total

    def create_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete_product(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.commit()

    def add_review(self, product: ProductModel, review: ReviewModel) -> None:
        product.reviews.append(review)
        self.db.flush()

    def apply_bucket_deltas(self, product_id: int, deltas: dict[str, int]) -> int:
        """
        Atomically add ``deltas`` to the stock buckets of one product.

        Every bucket that is decremented is guarded in the WHERE clause so the
        row is only touched when none of them would go negative. Returns the
        number of rows updated (0 or 1).
        """
        stmt = update(ProductModel).where(ProductModel.id == product_id)
        values = {}
        for bucket, delta in deltas.items():
            column = getattr(ProductModel, bucket)
            if delta < 0:
                stmt = stmt.where(column >= -delta)
            values[bucket] = column + delta

        result = self.db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        self._expire_cached(product_id)
        return result.rowcount

    def set_stock(self, product_id: int, stock: int) -> int:
        """Overwrite the available count in one statement; reserved and sold stay as they are."""
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=stock)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(product_id)
        return result.rowcount

    def _expire_cached(self, product_id: int) -> None:
        cached = self.db.identity_map.get(identity_key(ProductModel, product_id))
        if cached is not None:
            self.db.expire(cached)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
