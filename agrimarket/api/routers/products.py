# agrimarket/api/routers/products.py
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agrimarket.api.deps import Identity, get_identity, require_farmer
from agrimarket.data.database import get_db
from agrimarket.domain.schemas import (
    Category,
    ProductCreate,
    ProductUpdate,
    ProductOut,
    ProductPage,
    ReviewIn,
    MessageOut,
)
from agrimarket.services.product_service import ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


def get_service(db: Session):
    return ProductService(db)


@router.get("", response_model=ProductPage)
def list_products(
    category: Optional[Category] = None,
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    organic: Optional[bool] = None,
    search: Optional[str] = None,
    sort_by: Literal["createdAt", "price", "rating", "name", "stock"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.search(
        category=category.value if category else None,
        min_price=min_price,
        max_price=max_price,
        organic=organic,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.get(product_id)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    identity: Identity = Depends(require_farmer),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.create(identity.user_id, payload)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.update(identity.user_id, product_id, payload)


@router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: int,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.delete(identity.user_id, product_id)


@router.post("/{product_id}/reviews", response_model=ProductOut, status_code=201)
def add_review(
    product_id: int,
    payload: ReviewIn,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.add_review(identity.user_id, product_id, payload.rating, payload.comment)
