from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pricing import resolve_price
from app.crud import catalog
from app.crud.catalog import ProductRow
from app.db.session import get_db
from app.schemas.catalog import ProductOut

router = APIRouter(prefix="/products", tags=["products"])


def _to_product_out(row: ProductRow, at: datetime) -> ProductOut:
    product, promotion, category_name, company_name = row
    quote = resolve_price(product.price, promotion.to_terms() if promotion is not None else None, at)

    return ProductOut(
        id=product.id,
        name=product.name,
        description=product.description,
        price=product.price,
        stock_quantity=product.stock_quantity,
        image_url=product.image_url,
        created_at=product.created_at,
        category_id=product.category_id,
        category_name=category_name,
        company_id=product.company_id,
        company_name=company_name,
        promotion_id=product.promotion_id,
        promotion_name=quote.promotion_name,
        discount_percentage=quote.discount_percentage,
        discounted_price=quote.effective_price if quote.discount_applied else None,
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get("", response_model=List[ProductOut])
async def list_products(db: AsyncSession = Depends(get_db)):
    at = _now()
    return [_to_product_out(r, at) for r in await catalog.list_products(db)]


@router.get("/search", response_model=List[ProductOut])
async def search_products(
    keyword: str = Query(..., min_length=1, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    at = _now()
    return [_to_product_out(r, at) for r in await catalog.search_products(db, keyword)]


@router.get("/category/{category_id}", response_model=List[ProductOut])
async def list_products_by_category(category_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    at = _now()
    return [_to_product_out(r, at) for r in await catalog.list_products(db, category_id=category_id)]


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    row = await catalog.get_product(db, product_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return _to_product_out(row, _now())
