# app/crud/catalog.py
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category
from app.models.company import Company
from app.models.product import Product
from app.models.promotion import Promotion

# (Product, Promotion | None, category name, company name)
ProductRow = tuple[Product, Optional[Promotion], str, str]


def _product_rows() -> Select:
    return (
        select(Product, Promotion, Category.name, Company.name)
        .join(Category, Category.id == Product.category_id)
        .join(Company, Company.id == Product.company_id)
        .outerjoin(Promotion, Promotion.id == Product.promotion_id)
    )


async def list_products(db: AsyncSession, *, category_id: Optional[uuid.UUID] = None) -> list[ProductRow]:
    stmt = _product_rows()
    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)
    stmt = stmt.order_by(Product.created_at.desc(), Product.name)
    return [tuple(r) for r in (await db.execute(stmt)).all()]


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Optional[ProductRow]:
    row = (await db.execute(_product_rows().where(Product.id == product_id))).one_or_none()
    return tuple(row) if row is not None else None


async def search_products(db: AsyncSession, keyword: str) -> list[ProductRow]:
    """
    Case-insensitive substring match on name/description. No ranking.
    """
    pattern = f"%{keyword.strip().lower()}%"
    stmt = (
        _product_rows()
        .where(
            or_(
                func.lower(Product.name).like(pattern),
                func.lower(func.coalesce(Product.description, "")).like(pattern),
            )
        )
        .order_by(Product.name)
    )
    return [tuple(r) for r in (await db.execute(stmt)).all()]
