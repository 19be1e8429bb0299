# app/crud/orders.py
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, StoreUnavailable
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.promotion import Promotion
from app.models.user import User
from app.services.order_service import (
    OrderDetails,
    OrderDraft,
    OrderItemDetails,
    ProductSnapshot,
)

logger = logging.getLogger(__name__)


class OrderRepository:
    """
    SQLAlchemy implementation of the order store.

    Reads always go to the database (populate_existing) so stock is never
    served from the session identity map.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_product(self, product_id: uuid.UUID) -> Optional[ProductSnapshot]:
        stmt = (
            select(Product, Promotion)
            .outerjoin(Promotion, Promotion.id == Product.promotion_id)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        try:
            row = (await self.db.execute(stmt)).one_or_none()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Product lookup failed")
            raise StoreUnavailable() from exc

        if row is None:
            return None

        product, promotion = row
        return ProductSnapshot(
            id=product.id,
            name=product.name,
            price=Decimal(product.price),
            stock_quantity=int(product.stock_quantity),
            company_id=product.company_id,
            promotion=promotion.to_terms() if promotion is not None else None,
        )

    async def decrement_stock_and_create_order(self, draft: OrderDraft) -> uuid.UUID:
        # Reads in phase one may have opened a transaction already; close it so
        # the decrement and the inserts share one fresh transaction.
        if self.db.in_transaction():
            await self.db.commit()

        try:
            for line in draft.lines:
                stmt = (
                    update(Product)
                    .where(Product.id == line.product_id)
                    .where(Product.stock_quantity >= line.quantity)
                    .values(stock_quantity=Product.stock_quantity - line.quantity)
                    .execution_options(synchronize_session=False)
                )
                res = await self.db.execute(stmt)
                if res.rowcount != 1:
                    raise ConflictError(line.product_id, requested=line.quantity)

            order = Order(
                id=uuid.uuid4(),
                user_id=draft.user_id,
                order_date=draft.order_date,
                total_amount=draft.total_amount,
                status=draft.status,
                shipping_address=draft.shipping_address,
            )
            self.db.add(order)
            await self.db.flush()

            self.db.add_all(
                [
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        line_no=line.line_no,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        subtotal=line.subtotal,
                    )
                    for line in draft.lines
                ]
            )
            await self.db.commit()
            return order.id
        except ConflictError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Order commit failed; transaction rolled back")
            raise StoreUnavailable() from exc

    async def _load_details(self, orders: list[Order]) -> list[OrderDetails]:
        if not orders:
            return []

        order_ids = [o.id for o in orders]
        user_ids = {o.user_id for o in orders}

        items_stmt = (
            select(OrderItem, Product.name, Product.company_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(OrderItem.order_id.in_(order_ids))
            .order_by(OrderItem.order_id, OrderItem.line_no)
        )
        users_stmt = select(User.id, User.first_name, User.last_name).where(User.id.in_(user_ids))

        items_by_order: dict[uuid.UUID, list[OrderItemDetails]] = defaultdict(list)
        for item, product_name, company_id in (await self.db.execute(items_stmt)).all():
            items_by_order[item.order_id].append(
                OrderItemDetails(
                    id=item.id,
                    product_id=item.product_id,
                    product_name=product_name,
                    company_id=company_id,
                    quantity=item.quantity,
                    unit_price=Decimal(item.unit_price),
                    subtotal=Decimal(item.subtotal),
                )
            )

        names = {
            uid: f"{first} {last}".strip()
            for uid, first, last in (await self.db.execute(users_stmt)).all()
        }

        return [
            OrderDetails(
                id=o.id,
                user_id=o.user_id,
                user_full_name=names.get(o.user_id, ""),
                order_date=o.order_date,
                status=o.status,
                shipping_address=o.shipping_address,
                total_amount=Decimal(o.total_amount),
                items=items_by_order.get(o.id, []),
            )
            for o in orders
        ]

    async def get_order_details(self, order_id: uuid.UUID) -> Optional[OrderDetails]:
        try:
            order = (
                await self.db.execute(select(Order).where(Order.id == order_id))
            ).scalar_one_or_none()
            if order is None:
                return None
            details = await self._load_details([order])
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Order lookup failed")
            raise StoreUnavailable() from exc
        return details[0]

    async def list_orders(
        self,
        *,
        user_id: Optional[uuid.UUID] = None,
        company_id: Optional[uuid.UUID] = None,
    ) -> list[OrderDetails]:
        stmt = select(Order).order_by(Order.order_date.desc())
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if company_id is not None:
            touching = (
                select(OrderItem.order_id)
                .join(Product, Product.id == OrderItem.product_id)
                .where(Product.company_id == company_id)
            )
            stmt = stmt.where(Order.id.in_(touching))

        try:
            orders = list((await self.db.execute(stmt)).scalars().all())
            return await self._load_details(orders)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Order listing failed")
            raise StoreUnavailable() from exc
