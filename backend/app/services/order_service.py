# app/services/order_service.py
"""
Order placement.

Two phases:
  1. validate every requested line against a fresh read of the product
     (no mutation happens here);
  2. hand the fully priced draft to the store, which decrements stock with a
     conditional update per line and inserts the order + items in one
     transaction.

The store owns all serialization between concurrent orders; nothing here
keeps state between calls.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from app.core.errors import (
    ConflictError,
    InsufficientStock,
    InvalidRequest,
    OrderNotFound,
    PermissionDenied,
    ProductNotFound,
)
from app.core.pricing import PromotionTerms, resolve_price
from app.core.security import AuthContext
from app.models.order import ORDER_STATUS_PENDING

logger = logging.getLogger(__name__)

MAX_SHIPPING_ADDRESS_LENGTH = 500


# ---------------------------------------------------------
# Value structs exchanged with the store
# ---------------------------------------------------------
@dataclass(frozen=True)
class RequestedLine:
    product_id: uuid.UUID
    quantity: int


@dataclass(frozen=True)
class ProductSnapshot:
    id: uuid.UUID
    name: str
    price: Decimal
    stock_quantity: int
    company_id: uuid.UUID
    promotion: Optional[PromotionTerms] = None


@dataclass(frozen=True)
class OrderLine:
    line_no: int
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class OrderDraft:
    user_id: uuid.UUID
    shipping_address: str
    status: str
    order_date: datetime
    total_amount: Decimal
    lines: tuple[OrderLine, ...]


@dataclass(frozen=True)
class OrderItemDetails:
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    company_id: uuid.UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class OrderDetails:
    id: uuid.UUID
    user_id: uuid.UUID
    user_full_name: str
    order_date: datetime
    status: str
    shipping_address: str
    total_amount: Decimal
    items: list[OrderItemDetails] = field(default_factory=list)

    @property
    def company_ids(self) -> frozenset[uuid.UUID]:
        return frozenset(i.company_id for i in self.items)


class OrderStore(Protocol):
    async def get_product(self, product_id: uuid.UUID) -> Optional[ProductSnapshot]:
        ...

    async def decrement_stock_and_create_order(self, draft: OrderDraft) -> uuid.UUID:
        """
        All-or-nothing: every line's stock is decremented iff stock >= quantity,
        then the order and its items are inserted. Raises ConflictError (and
        persists nothing) when any conditional decrement does not apply.
        """
        ...

    async def get_order_details(self, order_id: uuid.UUID) -> Optional[OrderDetails]:
        ...

    async def list_orders(
        self,
        *,
        user_id: Optional[uuid.UUID] = None,
        company_id: Optional[uuid.UUID] = None,
    ) -> list[OrderDetails]:
        ...


# ---------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_shipping_address(value: Optional[str]) -> str:
    v = " ".join((value or "").split())
    if not v:
        raise InvalidRequest("shipping_address is required")
    if len(v) > MAX_SHIPPING_ADDRESS_LENGTH:
        raise InvalidRequest(f"shipping_address must be at most {MAX_SHIPPING_ADDRESS_LENGTH} characters")
    return v


def _validate_lines(items: Sequence[RequestedLine]) -> None:
    if not items:
        raise InvalidRequest("An order must contain at least one item.")
    for idx, item in enumerate(items):
        q = item.quantity
        # bool is an int subclass; reject it explicitly
        if isinstance(q, bool) or not isinstance(q, int) or q < 1:
            raise InvalidRequest(
                "Quantity must be a positive integer.",
                {"line": idx, "product_id": str(item.product_id)},
            )


# ---------------------------------------------------------
# Operations
# ---------------------------------------------------------
async def place_order(
    store: OrderStore,
    ctx: AuthContext,
    shipping_address: Optional[str],
    items: Sequence[RequestedLine],
    *,
    now: Optional[datetime] = None,
) -> OrderDetails:
    address = _normalize_shipping_address(shipping_address)
    _validate_lines(items)

    at = now or _utcnow()

    # Duplicate product ids stay independent lines (no merging), but each line
    # only sees the stock left over by earlier lines of the same request.
    lines: list[OrderLine] = []
    reserved: dict[uuid.UUID, int] = {}
    total = Decimal("0.00")
    for line_no, item in enumerate(items):
        product = await store.get_product(item.product_id)
        if product is None:
            logger.info("Order rejected for user %s: product %s not found", ctx.user_id, item.product_id)
            raise ProductNotFound(item.product_id)

        available = product.stock_quantity - reserved.get(product.id, 0)
        if item.quantity > available:
            logger.info(
                "Order rejected for user %s: product %s has %s, requested %s",
                ctx.user_id,
                product.id,
                available,
                item.quantity,
            )
            raise InsufficientStock(product.id, available=available, requested=item.quantity)
        reserved[product.id] = reserved.get(product.id, 0) + item.quantity

        # Orders snapshot the base price; promotions only affect catalog display.
        quote = resolve_price(product.price, product.promotion, at)
        unit_price = quote.base_price
        subtotal = unit_price * item.quantity
        total += subtotal

        lines.append(
            OrderLine(
                line_no=line_no,
                product_id=product.id,
                quantity=item.quantity,
                unit_price=unit_price,
                subtotal=subtotal,
            )
        )

    draft = OrderDraft(
        user_id=ctx.user_id,
        shipping_address=address,
        status=ORDER_STATUS_PENDING,
        order_date=at,
        total_amount=total,
        lines=tuple(lines),
    )

    try:
        order_id = await store.decrement_stock_and_create_order(draft)
    except ConflictError:
        logger.warning("Order for user %s lost a stock race at commit; nothing persisted", ctx.user_id)
        raise

    logger.info("Order %s placed by user %s: %s line(s), total %s", order_id, ctx.user_id, len(lines), total)

    details = await store.get_order_details(order_id)
    if details is None:
        # committed but not readable back: only possible if the row was removed in between
        raise OrderNotFound(order_id)
    return details


def can_view_order(ctx: AuthContext, order: OrderDetails) -> bool:
    if ctx.is_super_admin:
        return True
    if order.user_id == ctx.user_id:
        return True
    if ctx.is_admin and ctx.tenant_id is not None:
        return ctx.tenant_id in order.company_ids
    return False


async def get_order(store: OrderStore, ctx: AuthContext, order_id: uuid.UUID) -> OrderDetails:
    order = await store.get_order_details(order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if not can_view_order(ctx, order):
        raise PermissionDenied("You can only view your own orders.")
    return order


async def list_my_orders(store: OrderStore, ctx: AuthContext) -> list[OrderDetails]:
    return await store.list_orders(user_id=ctx.user_id)


async def list_orders_for_staff(store: OrderStore, ctx: AuthContext) -> list[OrderDetails]:
    """
    SuperAdmin: every order. Admin: orders containing its tenant's products.
    """
    if ctx.is_super_admin:
        return await store.list_orders()
    if ctx.is_admin and ctx.tenant_id is not None:
        return await store.list_orders(company_id=ctx.tenant_id)
    raise PermissionDenied()
