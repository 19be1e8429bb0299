# app/api/v1/orders.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status

from app.api.deps.auth import get_auth_context, get_order_store, require_roles
from app.core.roles import STAFF_ROLES
from app.core.security import AuthContext
from app.crud.orders import OrderRepository
from app.schemas.orders import CreateOrderRequest, OrderOut
from app.services import order_service
from app.services.order_service import RequestedLine

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderRequest,
    ctx: AuthContext = Depends(get_auth_context),
    store: OrderRepository = Depends(get_order_store),
):
    items = [RequestedLine(product_id=i.product_id, quantity=i.quantity) for i in payload.items]
    return await order_service.place_order(store, ctx, payload.shipping_address, items)


@router.get("", response_model=List[OrderOut])
async def list_orders(
    ctx: AuthContext = Depends(require_roles(*STAFF_ROLES)),
    store: OrderRepository = Depends(get_order_store),
):
    """
    SuperAdmin: all orders. Admin: orders that include the tenant's products.
    """
    return await order_service.list_orders_for_staff(store, ctx)


@router.get("/my-orders", response_model=List[OrderOut])
async def list_my_orders(
    ctx: AuthContext = Depends(get_auth_context),
    store: OrderRepository = Depends(get_order_store),
):
    return await order_service.list_my_orders(store, ctx)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: uuid.UUID,
    ctx: AuthContext = Depends(get_auth_context),
    store: OrderRepository = Depends(get_order_store),
):
    return await order_service.get_order(store, ctx, order_id)
