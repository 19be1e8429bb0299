# app/schemas/orders.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CreateOrderItem(BaseModel):
    product_id: uuid.UUID
    # Positivity is enforced by the order core (400 invalid_request), not here.
    quantity: int


class CreateOrderRequest(BaseModel):
    # Length and blank checks run in the order core after whitespace is collapsed.
    shipping_address: Optional[str] = None
    items: List[CreateOrderItem] = Field(default_factory=list)


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_date: datetime
    total_amount: Decimal
    status: str
    shipping_address: str
    user_id: uuid.UUID
    user_full_name: str
    items: List[OrderItemOut]
