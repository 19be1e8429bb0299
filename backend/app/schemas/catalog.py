from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ProductOut(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_quantity: int
    image_url: Optional[str] = None
    created_at: datetime

    category_id: uuid.UUID
    category_name: str
    company_id: uuid.UUID
    company_name: str

    promotion_id: Optional[uuid.UUID] = None

    # Only filled while the promotion is effective
    promotion_name: Optional[str] = None
    discount_percentage: Optional[Decimal] = None
    discounted_price: Optional[Decimal] = None
