# backend/app/models/promotion.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.pricing import PromotionTerms
from app.db.base import Base


class Promotion(Base):
    """
    Time-bounded percentage discount.

    The discounted price is computed at read time (app.core.pricing) and never stored.
    """

    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_promotions_discount_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def to_terms(self) -> PromotionTerms:
        return PromotionTerms(
            id=self.id,
            name=self.name,
            discount_percentage=Decimal(self.discount_percentage),
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=bool(self.is_active),
        )
