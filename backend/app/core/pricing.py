# app/core/pricing.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PromotionTerms:
    id: uuid.UUID
    name: str
    discount_percentage: Decimal
    start_date: datetime
    end_date: datetime
    is_active: bool


@dataclass(frozen=True)
class PriceQuote:
    base_price: Decimal
    effective_price: Decimal
    discount_applied: bool
    discount_percentage: Optional[Decimal] = None
    promotion_id: Optional[uuid.UUID] = None
    promotion_name: Optional[str] = None


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_promotion_effective(promotion: Optional[PromotionTerms], at: datetime) -> bool:
    if promotion is None or not promotion.is_active:
        return False
    t = _as_utc(at)
    return _as_utc(promotion.start_date) <= t <= _as_utc(promotion.end_date)


def discounted_price(price: Decimal, discount_percentage: Decimal) -> Decimal:
    value = price - price * discount_percentage / Decimal(100)
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def resolve_price(price: Decimal, promotion: Optional[PromotionTerms], at: datetime) -> PriceQuote:
    """
    Effective price of a product at instant `at`.

    Used for catalog display. Orders snapshot `base_price`, not `effective_price`.
    """
    if not is_promotion_effective(promotion, at):
        return PriceQuote(base_price=price, effective_price=price, discount_applied=False)

    return PriceQuote(
        base_price=price,
        effective_price=discounted_price(price, promotion.discount_percentage),
        discount_applied=True,
        discount_percentage=promotion.discount_percentage,
        promotion_id=promotion.id,
        promotion_name=promotion.name,
    )
