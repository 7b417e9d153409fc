"""
Stock promotion codes used to seed a fresh store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from shopcore.discounts._types import DiscountCode, DiscountType


def _day(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def default_codes() -> tuple[DiscountCode, ...]:
    return (
        DiscountCode(
            code="WELCOME10",
            type=DiscountType.PERCENTAGE,
            value=Decimal("0.10"),
            min_amount=Decimal("50"),
            max_discount=Decimal("25"),
            expires_at=_day(2026, 12, 31),
        ),
        DiscountCode(
            code="SAVE20",
            type=DiscountType.PERCENTAGE,
            value=Decimal("0.20"),
            min_amount=Decimal("100"),
            max_discount=Decimal("50"),
            expires_at=_day(2026, 6, 30),
            usage_limit=100,
            used_count=45,
        ),
        DiscountCode(
            code="FIXED15",
            type=DiscountType.FIXED,
            value=Decimal("15"),
            min_amount=Decimal("75"),
            max_discount=Decimal("15"),
            expires_at=_day(2026, 3, 31),
        ),
        DiscountCode(
            code="VIP25",
            type=DiscountType.PERCENTAGE,
            value=Decimal("0.25"),
            min_amount=Decimal("200"),
            max_discount=Decimal("100"),
            expires_at=_day(2026, 12, 31),
            customer_restriction="vip",
            usage_limit=50,
            used_count=12,
        ),
        DiscountCode(
            code="EXPIRED",
            type=DiscountType.PERCENTAGE,
            value=Decimal("0.15"),
            expires_at=_day(2024, 1, 1),
        ),
    )


__all__ = ("default_codes",)
