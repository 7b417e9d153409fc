"""
Discount types — codes, public info, combinations.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from shopcore._types import ZERO, to_decimal

# ═══════════════════════════════════════════════════════════════════════════════
# Discount Code
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class DiscountCode:
    """
    A redeemable code.

    Note: code is stored upper-case; value is a fraction for PERCENTAGE
    (0.20 == 20%) and an amount for FIXED.
    """

    code: str
    type: DiscountType
    value: Decimal
    min_amount: Decimal = ZERO
    max_discount: Decimal | None = None
    expires_at: datetime | None = None
    customer_restriction: str | None = None
    usage_limit: int | None = None
    used_count: int = 0

    def __post_init__(self) -> None:
        code = self.code.strip().upper()
        if not code:
            raise ValueError("discount code cannot be empty")
        object.__setattr__(self, "code", code)
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "min_amount", to_decimal(self.min_amount))
        if self.max_discount is not None:
            object.__setattr__(self, "max_discount", to_decimal(self.max_discount))

        if self.value < 0:
            raise ValueError("discount value cannot be negative")
        if self.type is DiscountType.PERCENTAGE and self.value > 1:
            raise ValueError("percentage value must be a fraction between 0 and 1")
        if self.used_count < 0:
            raise ValueError("used_count cannot be negative")
        if self.usage_limit is not None and self.usage_limit < 0:
            raise ValueError("usage_limit cannot be negative")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at

    @property
    def remaining_uses(self) -> int | None:
        if self.usage_limit is None:
            return None
        return max(self.usage_limit - self.used_count, 0)

    @property
    def has_remaining_uses(self) -> bool:
        return self.usage_limit is None or self.used_count < self.usage_limit

    def is_restricted_to(self, tier: str) -> bool:
        return (
            self.customer_restriction is not None
            and self.customer_restriction.lower() == tier.lower()
        )

    def with_used_count(self, used_count: int) -> DiscountCode:
        return replace(self, used_count=used_count)


# ═══════════════════════════════════════════════════════════════════════════════
# Views & Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DiscountInfo:
    code: str
    type: DiscountType
    value: Decimal
    min_amount: Decimal
    max_discount: Decimal | None
    expires_at: datetime | None
    customer_restriction: str | None
    is_expired: bool
    remaining_uses: int | None


@dataclass(frozen=True, slots=True)
class AppliedDiscount:
    code: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class DiscountStack:
    """Outcome of sequential stacking: total plus what each code contributed."""

    subtotal: Decimal
    amount: Decimal
    applied: tuple[AppliedDiscount, ...] = ()

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(a.code for a in self.applied)


@dataclass(frozen=True, slots=True)
class DiscountCombination:
    codes: tuple[str, ...]
    amount: Decimal


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DiscountType",
    "DiscountCode",
    "DiscountInfo",
    "AppliedDiscount",
    "DiscountStack",
    "DiscountCombination",
)
