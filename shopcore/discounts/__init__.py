"""
Discounts — code validation, stacking and redemption.

    from shopcore import discounts as D

    registry = D.DiscountRegistry(repo)
    await registry.validate("SAVE20", customer_id)
    await registry.best_combination(items, ["SAVE20", "WELCOME10"], customer_id)
"""

from __future__ import annotations

from shopcore.discounts._types import (
    DiscountType,
    DiscountCode,
    DiscountInfo,
    AppliedDiscount,
    DiscountStack,
    DiscountCombination,
)
from shopcore.discounts._registry import (
    DiscountRegistry,
    canonical_codes,
    code_discount,
    VIP_TIER,
)
from shopcore.discounts._catalog import default_codes

__all__ = (
    "DiscountType",
    "DiscountCode",
    "DiscountInfo",
    "AppliedDiscount",
    "DiscountStack",
    "DiscountCombination",
    "DiscountRegistry",
    "canonical_codes",
    "code_discount",
    "VIP_TIER",
    "default_codes",
)
