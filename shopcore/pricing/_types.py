"""
Pricing types — line items, context, breakdown and configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import TYPE_CHECKING

from shopcore._types import ZERO, to_decimal

if TYPE_CHECKING:
    from shopcore.config import ShopSettings

# ═══════════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: str
    unit_price: Decimal
    quantity: int
    weight: Decimal = ZERO  # per unit

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class PriceContext:
    """Who is buying and what to include."""

    customer_tier: str | None = None
    include_shipping: bool = True
    currency: str = "USD"


# ═══════════════════════════════════════════════════════════════════════════════
# Output
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """All amounts rounded to cents."""

    subtotal: Decimal
    bulk_discount: Decimal
    loyalty_discount: Decimal
    discounted_subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    currency: str = "USD"


# ═══════════════════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════════════════


def _check_rate(name: str, rate: Decimal) -> Decimal:
    rate = to_decimal(rate)
    if not ZERO <= rate <= Decimal("1"):
        raise ValueError(f"{name} must be between 0 and 1, got {rate}")
    return rate


@dataclass(frozen=True, slots=True)
class BulkTier:
    min_items: int
    rate: Decimal


@dataclass(frozen=True, slots=True)
class ShippingRates:
    free_threshold: Decimal = Decimal("100")
    base_fee: Decimal = Decimal("5.99")
    free_weight: Decimal = Decimal("10")
    weight_increment: Decimal = Decimal("5")
    weight_surcharge: Decimal = Decimal("2.50")

    def __post_init__(self) -> None:
        if self.weight_increment <= 0:
            raise ValueError("weight_increment must be positive")
        for name in ("free_threshold", "base_fee", "free_weight", "weight_surcharge"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


DEFAULT_BULK_TIERS: tuple[BulkTier, ...] = (
    BulkTier(10, Decimal("0.05")),
    BulkTier(25, Decimal("0.10")),
    BulkTier(50, Decimal("0.15")),
    BulkTier(100, Decimal("0.20")),
)

DEFAULT_LOYALTY_RATES: Mapping[str, Decimal] = {
    "bronze": Decimal("0.02"),
    "silver": Decimal("0.05"),
    "gold": Decimal("0.08"),
    "platinum": Decimal("0.12"),
}


@dataclass(frozen=True, slots=True)
class PricingConfig:
    """
    Immutable price configuration, validated on construction.

    Example:
        config = (
            PricingConfig()
            .with_tax_rate(Decimal("0.10"))
            .with_bulk_tier(200, Decimal("0.25"))
        )

    Note: Each with_* returns a new config; invalid rates raise ValueError.
    """

    tax_rate: Decimal = Decimal("0.08")
    bulk_tiers: tuple[BulkTier, ...] = DEFAULT_BULK_TIERS
    loyalty_rates: Mapping[str, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_LOYALTY_RATES)
    )
    shipping: ShippingRates = field(default_factory=ShippingRates)
    currency: str = "USD"

    def __post_init__(self) -> None:
        object.__setattr__(self, "tax_rate", _check_rate("tax_rate", self.tax_rate))

        tiers: list[BulkTier] = []
        for tier in self.bulk_tiers:
            if tier.min_items <= 0:
                raise ValueError(f"bulk tier threshold must be positive, got {tier.min_items}")
            tiers.append(BulkTier(tier.min_items, _check_rate("bulk rate", tier.rate)))
        object.__setattr__(
            self, "bulk_tiers", tuple(sorted(tiers, key=lambda t: t.min_items))
        )

        object.__setattr__(
            self,
            "loyalty_rates",
            {
                tier.lower(): _check_rate(f"loyalty rate for {tier}", rate)
                for tier, rate in self.loyalty_rates.items()
            },
        )

    def with_tax_rate(self, rate: Decimal | float | str) -> PricingConfig:
        return replace(self, tax_rate=to_decimal(rate))

    def with_bulk_tier(self, min_items: int, rate: Decimal | float | str) -> PricingConfig:
        """Add or replace the tier for min_items."""
        tiers = tuple(t for t in self.bulk_tiers if t.min_items != min_items)
        return replace(self, bulk_tiers=(*tiers, BulkTier(min_items, to_decimal(rate))))

    def with_loyalty_rate(self, tier: str, rate: Decimal | float | str) -> PricingConfig:
        rates = dict(self.loyalty_rates)
        rates[tier.lower()] = to_decimal(rate)
        return replace(self, loyalty_rates=rates)

    def with_shipping(self, shipping: ShippingRates) -> PricingConfig:
        return replace(self, shipping=shipping)

    @classmethod
    def from_settings(cls, settings: ShopSettings) -> PricingConfig:
        return cls(
            tax_rate=settings.tax_rate,
            bulk_tiers=tuple(
                BulkTier(int(n), to_decimal(r)) for n, r in settings.bulk_tiers.items()
            ),
            loyalty_rates=dict(settings.loyalty_rates),
            shipping=ShippingRates(
                free_threshold=settings.free_shipping_threshold,
                base_fee=settings.base_shipping_fee,
                free_weight=settings.free_weight_allowance,
                weight_increment=settings.weight_increment,
                weight_surcharge=settings.weight_surcharge,
            ),
            currency=settings.currency.upper(),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "LineItem",
    "PriceContext",
    "PriceBreakdown",
    "BulkTier",
    "ShippingRates",
    "PricingConfig",
    "DEFAULT_BULK_TIERS",
    "DEFAULT_LOYALTY_RATES",
)
