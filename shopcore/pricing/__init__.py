"""
Pricing — totals, discounts by quantity and loyalty, tax, shipping.

    from shopcore import pricing as P

    engine = P.PriceEngine(P.PricingConfig().with_tax_rate("0.08"))
    result = engine.compute_total(items, P.PriceContext(customer_tier="gold"))
"""

from __future__ import annotations

from shopcore.pricing._types import (
    LineItem,
    PriceContext,
    PriceBreakdown,
    BulkTier,
    ShippingRates,
    PricingConfig,
    DEFAULT_BULK_TIERS,
    DEFAULT_LOYALTY_RATES,
)
from shopcore.pricing._engine import PriceEngine, DEFAULT_INSTALLMENT_RATE
from shopcore.pricing._currency import CurrencyConverter, format_price, DEFAULT_RATES

__all__ = (
    "LineItem",
    "PriceContext",
    "PriceBreakdown",
    "BulkTier",
    "ShippingRates",
    "PricingConfig",
    "DEFAULT_BULK_TIERS",
    "DEFAULT_LOYALTY_RATES",
    "PriceEngine",
    "DEFAULT_INSTALLMENT_RATE",
    "CurrencyConverter",
    "format_price",
    "DEFAULT_RATES",
)
