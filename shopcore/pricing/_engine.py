"""
PriceEngine — subtotal, bulk and loyalty discounts, tax, shipping, total.

Intermediate values stay exact; rounding happens once per output.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal, ROUND_CEILING

from kungfu import Result, Ok, Error

from shopcore._types import ZERO, money, to_decimal
from shopcore.errors import Errors, ShopError
from shopcore.pricing._types import (
    LineItem,
    PriceBreakdown,
    PriceContext,
    PricingConfig,
)

DEFAULT_INSTALLMENT_RATE = Decimal("0.0599")


class PriceEngine:
    """
    Pure price computation over a PricingConfig.

    Example:
        engine = PriceEngine(PricingConfig())
        match engine.compute_total(items, PriceContext(customer_tier="gold")):
            case Ok(b):
                print(b.total)
    """

    def __init__(self, config: PricingConfig | None = None) -> None:
        self._config = config or PricingConfig()

    @property
    def config(self) -> PricingConfig:
        return self._config

    # ───────────────────────────────────────────────────────────────────────────
    # Rates
    # ───────────────────────────────────────────────────────────────────────────

    def bulk_rate(self, item_count: int) -> Decimal:
        """Highest rate among tiers met by item_count, 0 if none."""
        rates = [t.rate for t in self._config.bulk_tiers if item_count >= t.min_items]
        return max(rates, default=ZERO)

    def loyalty_rate(self, tier: str | None) -> Decimal:
        if not tier:
            return ZERO
        return self._config.loyalty_rates.get(tier.lower(), ZERO)

    def shipping_for(self, subtotal: Decimal, weight: Decimal) -> Decimal:
        rates = self._config.shipping
        if subtotal >= rates.free_threshold:
            return ZERO

        fee = rates.base_fee
        if weight > rates.free_weight:
            increments = ((weight - rates.free_weight) / rates.weight_increment).to_integral_value(
                rounding=ROUND_CEILING
            )
            fee += increments * rates.weight_surcharge
        return fee

    # ───────────────────────────────────────────────────────────────────────────
    # Totals
    # ───────────────────────────────────────────────────────────────────────────

    def subtotal(self, items: Sequence[LineItem]) -> Result[Decimal, ShopError]:
        for item in items:
            if item.unit_price < 0:
                return Error(Errors.invalid_input(
                    "Unit price cannot be negative", product_id=item.product_id
                ))
            if item.quantity < 0:
                return Error(Errors.invalid_input(
                    "Quantity cannot be negative", product_id=item.product_id
                ))
            if item.weight < 0:
                return Error(Errors.invalid_input(
                    "Weight cannot be negative", product_id=item.product_id
                ))
        return Ok(sum((item.line_total for item in items), ZERO))

    def compute_total(
        self,
        items: Sequence[LineItem],
        context: PriceContext | None = None,
    ) -> Result[PriceBreakdown, ShopError]:
        context = context or PriceContext(currency=self._config.currency)

        match self.subtotal(items):
            case Error(e):
                return Error(e)
            case Ok(subtotal):
                pass

        item_count = sum(item.quantity for item in items)
        weight = sum((item.weight * item.quantity for item in items), ZERO)

        bulk = subtotal * self.bulk_rate(item_count)
        loyalty = (subtotal - bulk) * self.loyalty_rate(context.customer_tier)
        discounted = subtotal - bulk - loyalty
        tax = discounted * self._config.tax_rate

        shipping = ZERO
        if context.include_shipping and items:
            shipping = self.shipping_for(subtotal, weight)

        return Ok(PriceBreakdown(
            subtotal=money(subtotal),
            bulk_discount=money(bulk),
            loyalty_discount=money(loyalty),
            discounted_subtotal=money(discounted),
            tax=money(tax),
            shipping=money(shipping),
            total=money(discounted + tax + shipping),
            currency=context.currency,
        ))

    # ───────────────────────────────────────────────────────────────────────────
    # Installments
    # ───────────────────────────────────────────────────────────────────────────

    def installment_payment(
        self,
        total: Decimal | int | str,
        months: int,
        annual_rate: Decimal | str = DEFAULT_INSTALLMENT_RATE,
    ) -> Result[Decimal, ShopError]:
        """Amortised monthly payment."""
        total = to_decimal(total)
        rate = to_decimal(annual_rate)

        if total <= 0:
            return Error(Errors.invalid_input("Total must be positive", total=str(total)))
        if months <= 0:
            return Error(Errors.invalid_input("Months must be positive", months=months))
        if rate < 0:
            return Error(Errors.invalid_input("Rate cannot be negative", rate=str(rate)))

        if months == 1:
            return Ok(money(total))
        if rate == 0:
            return Ok(money(total / months))

        monthly = rate / 12
        factor = (1 + monthly) ** months
        return Ok(money(total * monthly * factor / (factor - 1)))


__all__ = ("PriceEngine", "DEFAULT_INSTALLMENT_RATE")
