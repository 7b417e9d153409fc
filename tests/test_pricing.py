"""Tests for PriceEngine, PricingConfig and currency helpers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from shopcore.errors import ErrorKind
from shopcore.pricing import (
    BulkTier,
    CurrencyConverter,
    LineItem,
    PriceContext,
    PriceEngine,
    PricingConfig,
    ShippingRates,
    format_price,
)

from helpers import err, ok


def D(value: str) -> Decimal:
    return Decimal(value)


class TestComputeTotal:
    def test_bulk_then_loyalty_then_tax(self, engine: PriceEngine):
        # Given
        items = [LineItem("P1", D("10.00"), 12)]

        # When
        breakdown = ok(engine.compute_total(items, PriceContext(customer_tier="gold")))

        # Then
        assert breakdown.subtotal == D("120.00")
        assert breakdown.bulk_discount == D("6.00")
        assert breakdown.loyalty_discount == D("9.12")
        assert breakdown.discounted_subtotal == D("104.88")
        assert breakdown.tax == D("8.39")
        assert breakdown.shipping == D("0.00")
        assert breakdown.total == D("113.27")

    def test_tax_rounds_half_up(self):
        engine = PriceEngine(PricingConfig().with_tax_rate("0.5"))

        breakdown = ok(engine.compute_total(
            [LineItem("P1", D("1.05"), 1)], PriceContext(include_shipping=False)
        ))

        assert breakdown.tax == D("0.53")

    def test_only_highest_qualifying_bulk_tier_applies(self, engine: PriceEngine):
        breakdown = ok(engine.compute_total(
            [LineItem("P1", D("1.00"), 30)], PriceContext(include_shipping=False)
        ))

        assert breakdown.bulk_discount == D("3.00")

    def test_unknown_tier_gets_no_loyalty_discount(self, engine: PriceEngine):
        breakdown = ok(engine.compute_total(
            [LineItem("P1", D("50.00"), 1)], PriceContext(customer_tier="regular")
        ))

        assert breakdown.loyalty_discount == D("0.00")

    def test_tier_lookup_ignores_case(self, engine: PriceEngine):
        breakdown = ok(engine.compute_total(
            [LineItem("P1", D("50.00"), 1)], PriceContext(customer_tier="GOLD")
        ))

        assert breakdown.loyalty_discount == D("4.00")

    def test_empty_cart_costs_nothing(self, engine: PriceEngine):
        breakdown = ok(engine.compute_total([]))

        assert breakdown.total == D("0.00")
        assert breakdown.shipping == D("0.00")

    @pytest.mark.parametrize(
        "item",
        [
            LineItem("P1", D("-1.00"), 1),
            LineItem("P1", D("1.00"), -1),
            LineItem("P1", D("1.00"), 1, weight=D("-2")),
        ],
    )
    def test_negative_inputs_are_rejected(self, engine: PriceEngine, item: LineItem):
        error = err(engine.compute_total([item]))

        assert error.kind is ErrorKind.INVALID_INPUT

    def test_total_is_never_negative(self, engine: PriceEngine):
        breakdown = ok(engine.compute_total(
            [LineItem("P1", D("0.01"), 1)], PriceContext(customer_tier="platinum")
        ))

        assert breakdown.total >= 0


class TestShipping:
    @pytest.mark.parametrize(
        ("weight", "expected"),
        [
            ("10", "5.99"),
            ("12", "8.49"),
            ("15", "8.49"),
            ("21", "13.49"),
        ],
    )
    def test_weight_surcharge_per_started_increment(
        self, engine: PriceEngine, weight: str, expected: str
    ):
        assert engine.shipping_for(D("50"), D(weight)) == D(expected)

    def test_free_at_threshold(self, engine: PriceEngine):
        assert engine.shipping_for(D("100"), D("40")) == 0

    def test_excluded_when_context_says_so(self, engine: PriceEngine):
        breakdown = ok(engine.compute_total(
            [LineItem("P1", D("10.00"), 1)], PriceContext(include_shipping=False)
        ))

        assert breakdown.shipping == D("0.00")
        assert breakdown.total == D("10.80")


class TestPricingConfig:
    def test_rejects_tax_rate_above_one(self):
        with pytest.raises(ValueError):
            PricingConfig(tax_rate=D("1.5"))

    def test_rejects_bulk_rate_above_one(self):
        with pytest.raises(ValueError):
            PricingConfig().with_bulk_tier(5, "1.2")

    def test_rejects_non_positive_tier_threshold(self):
        with pytest.raises(ValueError):
            PricingConfig(bulk_tiers=(BulkTier(0, D("0.1")),))

    def test_rejects_zero_weight_increment(self):
        with pytest.raises(ValueError):
            ShippingRates(weight_increment=D("0"))

    def test_tiers_are_sorted_and_replaceable(self):
        config = PricingConfig().with_bulk_tier(5, "0.02").with_bulk_tier(10, "0.07")

        assert [t.min_items for t in config.bulk_tiers] == [5, 10, 25, 50, 100]
        assert config.bulk_tiers[1].rate == D("0.07")

    def test_loyalty_tiers_are_case_insensitive(self):
        engine = PriceEngine(PricingConfig().with_loyalty_rate("Diamond", "0.15"))

        assert engine.loyalty_rate("DIAMOND") == D("0.15")

    def test_with_methods_leave_original_untouched(self):
        base = PricingConfig()
        changed = base.with_tax_rate("0.2")

        assert base.tax_rate == D("0.08")
        assert changed.tax_rate == D("0.2")


class TestInstallments:
    def test_single_month_is_the_total(self, engine: PriceEngine):
        assert ok(engine.installment_payment(D("250.00"), 1)) == D("250.00")

    def test_zero_rate_splits_evenly(self, engine: PriceEngine):
        assert ok(engine.installment_payment(D("1000"), 12, "0")) == D("83.33")

    def test_default_rate_amortises(self, engine: PriceEngine):
        payment = ok(engine.installment_payment(D("1000"), 12))

        assert D("86.00") < payment < D("86.20")

    @pytest.mark.parametrize(("total", "months"), [("0", 12), ("100", 0), ("-5", 3)])
    def test_invalid_arguments(self, engine: PriceEngine, total: str, months: int):
        error = err(engine.installment_payment(D(total), months))

        assert error.kind is ErrorKind.INVALID_INPUT


class TestCurrency:
    def test_converts_with_table_rate(self):
        assert ok(CurrencyConverter().convert(D("100"), "USD", "EUR")) == D("85.00")

    def test_same_currency_is_only_rounded(self):
        assert ok(CurrencyConverter().convert(D("12.345"), "usd", "USD")) == D("12.35")

    def test_unknown_pair(self):
        error = err(CurrencyConverter().convert(D("10"), "USD", "JPY"))

        assert error.kind is ErrorKind.UNSUPPORTED_CURRENCY

    def test_negative_amount(self):
        error = err(CurrencyConverter().convert(D("-1"), "USD", "EUR"))

        assert error.kind is ErrorKind.INVALID_INPUT

    @pytest.mark.parametrize(
        ("amount", "currency", "expected"),
        [
            ("1234.5", "USD", "$1,234.50"),
            ("1234.5", "EUR", "1.234,50 €"),
            ("99", "GBP", "£99.00"),
            ("-3.5", "CAD", "-$3.50"),
            ("3", "JPY", "JPY 3.00"),
        ],
    )
    def test_format_price(self, amount: str, currency: str, expected: str):
        assert format_price(D(amount), currency) == expected
