"""Tests for settings and logging setup."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from shopcore.config import ShopSettings, get_settings
from shopcore.log import KeyValueFormatter, configure_logging
from shopcore.pricing import PricingConfig


class TestSettings:
    def test_defaults(self):
        settings = ShopSettings(_env_file=None)

        assert settings.tax_rate == Decimal("0.08")
        assert settings.refund_window_days == 30
        assert settings.bulk_tiers[25] == Decimal("0.10")
        assert settings.loyalty_rates["platinum"] == Decimal("0.12")

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SHOP_TAX_RATE", "0.1")
        monkeypatch.setenv("SHOP_REFUND_WINDOW_DAYS", "14")
        monkeypatch.setenv("SHOP_LOG_LEVEL", "debug")

        settings = ShopSettings(_env_file=None)

        assert settings.tax_rate == Decimal("0.1")
        assert settings.refund_window_days == 14
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        ("name", "value"),
        [("SHOP_TAX_RATE", "1.5"), ("SHOP_REFUND_WINDOW_DAYS", "-1")],
    )
    def test_invalid_values(self, monkeypatch: pytest.MonkeyPatch, name: str, value: str):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            ShopSettings(_env_file=None)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_pricing_config_from_settings(self):
        settings = ShopSettings(_env_file=None, tax_rate=Decimal("0.2"), currency="eur")

        config = PricingConfig.from_settings(settings)

        assert config.tax_rate == Decimal("0.2")
        assert config.currency == "EUR"
        assert [t.min_items for t in config.bulk_tiers] == [10, 25, 50, 100]
        assert config.shipping.base_fee == Decimal("5.99")


class TestLogging:
    def test_configure_replaces_handlers(self):
        settings = ShopSettings(_env_file=None, log_level="warning")

        configure_logging(settings)
        logger = configure_logging(settings)

        assert logger.name == "shopcore"
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_key_value_format(self):
        formatter = KeyValueFormatter()
        record = logging.LogRecord(
            "shopcore.orders", logging.INFO, __file__, 1, "order created", None, None
        )
        record.data = {"order_id": "ORD-1", "total": "10.00"}

        line = formatter.format(record)

        assert "level=INFO" in line
        assert "logger=shopcore.orders" in line
        assert line.endswith(" order_id=ORD-1 total=10.00")

    def test_kv_setting_selects_formatter(self):
        logger = configure_logging(ShopSettings(_env_file=None, log_format="kv"))

        assert isinstance(logger.handlers[0].formatter, KeyValueFormatter)
