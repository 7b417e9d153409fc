"""
Settings loaded from the environment (prefix SHOP_) or a .env file.

    from shopcore.config import get_settings

    settings = get_settings()
    settings.tax_rate          # Decimal("0.08")
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShopSettings(BaseSettings):
    """Runtime configuration for pricing, refunds, storage and logging."""

    model_config = SettingsConfigDict(
        env_prefix="SHOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pricing
    tax_rate: Decimal = Decimal("0.08")
    currency: str = "USD"
    bulk_tiers: dict[int, Decimal] = Field(
        default_factory=lambda: {
            10: Decimal("0.05"),
            25: Decimal("0.10"),
            50: Decimal("0.15"),
            100: Decimal("0.20"),
        }
    )
    loyalty_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "bronze": Decimal("0.02"),
            "silver": Decimal("0.05"),
            "gold": Decimal("0.08"),
            "platinum": Decimal("0.12"),
        }
    )

    # Shipping
    free_shipping_threshold: Decimal = Decimal("100")
    base_shipping_fee: Decimal = Decimal("5.99")
    free_weight_allowance: Decimal = Decimal("10")
    weight_increment: Decimal = Decimal("5")
    weight_surcharge: Decimal = Decimal("2.50")

    # Orders
    refund_window_days: int = 30

    # Infrastructure
    database_url: str = "sqlite+aiosqlite:///./shop.db"
    log_level: str = "INFO"
    log_format: str = "plain"  # plain | kv

    @field_validator("tax_rate")
    @classmethod
    def check_tax_rate(cls, v: Decimal) -> Decimal:
        if not Decimal("0") <= v <= Decimal("1"):
            raise ValueError("tax_rate must be between 0 and 1")
        return v

    @field_validator("refund_window_days")
    @classmethod
    def check_refund_window(cls, v: int) -> int:
        if v < 0:
            raise ValueError("refund_window_days must be non-negative")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> ShopSettings:
    """Cached settings instance."""
    return ShopSettings()


__all__ = ("ShopSettings", "get_settings")
