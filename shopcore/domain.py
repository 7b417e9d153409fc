"""
Domain — catalog entities referenced, not owned, by the core.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    name: str
    price: Decimal
    sku: str = ""
    weight: Decimal = Decimal("0")  # kg per unit
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class Customer:
    id: str
    name: str
    tier: str | None = None  # loyalty tier: bronze, silver, gold, platinum, vip...

    def has_tier(self, tier: str) -> bool:
        return self.tier is not None and self.tier.lower() == tier.lower()


__all__ = ("Product", "Customer")
