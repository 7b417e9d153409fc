"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from decimal import Decimal

from shopcore.discounts import default_codes
from shopcore.domain import Customer, Product
from shopcore.inventory import InventoryRecord
from shopcore.store import MemoryRepository


# Seeded store
def demo_store() -> MemoryRepository:
    return MemoryRepository().seed(
        products=[
            Product("mug", "Stoneware Mug", Decimal("12.50"), sku="MUG-01", weight=Decimal("0.6")),
            Product("kettle", "Gooseneck Kettle", Decimal("64.00"), sku="KTL-01", weight=Decimal("1.4")),
            Product("beans", "Espresso Beans 1kg", Decimal("28.00"), sku="BNS-01", weight=Decimal("1")),
        ],
        customers=[
            Customer("alice", "Alice", "gold"),
            Customer("bob", "Bob"),
            Customer("vera", "Vera", "vip"),
        ],
        inventory=[
            InventoryRecord("mug", available_stock=40, reorder_level=10),
            InventoryRecord("kettle", available_stock=3, reorder_level=2),
            InventoryRecord("beans", available_stock=25, reorder_level=5),
        ],
        codes=default_codes(),
    )


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
