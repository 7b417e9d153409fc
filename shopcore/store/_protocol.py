"""
Repository — typed persistence protocol.

All methods return Result for explicit error handling.
"""

from __future__ import annotations

from typing import Protocol

from kungfu import Result

from shopcore.domain import Customer, Product
from shopcore.errors import StoreError
from shopcore.discounts._types import DiscountCode
from shopcore.inventory._types import InventoryRecord, StockMovement
from shopcore.orders._types import Order, OrderStatus


class Repository(Protocol):
    """
    Persistence collaborator of the shop core.

    Note: update_inventory() must write the record and its movement in one
    transaction; create_inventory() likewise for the opening movement.

    Example — wrapping an existing data layer:

        class LegacyRepository:
            async def find_product_by_id(self, product_id: str) -> Result[Product | None, StoreError]:
                try:
                    row = await db.fetch_product(product_id)
                    return Ok(row and Product(row.id, row.name, row.price))
                except Exception as e:
                    return Error(StoreError("Failed to load product", e))

            # ... other methods
    """

    # Catalog
    async def find_product_by_id(self, product_id: str) -> Result[Product | None, StoreError]: ...

    async def find_customer_by_id(self, customer_id: str) -> Result[Customer | None, StoreError]: ...

    # Inventory
    async def find_inventory_by_product_id(
        self, product_id: str
    ) -> Result[InventoryRecord | None, StoreError]: ...

    async def list_inventory(self) -> Result[list[InventoryRecord], StoreError]: ...

    async def create_inventory(
        self, record: InventoryRecord, movement: StockMovement | None
    ) -> Result[InventoryRecord, StoreError]: ...

    async def update_inventory(
        self,
        record: InventoryRecord,
        movement: StockMovement,
        expected: InventoryRecord | None = None,
    ) -> Result[InventoryRecord, StoreError]:
        """
        Write record and movement together.

        With expected, the write only happens while the stored stock counters
        still equal expected's; otherwise Error(StoreError(conflict=True)).
        """
        ...

    async def find_movements(
        self, product_id: str | None = None, reference: str | None = None
    ) -> Result[list[StockMovement], StoreError]:
        """Movements in insertion order, optionally filtered."""
        ...

    # Orders
    async def create_order(self, order: Order) -> Result[Order, StoreError]: ...

    async def update_order(self, order: Order) -> Result[Order, StoreError]: ...

    async def delete_order(self, order_id: str) -> Result[bool, StoreError]:
        """Returns Ok(True) if it existed."""
        ...

    async def find_order_by_id(self, order_id: str) -> Result[Order | None, StoreError]: ...

    async def find_orders(
        self, customer_id: str | None = None, status: OrderStatus | None = None
    ) -> Result[list[Order], StoreError]: ...

    # Discounts
    async def find_discount_code(self, code: str) -> Result[DiscountCode | None, StoreError]: ...

    async def save_discount_code(self, code: DiscountCode) -> Result[DiscountCode, StoreError]: ...


__all__ = ("Repository",)
