"""
In-memory repository.

Note: single process only; data does not survive a restart.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from kungfu import Result, Ok, Error

from shopcore.domain import Customer, Product
from shopcore.errors import StoreError
from shopcore.discounts._types import DiscountCode
from shopcore.inventory._types import InventoryRecord, StockMovement
from shopcore.orders._types import Order, OrderStatus


class MemoryRepository:
    """
    Dict-backed Repository.

    Example:
        repo = MemoryRepository()
        repo.seed(products=[Product("sku-1", "Mug", Decimal("9.50"))],
                  inventory=[InventoryRecord("sku-1", available_stock=10)])
    """

    def __init__(self) -> None:
        self._products: dict[str, Product] = {}
        self._customers: dict[str, Customer] = {}
        self._inventory: dict[str, InventoryRecord] = {}
        self._movements: list[StockMovement] = []
        self._orders: dict[str, Order] = {}
        self._codes: dict[str, DiscountCode] = {}
        self._lock = asyncio.Lock()

    def seed(
        self,
        *,
        products: Iterable[Product] = (),
        customers: Iterable[Customer] = (),
        inventory: Iterable[InventoryRecord] = (),
        codes: Iterable[DiscountCode] = (),
    ) -> MemoryRepository:
        for product in products:
            self._products[product.id] = product
        for customer in customers:
            self._customers[customer.id] = customer
        for record in inventory:
            self._inventory[record.product_id] = record
        for code in codes:
            self._codes[code.code] = code
        return self

    # ───────────────────────────────────────────────────────────────────────────
    # Catalog
    # ───────────────────────────────────────────────────────────────────────────

    async def find_product_by_id(self, product_id: str) -> Result[Product | None, StoreError]:
        return Ok(self._products.get(product_id))

    async def find_customer_by_id(self, customer_id: str) -> Result[Customer | None, StoreError]:
        return Ok(self._customers.get(customer_id))

    # ───────────────────────────────────────────────────────────────────────────
    # Inventory
    # ───────────────────────────────────────────────────────────────────────────

    async def find_inventory_by_product_id(
        self, product_id: str
    ) -> Result[InventoryRecord | None, StoreError]:
        return Ok(self._inventory.get(product_id))

    async def list_inventory(self) -> Result[list[InventoryRecord], StoreError]:
        return Ok(sorted(self._inventory.values(), key=lambda r: r.product_id))

    async def create_inventory(
        self, record: InventoryRecord, movement: StockMovement | None
    ) -> Result[InventoryRecord, StoreError]:
        async with self._lock:
            if record.product_id in self._inventory:
                return Error(StoreError(f"Inventory for {record.product_id} already exists"))
            self._inventory[record.product_id] = record
            if movement is not None:
                self._movements.append(movement)
            return Ok(record)

    async def update_inventory(
        self,
        record: InventoryRecord,
        movement: StockMovement,
        expected: InventoryRecord | None = None,
    ) -> Result[InventoryRecord, StoreError]:
        async with self._lock:
            current = self._inventory.get(record.product_id)
            if current is None:
                return Error(StoreError(f"Inventory for {record.product_id} does not exist"))
            if expected is not None and (
                current.available_stock != expected.available_stock
                or current.reserved_stock != expected.reserved_stock
            ):
                return Error(StoreError(
                    f"Inventory for {record.product_id} changed concurrently", conflict=True
                ))
            self._inventory[record.product_id] = record
            self._movements.append(movement)
            return Ok(record)

    async def find_movements(
        self, product_id: str | None = None, reference: str | None = None
    ) -> Result[list[StockMovement], StoreError]:
        return Ok([
            m for m in self._movements
            if (product_id is None or m.product_id == product_id)
            and (reference is None or m.reference == reference)
        ])

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    async def create_order(self, order: Order) -> Result[Order, StoreError]:
        async with self._lock:
            if order.id in self._orders:
                return Error(StoreError(f"Order {order.id} already exists"))
            self._orders[order.id] = order
            return Ok(order)

    async def update_order(self, order: Order) -> Result[Order, StoreError]:
        async with self._lock:
            if order.id not in self._orders:
                return Error(StoreError(f"Order {order.id} does not exist"))
            self._orders[order.id] = order
            return Ok(order)

    async def delete_order(self, order_id: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._orders.pop(order_id, None) is not None)

    async def find_order_by_id(self, order_id: str) -> Result[Order | None, StoreError]:
        return Ok(self._orders.get(order_id))

    async def find_orders(
        self, customer_id: str | None = None, status: OrderStatus | None = None
    ) -> Result[list[Order], StoreError]:
        orders = [
            o for o in self._orders.values()
            if (customer_id is None or o.customer_id == customer_id)
            and (status is None or o.status is status)
        ]
        return Ok(sorted(orders, key=lambda o: o.created_at, reverse=True))

    # ───────────────────────────────────────────────────────────────────────────
    # Discounts
    # ───────────────────────────────────────────────────────────────────────────

    async def find_discount_code(self, code: str) -> Result[DiscountCode | None, StoreError]:
        return Ok(self._codes.get(code.upper()))

    async def save_discount_code(self, code: DiscountCode) -> Result[DiscountCode, StoreError]:
        async with self._lock:
            self._codes[code.code] = code
            return Ok(code)


__all__ = ("MemoryRepository",)
