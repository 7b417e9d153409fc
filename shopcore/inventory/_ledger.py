"""
InventoryLedger — per-product stock counters and their movement history.

Every mutation is one critical section per product: read, check, write the
new record together with its movement, all under the product's lock.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error

from shopcore._locks import KeyedLock
from shopcore._types import Clock, ZERO, money, utc_now
from shopcore.errors import Errors, ShopError, from_store
from shopcore.inventory._alerts import AlertPublisher, low_stock_alert
from shopcore.inventory._types import (
    InventoryRecord,
    InventoryReport,
    LowStockAlert,
    MovementMeta,
    MovementType,
    StockMovement,
)

if TYPE_CHECKING:
    from shopcore.store import Repository

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5

type Change = Callable[[InventoryRecord], Result[InventoryRecord, ShopError]]


def new_movement_id() -> str:
    return f"mov_{uuid.uuid4().hex[:16]}"


def _check_quantity(quantity: int, *, allow_zero: bool = False) -> ShopError | None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return Errors.invalid_input("Quantity must be an integer", quantity=quantity)
    if quantity < 0 or (quantity == 0 and not allow_zero):
        return Errors.invalid_input("Quantity must be positive", quantity=quantity)
    return None


class InventoryLedger:
    """
    Stock accounting over a repository.

    Example:
        ledger = InventoryLedger(repo, alerts=LoggingAlertPublisher())

        meta = MovementMeta(reason="Order reservation", reference="ORD-1")
        match await ledger.reserve("sku-1", 2, meta):
            case Ok(record):
                ...
            case Error(e) if e.kind is ErrorKind.INSUFFICIENT_STOCK:
                ...
    """

    def __init__(
        self,
        repository: Repository,
        alerts: AlertPublisher | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repository
        self._alerts = alerts
        self._clock = clock
        self._locks = KeyedLock()

    @asynccontextmanager
    async def hold(self, *product_ids: str) -> AsyncIterator[None]:
        """
        Hold several product locks at once, in ascending id order.

        Ledger calls made by the holding task re-enter the held locks.
        """
        async with self._locks.hold(*product_ids):
            yield

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    async def get(self, product_id: str) -> Result[InventoryRecord, ShopError]:
        match from_store(await self._repo.find_inventory_by_product_id(product_id)):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Error(Errors.not_found("Inventory for product", product_id))
            case Ok(record):
                return Ok(record)

    async def check_availability(
        self, product_id: str, quantity: int
    ) -> Result[bool, ShopError]:
        if (err := _check_quantity(quantity)) is not None:
            return Error(err)
        match await self.get(product_id):
            case Error(e):
                return Error(e)
            case Ok(record):
                return Ok(record.available_stock >= quantity)

    async def history(
        self,
        product_id: str | None = None,
        reference: str | None = None,
    ) -> Result[list[StockMovement], ShopError]:
        return from_store(await self._repo.find_movements(product_id, reference))

    # ───────────────────────────────────────────────────────────────────────────
    # Mutations
    # ───────────────────────────────────────────────────────────────────────────

    def _movement(
        self,
        before: InventoryRecord,
        after: InventoryRecord,
        movement_type: MovementType,
        quantity: int,
        meta: MovementMeta,
    ) -> StockMovement:
        return StockMovement(
            id=new_movement_id(),
            product_id=before.product_id,
            type=movement_type,
            quantity=quantity,
            previous_stock=before.available_stock,
            new_stock=after.available_stock,
            reason=meta.reason,
            reference=meta.reference,
            actor=meta.actor,
            timestamp=meta.timestamp or self._clock(),
        )

    async def _mutate(
        self,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        meta: MovementMeta | None,
        change: Change,
    ) -> Result[InventoryRecord, ShopError]:
        meta = meta or MovementMeta()

        async with self._locks.hold(product_id):
            for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
                match await self.get(product_id):
                    case Error(e):
                        return Error(e)
                    case Ok(record):
                        pass

                match change(record):
                    case Error(e):
                        logger.info("%s of %d rejected for %s: %s",
                                    movement_type.value, quantity, product_id, e.message)
                        return Error(e)
                    case Ok(updated):
                        pass

                updated = replace(updated, updated_at=self._clock())
                movement = self._movement(record, updated, movement_type, quantity, meta)

                # Another writer on the same store may have moved the counters.
                match await self._repo.update_inventory(updated, movement, expected=record):
                    case Error(e) if e.conflict and attempt < MAX_WRITE_ATTEMPTS:
                        logger.debug("Write conflict on %s, retrying (%d/%d)",
                                     product_id, attempt, MAX_WRITE_ATTEMPTS)
                        continue
                    case Error(e):
                        logger.error("Failed to persist %s for %s: %s",
                                     movement_type.value, product_id, e.message)
                        return Error(Errors.persistence(e))
                    case Ok(saved):
                        break

        await self._signal(saved)
        return Ok(saved)

    async def reserve(
        self, product_id: str, quantity: int, meta: MovementMeta | None = None
    ) -> Result[InventoryRecord, ShopError]:
        """Move quantity from available to reserved."""
        if (err := _check_quantity(quantity)) is not None:
            return Error(err)

        def change(r: InventoryRecord) -> Result[InventoryRecord, ShopError]:
            if r.available_stock < quantity:
                return Error(Errors.insufficient_stock(product_id, quantity, r.available_stock))
            return Ok(replace(
                r,
                available_stock=r.available_stock - quantity,
                reserved_stock=r.reserved_stock + quantity,
            ))

        return await self._mutate(product_id, MovementType.RESERVED, quantity, meta, change)

    async def release(
        self, product_id: str, quantity: int, meta: MovementMeta | None = None
    ) -> Result[InventoryRecord, ShopError]:
        """Move quantity from reserved back to available."""
        if (err := _check_quantity(quantity)) is not None:
            return Error(err)

        def change(r: InventoryRecord) -> Result[InventoryRecord, ShopError]:
            if r.reserved_stock < quantity:
                return Error(Errors.insufficient_reserved(product_id, quantity, r.reserved_stock))
            return Ok(replace(
                r,
                available_stock=r.available_stock + quantity,
                reserved_stock=r.reserved_stock - quantity,
            ))

        return await self._mutate(product_id, MovementType.RELEASED, quantity, meta, change)

    async def commit(
        self, product_id: str, quantity: int, meta: MovementMeta | None = None
    ) -> Result[InventoryRecord, ShopError]:
        """Consume a reservation when goods leave the warehouse (OUT movement)."""
        if (err := _check_quantity(quantity)) is not None:
            return Error(err)

        def change(r: InventoryRecord) -> Result[InventoryRecord, ShopError]:
            if r.reserved_stock < quantity:
                return Error(Errors.insufficient_reserved(product_id, quantity, r.reserved_stock))
            return Ok(replace(r, reserved_stock=r.reserved_stock - quantity))

        return await self._mutate(product_id, MovementType.OUT, quantity, meta, change)

    async def restore_reservation(
        self, product_id: str, quantity: int, meta: MovementMeta | None = None
    ) -> Result[InventoryRecord, ShopError]:
        """Undo commit(): units return to reserved (IN movement)."""
        if (err := _check_quantity(quantity)) is not None:
            return Error(err)

        def change(r: InventoryRecord) -> Result[InventoryRecord, ShopError]:
            return Ok(replace(r, reserved_stock=r.reserved_stock + quantity))

        return await self._mutate(product_id, MovementType.IN, quantity, meta, change)

    async def adjust(
        self,
        product_id: str,
        movement_type: MovementType,
        quantity: int,
        meta: MovementMeta | None = None,
    ) -> Result[InventoryRecord, ShopError]:
        """
        Direct change of available stock.

        IN adds, OUT subtracts, ADJUSTMENT sets the absolute value
        (quantity is the new available stock and may be 0).
        """
        if movement_type not in (MovementType.IN, MovementType.OUT, MovementType.ADJUSTMENT):
            return Error(Errors.invalid_input(
                "Adjustment type must be IN, OUT or ADJUSTMENT",
                type=movement_type.value,
            ))
        allow_zero = movement_type is MovementType.ADJUSTMENT
        if (err := _check_quantity(quantity, allow_zero=allow_zero)) is not None:
            return Error(err)

        now = self._clock()

        def change(r: InventoryRecord) -> Result[InventoryRecord, ShopError]:
            match movement_type:
                case MovementType.IN:
                    return Ok(replace(
                        r, available_stock=r.available_stock + quantity, last_restocked=now
                    ))
                case MovementType.OUT:
                    if r.available_stock < quantity:
                        return Error(Errors.insufficient_stock(
                            product_id, quantity, r.available_stock
                        ))
                    return Ok(replace(r, available_stock=r.available_stock - quantity))
                case _:
                    return Ok(replace(r, available_stock=quantity))

        return await self._mutate(product_id, movement_type, quantity, meta, change)

    async def open_record(
        self,
        product_id: str,
        initial_stock: int = 0,
        *,
        reorder_level: int = 0,
        max_stock: int | None = None,
        location: str = "",
        meta: MovementMeta | None = None,
    ) -> Result[InventoryRecord, ShopError]:
        """Start stocking a product; initial stock is booked as an IN movement."""
        if (err := _check_quantity(initial_stock, allow_zero=True)) is not None:
            return Error(err)
        if reorder_level < 0:
            return Error(Errors.invalid_input(
                "Reorder level cannot be negative", reorder_level=reorder_level
            ))

        meta = meta or MovementMeta(reason="Initial stock")
        async with self._locks.hold(product_id):
            match from_store(await self._repo.find_product_by_id(product_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    return Error(Errors.not_found("Product", product_id))
                case Ok(_):
                    pass

            match from_store(await self._repo.find_inventory_by_product_id(product_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    pass
                case Ok(_):
                    return Error(Errors.invalid_input(
                        f"Inventory already exists for product {product_id}",
                        product_id=product_id,
                    ))

            now = self._clock()
            empty = InventoryRecord(
                product_id=product_id,
                reorder_level=reorder_level,
                max_stock=max_stock,
                location=location,
                updated_at=now,
            )
            record = replace(
                empty,
                available_stock=initial_stock,
                last_restocked=now if initial_stock > 0 else None,
            )
            movement = None
            if initial_stock > 0:
                movement = self._movement(empty, record, MovementType.IN, initial_stock, meta)

            match from_store(await self._repo.create_inventory(record, movement)):
                case Error(e):
                    return Error(e)
                case Ok(saved):
                    pass

        await self._signal(saved)
        return Ok(saved)

    # ───────────────────────────────────────────────────────────────────────────
    # Alerts & Reporting
    # ───────────────────────────────────────────────────────────────────────────

    async def _alert_for(self, record: InventoryRecord) -> LowStockAlert | None:
        if not record.is_low_stock:
            return None
        match await self._repo.find_product_by_id(record.product_id):
            case Ok(None):
                return None
            case Ok(product):
                return low_stock_alert(record, product.name)
            case Error(e):
                logger.warning("No low-stock alert for %s: %s", record.product_id, e.message)
                return None

    async def _signal(self, record: InventoryRecord) -> None:
        if self._alerts is None:
            return
        alert = await self._alert_for(record)
        if alert is None:
            return
        try:
            await self._alerts.publish_low_stock_alert(alert)
        except Exception as e:
            logger.warning("Failed to publish low-stock alert for %s: %s", record.product_id, e)

    async def low_stock_alerts(self) -> Result[list[LowStockAlert], ShopError]:
        """Alerts for every record at or below its reorder level, most urgent first."""
        match from_store(await self._repo.list_inventory()):
            case Error(e):
                return Error(e)
            case Ok(records):
                pass

        alerts: list[LowStockAlert] = []
        for record in records:
            if not record.is_low_stock:
                continue
            match from_store(await self._repo.find_product_by_id(record.product_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    continue
                case Ok(product):
                    alert = low_stock_alert(record, product.name)
                    if alert is not None:
                        alerts.append(alert)

        alerts.sort(key=lambda a: (-a.priority.severity, a.product_id))
        return Ok(alerts)

    async def report(self) -> Result[InventoryReport, ShopError]:
        match from_store(await self._repo.list_inventory()):
            case Error(e):
                return Error(e)
            case Ok(records):
                pass

        total_value = ZERO
        for record in records:
            match from_store(await self._repo.find_product_by_id(record.product_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    continue
                case Ok(product):
                    total_value += product.price * record.available_stock

        return Ok(InventoryReport(
            total_products=len(records),
            total_stock=sum(r.available_stock for r in records),
            total_reserved=sum(r.reserved_stock for r in records),
            low_stock_items=sum(1 for r in records if r.is_low_stock),
            out_of_stock_items=sum(1 for r in records if r.is_out_of_stock),
            total_value=money(total_value),
        ))


__all__ = ("InventoryLedger", "new_movement_id")
