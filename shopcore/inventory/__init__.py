"""
Inventory — reservation accounting and stock movement history.

    from shopcore import inventory as I

    ledger = I.InventoryLedger(repo, alerts=I.LoggingAlertPublisher())
    await ledger.reserve("sku-1", 2, I.MovementMeta(reference="ORD-1"))
"""

from __future__ import annotations

from shopcore.inventory._types import (
    MovementType,
    AlertPriority,
    InventoryRecord,
    MovementMeta,
    StockMovement,
    LowStockAlert,
    InventoryReport,
)
from shopcore.inventory._alerts import (
    alert_priority,
    suggested_order_quantity,
    low_stock_alert,
    AlertPublisher,
    LoggingAlertPublisher,
    MemoryAlertPublisher,
)
from shopcore.inventory._ledger import InventoryLedger, new_movement_id

__all__ = (
    "MovementType",
    "AlertPriority",
    "InventoryRecord",
    "MovementMeta",
    "StockMovement",
    "LowStockAlert",
    "InventoryReport",
    "alert_priority",
    "suggested_order_quantity",
    "low_stock_alert",
    "AlertPublisher",
    "LoggingAlertPublisher",
    "MemoryAlertPublisher",
    "InventoryLedger",
    "new_movement_id",
)
