"""
Low-stock alerts — priority rules and publishers.
"""

from __future__ import annotations

import logging
import math
from typing import Protocol

from shopcore.inventory._types import AlertPriority, InventoryRecord, LowStockAlert

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Rules
# ═══════════════════════════════════════════════════════════════════════════════


def alert_priority(available: int, reorder_level: int) -> AlertPriority:
    """CRITICAL at zero, then by available/reorder ratio: <=.25 HIGH, <=.5 MEDIUM."""
    if available <= 0:
        return AlertPriority.CRITICAL
    if available * 4 <= reorder_level:
        return AlertPriority.HIGH
    if available * 2 <= reorder_level:
        return AlertPriority.MEDIUM
    return AlertPriority.LOW


def suggested_order_quantity(available: int, reorder_level: int) -> int:
    return (reorder_level - available) + math.ceil(reorder_level * 0.5)


def low_stock_alert(record: InventoryRecord, product_name: str) -> LowStockAlert | None:
    """Alert for record, or None while stock is above the reorder level."""
    if not record.is_low_stock:
        return None
    return LowStockAlert(
        product_id=record.product_id,
        product_name=product_name,
        current_stock=record.available_stock,
        reorder_level=record.reorder_level,
        suggested_order_quantity=suggested_order_quantity(
            record.available_stock, record.reorder_level
        ),
        priority=alert_priority(record.available_stock, record.reorder_level),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Publishers
# ═══════════════════════════════════════════════════════════════════════════════


class AlertPublisher(Protocol):
    """Outbound alert channel. Best effort: failures never fail a mutation."""

    async def publish_low_stock_alert(self, alert: LowStockAlert) -> None: ...


class LoggingAlertPublisher:
    """Writes alerts to the shopcore log."""

    async def publish_low_stock_alert(self, alert: LowStockAlert) -> None:
        logger.warning(
            "Low stock: %s (%s) at %d, reorder level %d, suggest ordering %d [%s]",
            alert.product_name,
            alert.product_id,
            alert.current_stock,
            alert.reorder_level,
            alert.suggested_order_quantity,
            alert.priority.value,
        )


class MemoryAlertPublisher:
    """Collects alerts in memory."""

    def __init__(self) -> None:
        self.alerts: list[LowStockAlert] = []

    async def publish_low_stock_alert(self, alert: LowStockAlert) -> None:
        self.alerts.append(alert)


__all__ = (
    "alert_priority",
    "suggested_order_quantity",
    "low_stock_alert",
    "AlertPublisher",
    "LoggingAlertPublisher",
    "MemoryAlertPublisher",
)
