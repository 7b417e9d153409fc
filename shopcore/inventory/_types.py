"""
Inventory types — records, movements, alerts, reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class MovementType(Enum):
    """
    Kind of stock mutation.

    IN/OUT/ADJUSTMENT change available stock directly,
    RESERVED/RELEASED move units between available and reserved.
    """

    IN = "IN"
    OUT = "OUT"
    RESERVED = "RESERVED"
    RELEASED = "RELEASED"
    ADJUSTMENT = "ADJUSTMENT"


class AlertPriority(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    AlertPriority.LOW: 0,
    AlertPriority.MEDIUM: 1,
    AlertPriority.HIGH: 2,
    AlertPriority.CRITICAL: 3,
}

# ═══════════════════════════════════════════════════════════════════════════════
# Inventory Record
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class InventoryRecord:
    """
    Stock counters for one product.

    Invariant: both counters are never negative.
    """

    product_id: str
    available_stock: int = 0
    reserved_stock: int = 0
    reorder_level: int = 0
    max_stock: int | None = None
    location: str = ""
    last_restocked: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.available_stock < 0:
            raise ValueError(f"available_stock cannot be negative ({self.product_id})")
        if self.reserved_stock < 0:
            raise ValueError(f"reserved_stock cannot be negative ({self.product_id})")
        if self.reorder_level < 0:
            raise ValueError(f"reorder_level cannot be negative ({self.product_id})")

    @property
    def total_stock(self) -> int:
        return self.available_stock + self.reserved_stock

    @property
    def is_low_stock(self) -> bool:
        return self.available_stock <= self.reorder_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.available_stock == 0


# ═══════════════════════════════════════════════════════════════════════════════
# Stock Movement — Append-only Audit Entry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MovementMeta:
    """Caller-supplied context for a movement."""

    reason: str = ""
    reference: str | None = None
    actor: str = "system"
    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class StockMovement:
    """
    One inventory mutation.

    Note: for ADJUSTMENT, quantity is the new absolute available stock.
    """

    id: str
    product_id: str
    type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    reason: str
    reference: str | None
    actor: str
    timestamp: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Alerts & Reports
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LowStockAlert:
    product_id: str
    product_name: str
    current_stock: int
    reorder_level: int
    suggested_order_quantity: int
    priority: AlertPriority


@dataclass(frozen=True, slots=True)
class InventoryReport:
    total_products: int
    total_stock: int
    total_reserved: int
    low_stock_items: int
    out_of_stock_items: int
    total_value: Decimal


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "MovementType",
    "AlertPriority",
    "InventoryRecord",
    "MovementMeta",
    "StockMovement",
    "LowStockAlert",
    "InventoryReport",
)
