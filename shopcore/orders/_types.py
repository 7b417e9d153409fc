"""
Order types — aggregate, items, commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from shopcore._types import ZERO

# ═══════════════════════════════════════════════════════════════════════════════
# Statuses
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    """
    Order lifecycle.

        PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED → REFUNDED
           ↓          ↓           ↓
        CANCELLED  CANCELLED  CANCELLED
    """

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


# ═══════════════════════════════════════════════════════════════════════════════
# Order Aggregate
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Address:
    street: str
    city: str
    state: str = ""
    postal_code: str = ""
    country: str = "US"


@dataclass(frozen=True, slots=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    sku: str = ""


@dataclass(frozen=True, slots=True)
class Order:
    """
    Order aggregate.

    Note: items never change after creation; only status, payment and
    shipping metadata move.
    """

    id: str
    customer_id: str
    items: tuple[OrderItem, ...]
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    shipping_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    currency: str = "USD"
    applied_codes: tuple[str, ...] = ()
    shipping_address: Address | None = None
    billing_address: Address | None = None
    payment_method: str = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING
    shipping_method: str = "standard"
    tracking_number: str | None = None
    notes: str = ""
    completed_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_reason: str | None = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def product_ids(self) -> tuple[str, ...]:
        return tuple(sorted({item.product_id for item in self.items}))

    def evolve(self, **changes: Any) -> Order:
        return replace(self, **changes)


# ═══════════════════════════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: str
    quantity: int


@dataclass(frozen=True, slots=True)
class CreateOrderCommand:
    customer_id: str
    lines: tuple[OrderLine, ...]
    shipping_address: Address | None = None
    billing_address: Address | None = None
    payment_method: str = ""
    shipping_method: str = "standard"
    discount_codes: tuple[str, ...] = ()
    notes: str = ""
    metadata: dict[str, Any] = field(default_factory=dict[str, Any])


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "OrderStatus",
    "PaymentStatus",
    "Address",
    "OrderItem",
    "Order",
    "OrderLine",
    "CreateOrderCommand",
)
