"""
Orders — creation with reservation saga, status state machine, refunds.

    from shopcore import orders as O

    lifecycle = O.OrderLifecycle(repo, ledger, engine, registry)
    await lifecycle.create(O.CreateOrderCommand("c-1", (O.OrderLine("sku-1", 2),)))
    await lifecycle.transition(order_id, O.OrderStatus.CONFIRMED)
"""

from __future__ import annotations

from shopcore.orders._types import (
    OrderStatus,
    PaymentStatus,
    Address,
    OrderItem,
    Order,
    OrderLine,
    CreateOrderCommand,
)
from shopcore.orders._status import (
    TRANSITIONS,
    CANCELLABLE,
    can_transition,
    is_terminal,
)
from shopcore.orders._lifecycle import (
    OrderLifecycle,
    merge_lines,
    new_order_id,
    MAX_NOTES_LENGTH,
    DEFAULT_REFUND_WINDOW,
)

__all__ = (
    "OrderStatus",
    "PaymentStatus",
    "Address",
    "OrderItem",
    "Order",
    "OrderLine",
    "CreateOrderCommand",
    "TRANSITIONS",
    "CANCELLABLE",
    "can_transition",
    "is_terminal",
    "OrderLifecycle",
    "merge_lines",
    "new_order_id",
    "MAX_NOTES_LENGTH",
    "DEFAULT_REFUND_WINDOW",
)
