"""
Service — the operations an API layer calls.

    from shopcore.service import ShopService

    service = ShopService.build(repo, settings)
    result = await service.create_order(payload)
"""

from __future__ import annotations

from shopcore.service._requests import (
    AddressIn,
    OrderLineIn,
    CreateOrderRequest,
    StockRequest,
    StatusUpdateRequest,
    QuoteRequest,
    OrderItemOut,
    OrderOut,
)
from shopcore.service._service import ShopService, Quote, parse

__all__ = (
    "AddressIn",
    "OrderLineIn",
    "CreateOrderRequest",
    "StockRequest",
    "StatusUpdateRequest",
    "QuoteRequest",
    "OrderItemOut",
    "OrderOut",
    "ShopService",
    "Quote",
    "parse",
)
