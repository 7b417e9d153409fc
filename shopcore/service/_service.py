"""
ShopService — inbound operations for an HTTP/API layer.

Every method returns Result[T, ShopError]; nothing raises for business rules.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any

from kungfu import Result, Ok, Error
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine

from shopcore._types import Clock, ZERO, utc_now
from shopcore.config import ShopSettings, get_settings
from shopcore.discounts import DiscountCode, DiscountRegistry, DiscountStack
from shopcore.errors import Errors, ShopError, from_store
from shopcore.inventory import (
    AlertPublisher,
    InventoryLedger,
    InventoryRecord,
    LoggingAlertPublisher,
    MovementMeta,
)
from shopcore.orders import Order, OrderLifecycle, OrderStatus
from shopcore.pricing import LineItem, PriceBreakdown, PriceContext, PriceEngine, PricingConfig
from shopcore.service._requests import (
    CreateOrderRequest,
    QuoteRequest,
    StatusUpdateRequest,
    StockRequest,
)
from shopcore.store import Repository, SQLAlchemyRepository, create_database

logger = logging.getLogger(__name__)


def parse[M: BaseModel](model: type[M], data: M | Mapping[str, Any]) -> Result[M, ShopError]:
    """Validate raw input into a request model."""
    if isinstance(data, model):
        return Ok(data)
    try:
        return Ok(model.model_validate(data))
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        return Error(Errors.invalid_input(
            f"Invalid {model.__name__}: {errors[0]['loc']}: {errors[0]['msg']}",
            errors=errors,
        ))


@dataclass(frozen=True, slots=True)
class Quote:
    breakdown: PriceBreakdown
    discount: DiscountStack | None
    payable: Decimal


@dataclass(frozen=True, slots=True)
class ShopService:
    """
    Facade wiring pricing, discounts, inventory and orders over one repository.

    Example:
        service = ShopService.build(repo)

        match await service.create_order({"customer_id": "c-1", ...}):
            case Ok(order):
                ...
            case Error(e):
                print(e.kind, e.message)
    """

    repository: Repository
    pricing: PriceEngine
    discounts: DiscountRegistry
    ledger: InventoryLedger
    orders: OrderLifecycle

    @classmethod
    def build(
        cls,
        repository: Repository,
        settings: ShopSettings | None = None,
        alerts: AlertPublisher | None = None,
        clock: Clock = utc_now,
    ) -> ShopService:
        settings = settings or get_settings()
        pricing = PriceEngine(PricingConfig.from_settings(settings))
        discounts = DiscountRegistry(repository, clock=clock)
        ledger = InventoryLedger(
            repository, alerts=alerts or LoggingAlertPublisher(), clock=clock
        )
        orders = OrderLifecycle(
            repository,
            ledger,
            pricing,
            discounts,
            refund_window=timedelta(days=settings.refund_window_days),
            clock=clock,
        )
        return cls(repository, pricing, discounts, ledger, orders)

    @classmethod
    async def connect(
        cls,
        settings: ShopSettings | None = None,
        alerts: AlertPublisher | None = None,
        clock: Clock = utc_now,
    ) -> tuple[ShopService, AsyncEngine]:
        """
        Open settings.database_url (tables are created if missing) and build
        a service over it. The caller disposes the returned engine.
        """
        settings = settings or get_settings()
        session_factory, engine = await create_database(settings.database_url)
        logger.info("Connected to %s", engine.url.render_as_string(hide_password=True))
        service = cls.build(SQLAlchemyRepository(session_factory), settings, alerts, clock)
        return service, engine

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    async def create_order(
        self, request: CreateOrderRequest | Mapping[str, Any]
    ) -> Result[Order, ShopError]:
        match parse(CreateOrderRequest, request):
            case Error(e):
                return Error(e)
            case Ok(req):
                return await self.orders.create(req.to_domain())

    async def get_order(self, order_id: str) -> Result[Order, ShopError]:
        return await self.orders.get(order_id)

    async def update_order_status(
        self,
        order_id: str,
        new_status: OrderStatus | str,
        *,
        tracking_number: str | None = None,
        reason: str = "",
    ) -> Result[Order, ShopError]:
        match parse(
            StatusUpdateRequest,
            {"status": new_status, "tracking_number": tracking_number, "reason": reason},
        ):
            case Error(e):
                return Error(e)
            case Ok(req):
                return await self.orders.transition(
                    order_id,
                    req.status,
                    tracking_number=req.tracking_number,
                    reason=req.reason,
                )

    async def cancel_order(self, order_id: str) -> Result[Order, ShopError]:
        return await self.orders.cancel(order_id)

    async def refund_order(self, order_id: str, reason: str = "") -> Result[Order, ShopError]:
        return await self.orders.refund(order_id, reason)

    # ───────────────────────────────────────────────────────────────────────────
    # Stock
    # ───────────────────────────────────────────────────────────────────────────

    async def reserve_stock(
        self, product_id: str, quantity: int, order_id: str | None = None
    ) -> Result[InventoryRecord, ShopError]:
        match parse(
            StockRequest,
            {"product_id": product_id, "quantity": quantity, "order_id": order_id},
        ):
            case Error(e):
                return Error(e)
            case Ok(req):
                meta = MovementMeta(reason="Stock reservation", reference=req.order_id)
                return await self.ledger.reserve(req.product_id, req.quantity, meta)

    async def release_stock(
        self, product_id: str, quantity: int, order_id: str | None = None
    ) -> Result[InventoryRecord, ShopError]:
        match parse(
            StockRequest,
            {"product_id": product_id, "quantity": quantity, "order_id": order_id},
        ):
            case Error(e):
                return Error(e)
            case Ok(req):
                meta = MovementMeta(reason="Stock release", reference=req.order_id)
                return await self.ledger.release(req.product_id, req.quantity, meta)

    # ───────────────────────────────────────────────────────────────────────────
    # Discounts & Quotes
    # ───────────────────────────────────────────────────────────────────────────

    async def apply_discount(
        self, code: str, customer_id: str | None = None
    ) -> Result[DiscountCode, ShopError]:
        if not code or not code.strip():
            return Error(Errors.invalid_input("Discount code is required", field="code"))
        return await self.discounts.apply(code, customer_id)

    async def quote(self, request: QuoteRequest | Mapping[str, Any]) -> Result[Quote, ShopError]:
        """Price a cart without reserving or redeeming anything."""
        match parse(QuoteRequest, request):
            case Error(e):
                return Error(e)
            case Ok(req):
                pass

        tier: str | None = None
        if req.customer_id:
            match from_store(await self.repository.find_customer_by_id(req.customer_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    return Error(Errors.not_found("Customer", req.customer_id))
                case Ok(customer):
                    tier = customer.tier

        items: list[LineItem] = []
        for line in req.items:
            match from_store(await self.repository.find_product_by_id(line.product_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    return Error(Errors.not_found("Product", line.product_id))
                case Ok(product):
                    items.append(LineItem(product.id, product.price, line.quantity, product.weight))

        match self.pricing.compute_total(
            items, PriceContext(customer_tier=tier, currency=self.pricing.config.currency)
        ):
            case Error(e):
                return Error(e)
            case Ok(breakdown):
                pass

        stacked: DiscountStack | None = None
        if req.discount_codes:
            match await self.discounts.stack(items, req.discount_codes, req.customer_id):
                case Error(e):
                    return Error(e)
                case Ok(stacked):
                    pass

        code_amount = stacked.amount if stacked is not None else ZERO
        return Ok(Quote(
            breakdown=breakdown,
            discount=stacked,
            payable=max(breakdown.total - code_amount, ZERO),
        ))


__all__ = ("ShopService", "Quote", "parse")
