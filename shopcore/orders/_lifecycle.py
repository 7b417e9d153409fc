"""
OrderLifecycle — order creation and status transitions.

Every write that touches more than one record runs as a saga, so a failure
half-way leaves no order with inconsistent reservations:

    create:   persist order → reserve each line → redeem each code
    cancel:   release each line → persist CANCELLED
    ship:     commit each reservation → persist SHIPPED
    refund:   restock each line → persist REFUNDED
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error

from shopcore import saga as S
from shopcore._locks import KeyedLock
from shopcore._types import Clock, ZERO, money, utc_now
from shopcore.domain import Customer
from shopcore.errors import Errors, ShopError, from_store
from shopcore.inventory import InventoryLedger, MovementMeta, MovementType
from shopcore.pricing import LineItem, PriceContext, PriceEngine
from shopcore.discounts import DiscountRegistry, DiscountStack
from shopcore.orders._status import can_transition, CANCELLABLE
from shopcore.orders._types import (
    CreateOrderCommand,
    Order,
    OrderItem,
    OrderLine,
    OrderStatus,
    PaymentStatus,
)

if TYPE_CHECKING:
    from shopcore.store import Repository

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 1000
DEFAULT_REFUND_WINDOW = timedelta(days=30)


def new_order_id() -> str:
    return f"ORD-{uuid.uuid4().hex[:12].upper()}"


# ═══════════════════════════════════════════════════════════════════════════════
# Input validation
# ═══════════════════════════════════════════════════════════════════════════════


def merge_lines(
    command: CreateOrderCommand,
) -> Result[tuple[OrderLine, ...], ShopError]:
    """Validate a create command; repeated products are merged into one line."""
    if not command.customer_id or not command.customer_id.strip():
        return Error(Errors.invalid_input("Customer ID is required", field="customer_id"))
    if not command.lines:
        return Error(Errors.invalid_input(
            "Order must contain at least one item", field="items"
        ))
    if len(command.notes) > MAX_NOTES_LENGTH:
        return Error(Errors.invalid_input(
            f"Notes cannot exceed {MAX_NOTES_LENGTH} characters", field="notes"
        ))

    merged: dict[str, int] = {}
    for index, line in enumerate(command.lines):
        product_id = line.product_id.strip() if line.product_id else ""
        if not product_id:
            return Error(Errors.invalid_input(
                "Product ID is required", field=f"items[{index}].product_id"
            ))
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            return Error(Errors.invalid_input(
                "Quantity must be a positive integer",
                field=f"items[{index}].quantity",
                quantity=line.quantity,
            ))
        merged[product_id] = merged.get(product_id, 0) + line.quantity

    return Ok(tuple(OrderLine(pid, qty) for pid, qty in merged.items()))


# ═══════════════════════════════════════════════════════════════════════════════
# OrderLifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class OrderLifecycle:
    """
    Owns the order aggregate.

    Example:
        lifecycle = OrderLifecycle(repo, ledger, PriceEngine(), registry)

        match await lifecycle.create(command):
            case Ok(order):
                await lifecycle.transition(order.id, OrderStatus.CONFIRMED)
            case Error(e):
                print(e.kind, e.message)

    Note: transitions are serialized per order id; creation holds every
    product lock (ascending id) for the whole reservation saga.
    """

    def __init__(
        self,
        repository: Repository,
        ledger: InventoryLedger,
        pricing: PriceEngine,
        discounts: DiscountRegistry,
        *,
        refund_window: timedelta = DEFAULT_REFUND_WINDOW,
        clock: Clock = utc_now,
    ) -> None:
        self._repo = repository
        self._ledger = ledger
        self._pricing = pricing
        self._discounts = discounts
        self._refund_window = refund_window
        self._clock = clock
        self._locks = KeyedLock()

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    async def get(self, order_id: str) -> Result[Order, ShopError]:
        match from_store(await self._repo.find_order_by_id(order_id)):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Error(Errors.not_found("Order", order_id))
            case Ok(order):
                return Ok(order)

    async def list_orders(
        self,
        customer_id: str | None = None,
        status: OrderStatus | None = None,
    ) -> Result[list[Order], ShopError]:
        return from_store(await self._repo.find_orders(customer_id, status))

    # ───────────────────────────────────────────────────────────────────────────
    # Create
    # ───────────────────────────────────────────────────────────────────────────

    async def _customer(self, customer_id: str) -> Result[Customer, ShopError]:
        match from_store(await self._repo.find_customer_by_id(customer_id)):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Error(Errors.not_found("Customer", customer_id))
            case Ok(customer):
                return Ok(customer)

    async def _items(
        self, lines: tuple[OrderLine, ...]
    ) -> Result[tuple[tuple[OrderItem, LineItem], ...], ShopError]:
        """Resolve products and read-check stock; nothing is written."""
        resolved: list[tuple[OrderItem, LineItem]] = []
        for line in lines:
            match from_store(await self._repo.find_product_by_id(line.product_id)):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    return Error(Errors.not_found("Product", line.product_id))
                case Ok(product):
                    pass

            if not product.is_active:
                return Error(Errors.not_found("Active product", line.product_id))

            match await self._ledger.get(line.product_id):
                case Error(e):
                    return Error(e)
                case Ok(record):
                    pass

            if record.available_stock < line.quantity:
                return Error(Errors.insufficient_stock(
                    line.product_id, line.quantity, record.available_stock
                ))

            resolved.append((
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=product.price,
                    line_total=money(product.price * line.quantity),
                    sku=product.sku,
                ),
                LineItem(
                    product_id=product.id,
                    unit_price=product.price,
                    quantity=line.quantity,
                    weight=product.weight,
                ),
            ))
        return Ok(tuple(resolved))

    async def _codes(
        self,
        command: CreateOrderCommand,
        line_items: list[LineItem],
    ) -> Result[DiscountStack | None, ShopError]:
        if not command.discount_codes:
            return Ok(None)
        match await self._discounts.stack(
            line_items, command.discount_codes, command.customer_id
        ):
            case Error(e):
                return Error(e)
            case Ok(stacked):
                return Ok(stacked)

    def _creation_saga(self, order: Order, codes: tuple[str, ...]) -> S.SagaExpr[object, object]:
        meta = MovementMeta(reason="Order reservation", reference=order.id)
        release_meta = MovementMeta(reason="Order creation rolled back", reference=order.id)

        async def persist_order() -> Result[Order, ShopError]:
            return from_store(await self._repo.create_order(order))

        async def delete_order(saved: Order) -> Result[bool, ShopError]:
            return from_store(await self._repo.delete_order(saved.id))

        persist = S.from_result(
            persist_order, compensate=delete_order, name=f"persist-{order.id}"
        )
        reserves = [
            S.from_result(
                lambda item=item: self._ledger.reserve(item.product_id, item.quantity, meta),
                compensate=lambda _record, item=item: self._ledger.release(
                    item.product_id, item.quantity, release_meta
                ),
                name=f"reserve-{item.product_id}",
            )
            for item in order.items
        ]
        redemptions = [
            S.from_result(
                lambda code=code: self._discounts.apply(code, order.customer_id),
                compensate=lambda _dc, code=code: self._discounts.release_usage(code),
                name=f"redeem-{code}",
            )
            for code in codes
        ]
        return S.sequence(persist, *reserves, *redemptions)

    async def create(self, command: CreateOrderCommand) -> Result[Order, ShopError]:
        """
        Validate, price and persist a new PENDING order with its reservations.

        Fails without side effects on bad input, unknown customer or product,
        or insufficient stock. If a write fails midway, completed steps are
        compensated; a failed compensation surfaces as INCONSISTENT_STATE.
        """
        match merge_lines(command):
            case Error(e):
                return Error(e)
            case Ok(lines):
                pass

        match await self._customer(command.customer_id):
            case Error(e):
                return Error(e)
            case Ok(customer):
                pass

        match await self._items(lines):
            case Error(e):
                return Error(e)
            case Ok(resolved):
                pass

        items = tuple(item for item, _ in resolved)
        line_items = [line for _, line in resolved]

        currency = self._pricing.config.currency
        match self._pricing.compute_total(
            line_items, PriceContext(customer_tier=customer.tier, currency=currency)
        ):
            case Error(e):
                return Error(e)
            case Ok(breakdown):
                pass

        match await self._codes(command, line_items):
            case Error(e):
                return Error(e)
            case Ok(stacked):
                pass

        code_amount = stacked.amount if stacked is not None else ZERO
        codes = stacked.codes if stacked is not None else ()
        now = self._clock()

        order = Order(
            id=new_order_id(),
            customer_id=command.customer_id,
            items=items,
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
            subtotal=breakdown.subtotal,
            discount_amount=breakdown.bulk_discount + breakdown.loyalty_discount + code_amount,
            tax_amount=breakdown.tax,
            shipping_amount=breakdown.shipping,
            total_amount=max(breakdown.total - code_amount, ZERO),
            currency=currency,
            applied_codes=codes,
            shipping_address=command.shipping_address,
            billing_address=command.billing_address or command.shipping_address,
            payment_method=command.payment_method,
            shipping_method=command.shipping_method,
            notes=command.notes,
        )

        async with self._ledger.hold(*order.product_ids):
            match await S.run(self._creation_saga(order, codes)):
                case Ok(_):
                    logger.info(
                        "Created order %s for %s: %d item(s), total %s",
                        order.id, order.customer_id, order.item_count, order.total_amount,
                    )
                    return Ok(order)
                case Error(failure):
                    return Error(self._saga_failure(order.id, "create", failure))

    # ───────────────────────────────────────────────────────────────────────────
    # Transitions
    # ───────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _saga_failure(order_id: str, action: str, failure: S.SagaError[object]) -> ShopError:
        error = failure.error
        if not isinstance(error, ShopError):
            raise TypeError(f"Unexpected saga error: {error!r}")

        if failure.rollback_complete:
            return error

        logger.critical(
            "Order %s: %s failed and %d compensation(s) failed; manual repair needed",
            order_id, action, failure.compensators_failed,
        )
        return Errors.inconsistent(error, failure.compensators_failed)

    def _persist_step(self, order: Order) -> S.SagaStep[Order, ShopError]:
        async def persist() -> Result[Order, ShopError]:
            return from_store(await self._repo.update_order(order))

        return S.from_result(persist, name=f"persist-{order.id}")

    async def _run_with_items(
        self,
        action: str,
        order: Order,
        updated: Order,
        steps: list[S.SagaStep[object, ShopError]],
    ) -> Result[Order, ShopError]:
        saga = S.sequence(*steps, self._persist_step(updated))
        async with self._ledger.hold(*order.product_ids):
            match await S.run(saga):
                case Ok(_):
                    logger.info("Order %s: %s -> %s", order.id, order.status.value, updated.status.value)
                    return Ok(updated)
                case Error(failure):
                    return Error(self._saga_failure(order.id, action, failure))

    async def _cancel(self, order: Order, now: datetime) -> Result[Order, ShopError]:
        meta = MovementMeta(reason="Order cancelled", reference=order.id)
        undo = MovementMeta(reason="Cancellation rolled back", reference=order.id)
        steps = [
            S.from_result(
                lambda item=item: self._ledger.release(item.product_id, item.quantity, meta),
                compensate=lambda _r, item=item: self._ledger.reserve(
                    item.product_id, item.quantity, undo
                ),
                name=f"release-{item.product_id}",
            )
            for item in order.items
        ]
        updated = order.evolve(status=OrderStatus.CANCELLED, updated_at=now)
        return await self._run_with_items("cancel", order, updated, steps)

    async def _ship(
        self, order: Order, now: datetime, tracking_number: str | None
    ) -> Result[Order, ShopError]:
        meta = MovementMeta(reason="Order shipped", reference=order.id)
        undo = MovementMeta(reason="Shipment rolled back", reference=order.id)
        steps = [
            S.from_result(
                lambda item=item: self._ledger.commit(item.product_id, item.quantity, meta),
                compensate=lambda _r, item=item: self._ledger.restore_reservation(
                    item.product_id, item.quantity, undo
                ),
                name=f"commit-{item.product_id}",
            )
            for item in order.items
        ]
        updated = order.evolve(
            status=OrderStatus.SHIPPED,
            updated_at=now,
            tracking_number=tracking_number or order.tracking_number,
        )
        return await self._run_with_items("ship", order, updated, steps)

    async def _refund(self, order: Order, reason: str) -> Result[Order, ShopError]:
        now = self._clock()
        if order.status is OrderStatus.REFUNDED:
            return Error(Errors.invalid_transition(
                order.status.value, OrderStatus.REFUNDED.value, "Order already refunded"
            ))
        if order.status is not OrderStatus.DELIVERED:
            return Error(Errors.invalid_transition(
                order.status.value,
                OrderStatus.REFUNDED.value,
                "Only delivered orders can be refunded",
            ))
        if now - order.created_at > self._refund_window:
            return Error(Errors.invalid_transition(
                order.status.value, OrderStatus.REFUNDED.value, "Refund period expired"
            ))

        meta = MovementMeta(reason=f"Refund: {reason}" if reason else "Refund", reference=order.id)
        undo = MovementMeta(reason="Refund rolled back", reference=order.id)
        steps = [
            S.from_result(
                lambda item=item: self._ledger.adjust(
                    item.product_id, MovementType.IN, item.quantity, meta
                ),
                compensate=lambda _r, item=item: self._ledger.adjust(
                    item.product_id, MovementType.OUT, item.quantity, undo
                ),
                name=f"restock-{item.product_id}",
            )
            for item in order.items
        ]
        updated = order.evolve(
            status=OrderStatus.REFUNDED,
            payment_status=PaymentStatus.REFUNDED,
            updated_at=now,
            refunded_at=now,
            refund_reason=reason or None,
        )
        return await self._run_with_items("refund", order, updated, steps)

    async def transition(
        self,
        order_id: str,
        target: OrderStatus,
        *,
        tracking_number: str | None = None,
        reason: str = "",
    ) -> Result[Order, ShopError]:
        """
        Move an order to target status.

        CANCELLED releases reservations, SHIPPED consumes them,
        DELIVERED stamps completed_at, REFUNDED restocks (see refund()).
        """
        async with self._locks.hold(order_id):
            match await self.get(order_id):
                case Error(e):
                    return Error(e)
                case Ok(order):
                    pass

            if target is OrderStatus.REFUNDED:
                return await self._refund(order, reason)

            if not can_transition(order.status, target):
                message = None
                if target is OrderStatus.CANCELLED:
                    message = f"Cannot cancel order with status {order.status.value}"
                return Error(Errors.invalid_transition(
                    order.status.value, target.value, message
                ))

            now = self._clock()
            match target:
                case OrderStatus.CANCELLED:
                    return await self._cancel(order, now)
                case OrderStatus.SHIPPED:
                    return await self._ship(order, now, tracking_number)
                case OrderStatus.DELIVERED:
                    updated = order.evolve(status=target, updated_at=now, completed_at=now)
                case _:
                    updated = order.evolve(status=target, updated_at=now)

            match from_store(await self._repo.update_order(updated)):
                case Error(e):
                    return Error(e)
                case Ok(saved):
                    logger.info("Order %s: %s -> %s", order_id, order.status.value, target.value)
                    return Ok(saved)

    async def cancel(self, order_id: str) -> Result[Order, ShopError]:
        """Cancel from PENDING, CONFIRMED or PROCESSING; releases every reservation."""
        return await self.transition(order_id, OrderStatus.CANCELLED)

    async def refund(self, order_id: str, reason: str = "") -> Result[Order, ShopError]:
        return await self.transition(order_id, OrderStatus.REFUNDED, reason=reason)

    @staticmethod
    def is_cancellable(order: Order) -> bool:
        return order.status in CANCELLABLE


__all__ = (
    "OrderLifecycle",
    "merge_lines",
    "new_order_id",
    "MAX_NOTES_LENGTH",
    "DEFAULT_REFUND_WINDOW",
)
