"""
SQLAlchemy repository — async ORM implementation of Repository.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
    repo = SQLAlchemyRepository(session_factory)

    await repo.seed(products=[...], inventory=[...])
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    delete,
    select,
    update,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from shopcore.domain import Customer, Product
from shopcore.errors import StoreError
from shopcore.discounts._types import DiscountCode, DiscountType
from shopcore.inventory._types import InventoryRecord, MovementType, StockMovement
from shopcore.orders._types import (
    Address,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)


def _utc(value: datetime | None) -> datetime | None:
    """Stored datetimes are UTC; SQLite hands them back naive."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _address_to_json(address: Address | None) -> dict[str, str] | None:
    if address is None:
        return None
    return {
        "street": address.street,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": address.country,
    }


def _address_from_json(data: dict[str, Any] | None) -> Address | None:
    return Address(**data) if data else None


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Tables
# ═══════════════════════════════════════════════════════════════════════════════


class ProductTable(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    weight: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False, default=Decimal("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            price=self.price,
            sku=self.sku,
            weight=self.weight,
            is_active=self.is_active,
        )

    @classmethod
    def from_domain(cls, p: Product) -> ProductTable:
        return cls(
            id=p.id, name=p.name, sku=p.sku, price=p.price, weight=p.weight, is_active=p.is_active
        )


class CustomerTable(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tier: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def to_domain(self) -> Customer:
        return Customer(id=self.id, name=self.name, tier=self.tier)

    @classmethod
    def from_domain(cls, c: Customer) -> CustomerTable:
        return cls(id=c.id, name=c.name, tier=c.tier)


# ═══════════════════════════════════════════════════════════════════════════════
# Inventory Tables
# ═══════════════════════════════════════════════════════════════════════════════


class InventoryTable(Base):
    __tablename__ = "inventory"

    product_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("products.id"), primary_key=True
    )
    available_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    location: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    last_restocked: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_domain(self) -> InventoryRecord:
        return InventoryRecord(
            product_id=self.product_id,
            available_stock=self.available_stock,
            reserved_stock=self.reserved_stock,
            reorder_level=self.reorder_level,
            max_stock=self.max_stock,
            location=self.location,
            last_restocked=_utc(self.last_restocked),
            updated_at=_utc(self.updated_at),
        )

    def apply(self, r: InventoryRecord) -> None:
        self.available_stock = r.available_stock
        self.reserved_stock = r.reserved_stock
        self.reorder_level = r.reorder_level
        self.max_stock = r.max_stock
        self.location = r.location
        self.last_restocked = _utc(r.last_restocked)
        self.updated_at = _utc(r.updated_at)


class StockMovementTable(Base):
    __tablename__ = "stock_movements"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reference: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    actor: Mapped[str] = mapped_column(String(64), nullable=False, default="system")
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_domain(self) -> StockMovement:
        return StockMovement(
            id=self.id,
            product_id=self.product_id,
            type=MovementType(self.type),
            quantity=self.quantity,
            previous_stock=self.previous_stock,
            new_stock=self.new_stock,
            reason=self.reason,
            reference=self.reference,
            actor=self.actor,
            timestamp=_utc(self.timestamp),  # type: ignore[arg-type]
        )

    @classmethod
    def from_domain(cls, m: StockMovement) -> StockMovementTable:
        return cls(
            id=m.id,
            product_id=m.product_id,
            type=m.type.value,
            quantity=m.quantity,
            previous_stock=m.previous_stock,
            new_stock=m.new_stock,
            reason=m.reason,
            reference=m.reference,
            actor=m.actor,
            timestamp=_utc(m.timestamp),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Order Tables
# ═══════════════════════════════════════════════════════════════════════════════


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    applied_codes: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    shipping_address: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    billing_address: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    payment_method: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    payment_status: Mapped[str] = mapped_column(String(32), nullable=False)
    shipping_method: Mapped[str] = mapped_column(String(64), nullable=False, default="standard")
    tracking_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_domain(self, items: Sequence[OrderItemTable]) -> Order:
        return Order(
            id=self.id,
            customer_id=self.customer_id,
            items=tuple(i.to_domain() for i in sorted(items, key=lambda i: i.position)),
            status=OrderStatus(self.status),
            created_at=_utc(self.created_at),  # type: ignore[arg-type]
            updated_at=_utc(self.updated_at),  # type: ignore[arg-type]
            subtotal=self.subtotal,
            discount_amount=self.discount_amount,
            tax_amount=self.tax_amount,
            shipping_amount=self.shipping_amount,
            total_amount=self.total_amount,
            currency=self.currency,
            applied_codes=tuple(c for c in self.applied_codes.split(",") if c),
            shipping_address=_address_from_json(self.shipping_address),
            billing_address=_address_from_json(self.billing_address),
            payment_method=self.payment_method,
            payment_status=PaymentStatus(self.payment_status),
            shipping_method=self.shipping_method,
            tracking_number=self.tracking_number,
            notes=self.notes,
            completed_at=_utc(self.completed_at),
            refunded_at=_utc(self.refunded_at),
            refund_reason=self.refund_reason,
        )

    def apply(self, o: Order) -> None:
        """Copy mutable order state; items are written once at creation."""
        self.customer_id = o.customer_id
        self.status = o.status.value
        self.subtotal = o.subtotal
        self.discount_amount = o.discount_amount
        self.tax_amount = o.tax_amount
        self.shipping_amount = o.shipping_amount
        self.total_amount = o.total_amount
        self.currency = o.currency
        self.applied_codes = ",".join(o.applied_codes)
        self.shipping_address = _address_to_json(o.shipping_address)
        self.billing_address = _address_to_json(o.billing_address)
        self.payment_method = o.payment_method
        self.payment_status = o.payment_status.value
        self.shipping_method = o.shipping_method
        self.tracking_number = o.tracking_number
        self.notes = o.notes
        self.created_at = _utc(o.created_at)  # type: ignore[assignment]
        self.updated_at = _utc(o.updated_at)  # type: ignore[assignment]
        self.completed_at = _utc(o.completed_at)
        self.refunded_at = _utc(o.refunded_at)
        self.refund_reason = o.refund_reason

    @classmethod
    def from_domain(cls, o: Order) -> OrderTable:
        row = cls(id=o.id)
        row.apply(o)
        return row


class OrderItemTable(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    def to_domain(self) -> OrderItem:
        return OrderItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            line_total=self.line_total,
            sku=self.sku,
        )

    @classmethod
    def from_domain(cls, order_id: str, position: int, i: OrderItem) -> OrderItemTable:
        return cls(
            order_id=order_id,
            position=position,
            product_id=i.product_id,
            product_name=i.product_name,
            sku=i.sku,
            quantity=i.quantity,
            unit_price=i.unit_price,
            line_total=i.line_total,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Discount Table
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountCodeTable(Base):
    __tablename__ = "discount_codes"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    min_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    customer_restriction: Mapped[str | None] = mapped_column(String(32), nullable=True)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_domain(self) -> DiscountCode:
        return DiscountCode(
            code=self.code,
            type=DiscountType(self.type),
            value=self.value,
            min_amount=self.min_amount,
            max_discount=self.max_discount,
            expires_at=_utc(self.expires_at),
            customer_restriction=self.customer_restriction,
            usage_limit=self.usage_limit,
            used_count=self.used_count,
        )

    def apply(self, d: DiscountCode) -> None:
        self.type = d.type.value
        self.value = d.value
        self.min_amount = d.min_amount
        self.max_discount = d.max_discount
        self.expires_at = _utc(d.expires_at)
        self.customer_restriction = d.customer_restriction
        self.usage_limit = d.usage_limit
        self.used_count = d.used_count


# ═══════════════════════════════════════════════════════════════════════════════
# Repository
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyRepository:
    """
    Repository over an async SQLAlchemy session factory.

    Note: one session per call; multi-row writes (record + movement,
    order + items) share a transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def seed(
        self,
        *,
        products: Iterable[Product] = (),
        customers: Iterable[Customer] = (),
        inventory: Iterable[InventoryRecord] = (),
        codes: Iterable[DiscountCode] = (),
    ) -> Result[None, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add_all(ProductTable.from_domain(p) for p in products)
                session.add_all(CustomerTable.from_domain(c) for c in customers)
                await session.flush()
                for record in inventory:
                    row = InventoryTable(product_id=record.product_id)
                    row.apply(record)
                    session.add(row)
                for code in codes:
                    code_row = DiscountCodeTable(code=code.code)
                    code_row.apply(code)
                    session.add(code_row)
                await session.commit()
            return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to seed: {e}", e))

    # ───────────────────────────────────────────────────────────────────────────
    # Catalog
    # ───────────────────────────────────────────────────────────────────────────

    async def find_product_by_id(self, product_id: str) -> Result[Product | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ProductTable, product_id)
                return Ok(row.to_domain() if row else None)
        except Exception as e:
            return Error(StoreError(f"Failed to load product {product_id}: {e}", e))

    async def find_customer_by_id(self, customer_id: str) -> Result[Customer | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(CustomerTable, customer_id)
                return Ok(row.to_domain() if row else None)
        except Exception as e:
            return Error(StoreError(f"Failed to load customer {customer_id}: {e}", e))

    # ───────────────────────────────────────────────────────────────────────────
    # Inventory
    # ───────────────────────────────────────────────────────────────────────────

    async def find_inventory_by_product_id(
        self, product_id: str
    ) -> Result[InventoryRecord | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(InventoryTable, product_id)
                return Ok(row.to_domain() if row else None)
        except Exception as e:
            return Error(StoreError(f"Failed to load inventory {product_id}: {e}", e))

    async def list_inventory(self) -> Result[list[InventoryRecord], StoreError]:
        try:
            async with self._session_factory() as session:
                rows = await session.scalars(
                    select(InventoryTable).order_by(InventoryTable.product_id)
                )
                return Ok([row.to_domain() for row in rows])
        except Exception as e:
            return Error(StoreError(f"Failed to list inventory: {e}", e))

    async def create_inventory(
        self, record: InventoryRecord, movement: StockMovement | None
    ) -> Result[InventoryRecord, StoreError]:
        try:
            async with self._session_factory() as session:
                row = InventoryTable(product_id=record.product_id)
                row.apply(record)
                session.add(row)
                if movement is not None:
                    session.add(StockMovementTable.from_domain(movement))
                await session.commit()
            return Ok(record)
        except Exception as e:
            return Error(StoreError(f"Failed to create inventory {record.product_id}: {e}", e))

    async def update_inventory(
        self,
        record: InventoryRecord,
        movement: StockMovement,
        expected: InventoryRecord | None = None,
    ) -> Result[InventoryRecord, StoreError]:
        stmt = update(InventoryTable).where(InventoryTable.product_id == record.product_id)
        if expected is not None:
            stmt = stmt.where(
                InventoryTable.available_stock == expected.available_stock,
                InventoryTable.reserved_stock == expected.reserved_stock,
            )
        stmt = stmt.values(
            available_stock=record.available_stock,
            reserved_stock=record.reserved_stock,
            reorder_level=record.reorder_level,
            max_stock=record.max_stock,
            location=record.location,
            last_restocked=_utc(record.last_restocked),
            updated_at=_utc(record.updated_at),
        ).execution_options(synchronize_session=False)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    if await session.get(InventoryTable, record.product_id) is None:
                        return Error(StoreError(f"Inventory for {record.product_id} does not exist"))
                    return Error(StoreError(
                        f"Inventory for {record.product_id} changed concurrently", conflict=True
                    ))
                session.add(StockMovementTable.from_domain(movement))
                await session.commit()
            return Ok(record)
        except Exception as e:
            return Error(StoreError(f"Failed to update inventory {record.product_id}: {e}", e))

    async def find_movements(
        self, product_id: str | None = None, reference: str | None = None
    ) -> Result[list[StockMovement], StoreError]:
        try:
            stmt = select(StockMovementTable).order_by(StockMovementTable.seq)
            if product_id is not None:
                stmt = stmt.where(StockMovementTable.product_id == product_id)
            if reference is not None:
                stmt = stmt.where(StockMovementTable.reference == reference)
            async with self._session_factory() as session:
                rows = await session.scalars(stmt)
                return Ok([row.to_domain() for row in rows])
        except Exception as e:
            return Error(StoreError(f"Failed to load movements: {e}", e))

    # ───────────────────────────────────────────────────────────────────────────
    # Orders
    # ───────────────────────────────────────────────────────────────────────────

    async def _load_orders(
        self, session: AsyncSession, rows: Sequence[OrderTable]
    ) -> list[Order]:
        if not rows:
            return []
        items = await session.scalars(
            select(OrderItemTable).where(OrderItemTable.order_id.in_([r.id for r in rows]))
        )
        by_order: dict[str, list[OrderItemTable]] = {}
        for item in items:
            by_order.setdefault(item.order_id, []).append(item)
        return [row.to_domain(by_order.get(row.id, [])) for row in rows]

    async def create_order(self, order: Order) -> Result[Order, StoreError]:
        try:
            async with self._session_factory() as session:
                session.add(OrderTable.from_domain(order))
                await session.flush()
                session.add_all(
                    OrderItemTable.from_domain(order.id, position, item)
                    for position, item in enumerate(order.items)
                )
                await session.commit()
            return Ok(order)
        except Exception as e:
            return Error(StoreError(f"Failed to create order {order.id}: {e}", e))

    async def update_order(self, order: Order) -> Result[Order, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order.id)
                if row is None:
                    return Error(StoreError(f"Order {order.id} does not exist"))
                row.apply(order)
                await session.commit()
            return Ok(order)
        except Exception as e:
            return Error(StoreError(f"Failed to update order {order.id}: {e}", e))

    async def delete_order(self, order_id: str) -> Result[bool, StoreError]:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(OrderItemTable).where(OrderItemTable.order_id == order_id)
                )
                result = await session.execute(
                    delete(OrderTable).where(OrderTable.id == order_id)
                )
                await session.commit()
                return Ok(result.rowcount > 0)  # type: ignore[attr-defined]
        except Exception as e:
            return Error(StoreError(f"Failed to delete order {order_id}: {e}", e))

    async def find_order_by_id(self, order_id: str) -> Result[Order | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(OrderTable, order_id)
                if row is None:
                    return Ok(None)
                orders = await self._load_orders(session, [row])
                return Ok(orders[0])
        except Exception as e:
            return Error(StoreError(f"Failed to load order {order_id}: {e}", e))

    async def find_orders(
        self, customer_id: str | None = None, status: OrderStatus | None = None
    ) -> Result[list[Order], StoreError]:
        try:
            stmt = select(OrderTable).order_by(OrderTable.created_at.desc())
            if customer_id is not None:
                stmt = stmt.where(OrderTable.customer_id == customer_id)
            if status is not None:
                stmt = stmt.where(OrderTable.status == status.value)
            async with self._session_factory() as session:
                rows = list(await session.scalars(stmt))
                return Ok(await self._load_orders(session, rows))
        except Exception as e:
            return Error(StoreError(f"Failed to list orders: {e}", e))

    # ───────────────────────────────────────────────────────────────────────────
    # Discounts
    # ───────────────────────────────────────────────────────────────────────────

    async def find_discount_code(self, code: str) -> Result[DiscountCode | None, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(DiscountCodeTable, code.upper())
                return Ok(row.to_domain() if row else None)
        except Exception as e:
            return Error(StoreError(f"Failed to load discount code {code}: {e}", e))

    async def save_discount_code(self, code: DiscountCode) -> Result[DiscountCode, StoreError]:
        try:
            async with self._session_factory() as session:
                row = await session.get(DiscountCodeTable, code.code)
                if row is None:
                    row = DiscountCodeTable(code=code.code)
                    session.add(row)
                row.apply(code)
                await session.commit()
            return Ok(code)
        except Exception as e:
            return Error(StoreError(f"Failed to save discount code {code.code}: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "ProductTable",
    "CustomerTable",
    "InventoryTable",
    "StockMovementTable",
    "OrderTable",
    "OrderItemTable",
    "DiscountCodeTable",
    "SQLAlchemyRepository",
    "create_database",
)
