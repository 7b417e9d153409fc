"""
Inbound request / outbound response models.

Requests implement to_domain(), responses implement from_domain().
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shopcore.orders import (
    Address,
    CreateOrderCommand,
    Order,
    OrderItem,
    OrderLine,
    OrderStatus,
)
from shopcore.orders import MAX_NOTES_LENGTH

# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


class AddressIn(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = ""
    postal_code: str = ""
    country: str = "US"

    def to_domain(self) -> Address:
        return Address(
            street=self.street,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            country=self.country,
        )


class OrderLineIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    product_id: str = Field(min_length=1)
    quantity: int = Field(gt=0, strict=True)

    def to_domain(self) -> OrderLine:
        return OrderLine(product_id=self.product_id, quantity=self.quantity)


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    customer_id: str = Field(min_length=1)
    items: list[OrderLineIn] = Field(min_length=1)
    shipping_address: AddressIn
    billing_address: AddressIn | None = None
    payment_method: str = Field(min_length=1)
    shipping_method: str = "standard"
    discount_codes: list[str] = Field(default_factory=list[str])
    notes: str = Field(default="", max_length=MAX_NOTES_LENGTH)

    @field_validator("discount_codes")
    @classmethod
    def normalize_codes(cls, v: list[str]) -> list[str]:
        return [code.strip().upper() for code in v if code.strip()]

    def to_domain(self) -> CreateOrderCommand:
        return CreateOrderCommand(
            customer_id=self.customer_id,
            lines=tuple(line.to_domain() for line in self.items),
            shipping_address=self.shipping_address.to_domain(),
            billing_address=self.billing_address.to_domain() if self.billing_address else None,
            payment_method=self.payment_method,
            shipping_method=self.shipping_method,
            discount_codes=tuple(self.discount_codes),
            notes=self.notes,
        )


class StockRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(gt=0, strict=True)
    order_id: str | None = None


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    tracking_number: str | None = None
    reason: str = ""

    @field_validator("status", mode="before")
    @classmethod
    def upper_status(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v


class QuoteRequest(BaseModel):
    customer_id: str | None = None
    items: list[OrderLineIn] = Field(min_length=1)
    discount_codes: list[str] = Field(default_factory=list[str])


# ═══════════════════════════════════════════════════════════════════════════════
# Responses
# ═══════════════════════════════════════════════════════════════════════════════


class OrderItemOut(BaseModel):
    product_id: str
    product_name: str
    sku: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    @classmethod
    def from_domain(cls, item: OrderItem) -> OrderItemOut:
        return cls(
            product_id=item.product_id,
            product_name=item.product_name,
            sku=item.sku,
            quantity=item.quantity,
            unit_price=item.unit_price,
            line_total=item.line_total,
        )


class OrderOut(BaseModel):
    id: str
    customer_id: str
    status: str
    payment_status: str
    items: list[OrderItemOut]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    currency: str
    applied_codes: list[str]
    tracking_number: str | None
    created_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_domain(cls, order: Order) -> OrderOut:
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            status=order.status.value,
            payment_status=order.payment_status.value,
            items=[OrderItemOut.from_domain(i) for i in order.items],
            subtotal=order.subtotal,
            discount_amount=order.discount_amount,
            tax_amount=order.tax_amount,
            shipping_amount=order.shipping_amount,
            total_amount=order.total_amount,
            currency=order.currency,
            applied_codes=list(order.applied_codes),
            tracking_number=order.tracking_number,
            created_at=order.created_at,
            completed_at=order.completed_at,
        )


__all__ = (
    "AddressIn",
    "OrderLineIn",
    "CreateOrderRequest",
    "StockRequest",
    "StatusUpdateRequest",
    "QuoteRequest",
    "OrderItemOut",
    "OrderOut",
)
