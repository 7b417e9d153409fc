"""
Error taxonomy — every public operation fails with a ShopError value.

    from shopcore.errors import Errors, ErrorKind

    match await ledger.reserve("sku-1", 3, meta):
        case Error(e) if e.kind is ErrorKind.INSUFFICIENT_STOCK:
            ...

Business-rule violations are values, never exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from kungfu import Result, Ok, Error

# ═══════════════════════════════════════════════════════════════════════════════
# Error Kind
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    """Stable error kinds surfaced to callers."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INSUFFICIENT_RESERVED_STOCK = "insufficient_reserved_stock"
    INVALID_OR_EXPIRED_CODE = "invalid_or_expired_code"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    UNSUPPORTED_CURRENCY = "unsupported_currency"
    PERSISTENCE_FAILURE = "persistence_failure"
    INCONSISTENT_STATE = "inconsistent_state"  # rollback itself failed


# ═══════════════════════════════════════════════════════════════════════════════
# ShopError
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShopError:
    """
    Typed failure returned inside Error(...).

    Note: cause carries the original ShopError when kind is INCONSISTENT_STATE,
    or the underlying StoreError for PERSISTENCE_FAILURE.
    """

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict[str, Any])
    cause: object | None = None

    def __str__(self) -> str:
        return f"{self.kind.name}: {self.message}"


@dataclass(frozen=True, slots=True)
class StoreError:
    """
    Repository operation error.

    Note: conflict is set when a guarded write found the row changed since
    it was read; the caller may re-read and retry.
    """

    message: str
    cause: Exception | None = None
    conflict: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Factories
# ═══════════════════════════════════════════════════════════════════════════════


class Errors:
    """Static factories for ShopError values."""

    @staticmethod
    def invalid_input(message: str, **details: Any) -> ShopError:
        return ShopError(ErrorKind.INVALID_INPUT, message, details)

    @staticmethod
    def not_found(entity: str, entity_id: str) -> ShopError:
        return ShopError(
            ErrorKind.NOT_FOUND,
            f"{entity} {entity_id} not found",
            {"entity": entity, "id": entity_id},
        )

    @staticmethod
    def insufficient_stock(
        product_id: str, requested: int, available: int
    ) -> ShopError:
        return ShopError(
            ErrorKind.INSUFFICIENT_STOCK,
            f"Insufficient stock for product {product_id}",
            {"product_id": product_id, "requested": requested, "available": available},
        )

    @staticmethod
    def insufficient_reserved(
        product_id: str, requested: int, reserved: int
    ) -> ShopError:
        return ShopError(
            ErrorKind.INSUFFICIENT_RESERVED_STOCK,
            f"Insufficient reserved stock for product {product_id}",
            {"product_id": product_id, "requested": requested, "reserved": reserved},
        )

    @staticmethod
    def invalid_code(code: str) -> ShopError:
        return ShopError(
            ErrorKind.INVALID_OR_EXPIRED_CODE,
            "Invalid or expired discount code",
            {"code": code},
        )

    @staticmethod
    def invalid_transition(current: str, target: str, message: str | None = None) -> ShopError:
        return ShopError(
            ErrorKind.INVALID_STATUS_TRANSITION,
            message or f"Invalid status transition from {current} to {target}",
            {"current": current, "target": target},
        )

    @staticmethod
    def unsupported_currency(source: str, target: str) -> ShopError:
        return ShopError(
            ErrorKind.UNSUPPORTED_CURRENCY,
            f"Conversion from {source} to {target} not supported",
            {"from": source, "to": target},
        )

    @staticmethod
    def persistence(error: StoreError) -> ShopError:
        return ShopError(ErrorKind.PERSISTENCE_FAILURE, error.message, cause=error)

    @staticmethod
    def inconsistent(original: ShopError, compensators_failed: int) -> ShopError:
        return ShopError(
            ErrorKind.INCONSISTENT_STATE,
            f"Rollback incomplete after: {original.message}",
            {"compensators_failed": compensators_failed},
            cause=original,
        )


def from_store[T](result: Result[T, StoreError]) -> Result[T, ShopError]:
    """Translate a repository result into the shop error space."""
    match result:
        case Ok(value):
            return Ok(value)
        case Error(e):
            return Error(Errors.persistence(e))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "ErrorKind",
    "ShopError",
    "StoreError",
    "Errors",
    "from_store",
)
