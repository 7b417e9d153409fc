"""Test helpers shared across modules."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from kungfu import Error, Ok, Result

from shopcore.domain import Customer, Product
from shopcore.errors import StoreError
from shopcore.inventory import InventoryRecord

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

ALWAYS = "always"


# ═══════════════════════════════════════════════════════════════════════════════
# Seed data
# ═══════════════════════════════════════════════════════════════════════════════


def catalog() -> list[Product]:
    return [
        Product("P1", "Widget", Decimal("10.00"), sku="WID-1", weight=Decimal("0.5")),
        Product("P2", "Gadget", Decimal("25.00"), sku="GAD-1", weight=Decimal("1")),
        Product("P3", "Retired", Decimal("5.00"), sku="RET-1", is_active=False),
        Product("P4", "Gizmo", Decimal("40.00"), sku="GIZ-1", weight=Decimal("2")),
    ]


def customers() -> list[Customer]:
    return [
        Customer("c-regular", "Rita Regular", "regular"),
        Customer("c-vip", "Victor Vip", "vip"),
        Customer("c-gold", "Gail Gold", "gold"),
    ]


def stock() -> list[InventoryRecord]:
    return [
        InventoryRecord("P1", available_stock=10, reorder_level=5),
        InventoryRecord("P2", available_stock=50, reorder_level=10),
        InventoryRecord("P3", available_stock=5, reorder_level=1),
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# Clock & Result helpers
# ═══════════════════════════════════════════════════════════════════════════════


class FixedClock:
    """Callable clock pinned to a moment; advance() moves it forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def ok[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"expected Ok, got Error({e})")


def err[E](result: Result[Any, E]) -> E:
    match result:
        case Error(e):
            return e
        case Ok(value):
            pytest.fail(f"expected Error, got Ok({value!r})")


# ═══════════════════════════════════════════════════════════════════════════════
# Fault injection
# ═══════════════════════════════════════════════════════════════════════════════


class FlakyRepository:
    """
    Delegates to a real repository, failing chosen calls with StoreError.

    fail("update_inventory", 2, 3) fails the 2nd and 3rd call;
    fail("create_order") fails every call.
    stall("update_inventory", 2) parks the 2nd call until it is cancelled
    and sets `stalled` once it is parked.
    interleave("update_inventory") yields to other tasks before every call.
    """

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        self.calls: dict[str, int] = {}
        self.stalled = asyncio.Event()
        self._failures: dict[str, set[int] | str] = {}
        self._stalls: dict[str, int] = {}
        self._interleaved: set[str] = set()

    def fail(self, method: str, *calls: int) -> FlakyRepository:
        self._failures[method] = set(calls) if calls else ALWAYS
        return self

    def stall(self, method: str, call: int) -> FlakyRepository:
        self._stalls[method] = call
        return self

    def interleave(self, method: str) -> FlakyRepository:
        self._interleaved.add(method)
        return self

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self.inner, name)
        if name.startswith("_") or not callable(attr):
            return attr

        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            n = self.calls[name] = self.calls.get(name, 0) + 1
            rule = self._failures.get(name)
            if rule == ALWAYS or (isinstance(rule, set) and n in rule):
                return Error(StoreError(f"injected failure in {name} (call {n})"))
            if name in self._interleaved:
                await asyncio.sleep(0)
            if self._stalls.get(name) == n:
                self.stalled.set()
                await asyncio.sleep(3600)
            return await attr(*args, **kwargs)

        return wrapper
