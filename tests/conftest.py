"""Shared fixtures: a seeded in-memory store and the components over it."""

from __future__ import annotations

import pytest

from shopcore.config import ShopSettings
from shopcore.discounts import DiscountRegistry, default_codes
from shopcore.inventory import InventoryLedger, MemoryAlertPublisher
from shopcore.orders import OrderLifecycle
from shopcore.pricing import PriceEngine, PricingConfig
from shopcore.service import ShopService
from shopcore.store import MemoryRepository

from helpers import FixedClock, catalog, customers, stock


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def repo() -> MemoryRepository:
    return MemoryRepository().seed(
        products=catalog(),
        customers=customers(),
        inventory=stock(),
        codes=default_codes(),
    )


@pytest.fixture
def alerts() -> MemoryAlertPublisher:
    return MemoryAlertPublisher()


@pytest.fixture
def engine() -> PriceEngine:
    return PriceEngine(PricingConfig())


@pytest.fixture
def registry(repo: MemoryRepository, clock: FixedClock) -> DiscountRegistry:
    return DiscountRegistry(repo, clock=clock)


@pytest.fixture
def ledger(
    repo: MemoryRepository, alerts: MemoryAlertPublisher, clock: FixedClock
) -> InventoryLedger:
    return InventoryLedger(repo, alerts=alerts, clock=clock)


@pytest.fixture
def lifecycle(
    repo: MemoryRepository,
    ledger: InventoryLedger,
    engine: PriceEngine,
    registry: DiscountRegistry,
    clock: FixedClock,
) -> OrderLifecycle:
    return OrderLifecycle(repo, ledger, engine, registry, clock=clock)


@pytest.fixture
def settings() -> ShopSettings:
    return ShopSettings(_env_file=None)


@pytest.fixture
def service(
    repo: MemoryRepository,
    settings: ShopSettings,
    alerts: MemoryAlertPublisher,
    clock: FixedClock,
) -> ShopService:
    return ShopService.build(repo, settings, alerts=alerts, clock=clock)
