"""Tests for InventoryLedger and low-stock alert rules."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest
from kungfu import Ok

from shopcore.errors import ErrorKind
from shopcore.inventory import (
    AlertPriority,
    InventoryLedger,
    LowStockAlert,
    MemoryAlertPublisher,
    MovementMeta,
    MovementType,
    StockMovement,
    alert_priority,
    suggested_order_quantity,
)
from shopcore.store import MemoryRepository

from helpers import FIXED_NOW, FixedClock, FlakyRepository, err, ok


async def counters(ledger: InventoryLedger, product_id: str) -> tuple[int, int]:
    record = ok(await ledger.get(product_id))
    return record.available_stock, record.reserved_stock


class ExplodingPublisher:
    async def publish_low_stock_alert(self, alert: LowStockAlert) -> None:
        raise RuntimeError("alert channel down")


class TestReservations:
    @pytest.mark.asyncio
    async def test_reserve_release_round_trip(self, ledger: InventoryLedger):
        # Given
        assert await counters(ledger, "P1") == (10, 0)

        # When
        ok(await ledger.reserve("P1", 4))

        # Then
        assert await counters(ledger, "P1") == (6, 4)

        # When
        error = err(await ledger.reserve("P1", 10))

        # Then
        assert error.kind is ErrorKind.INSUFFICIENT_STOCK
        assert error.details["available"] == 6
        assert await counters(ledger, "P1") == (6, 4)

        # When
        ok(await ledger.release("P1", 4))

        # Then
        assert await counters(ledger, "P1") == (10, 0)

    @pytest.mark.asyncio
    async def test_total_stock_is_conserved(self, ledger: InventoryLedger):
        for quantity in (3, 2, 5):
            ok(await ledger.reserve("P1", quantity))
            record = ok(await ledger.get("P1"))
            assert record.total_stock == 10
        for quantity in (5, 3, 2):
            ok(await ledger.release("P1", quantity))
            record = ok(await ledger.get("P1"))
            assert record.total_stock == 10

    @pytest.mark.asyncio
    async def test_release_more_than_reserved(self, ledger: InventoryLedger):
        ok(await ledger.reserve("P1", 2))

        error = err(await ledger.release("P1", 3))

        assert error.kind is ErrorKind.INSUFFICIENT_RESERVED_STOCK
        assert await counters(ledger, "P1") == (8, 2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1, True, 2.5])
    async def test_bad_quantity_leaves_no_trace(self, ledger: InventoryLedger, quantity):
        error = err(await ledger.reserve("P1", quantity))

        assert error.kind is ErrorKind.INVALID_INPUT
        assert ok(await ledger.history("P1")) == []

    @pytest.mark.asyncio
    async def test_unknown_product(self, ledger: InventoryLedger):
        error = err(await ledger.reserve("NOPE", 1))

        assert error.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_each_mutation_records_one_movement(
        self, ledger: InventoryLedger, clock: FixedClock
    ):
        # When
        ok(await ledger.reserve("P1", 3, MovementMeta(reason="hold", reference="ORD-1")))
        ok(await ledger.release("P1", 1, MovementMeta(reference="ORD-1")))

        # Then
        reserved, released = ok(await ledger.history("P1"))
        assert reserved.type is MovementType.RESERVED
        assert (reserved.previous_stock, reserved.new_stock) == (10, 7)
        assert reserved.reason == "hold"
        assert reserved.timestamp == clock.now
        assert released.type is MovementType.RELEASED
        assert (released.previous_stock, released.new_stock) == (7, 8)
        assert len(ok(await ledger.history(reference="ORD-1"))) == 2

    @pytest.mark.asyncio
    async def test_check_availability(self, ledger: InventoryLedger):
        assert ok(await ledger.check_availability("P1", 10)) is True
        assert ok(await ledger.check_availability("P1", 11)) is False

    @pytest.mark.asyncio
    async def test_concurrent_reservations_never_oversell(self, ledger: InventoryLedger):
        # When
        results = await asyncio.gather(*(ledger.reserve("P1", 3) for _ in range(5)))

        # Then
        assert sum(1 for r in results if isinstance(r, Ok)) == 3
        assert await counters(ledger, "P1") == (1, 9)

    @pytest.mark.asyncio
    async def test_ledgers_sharing_a_store_never_oversell(
        self, repo: MemoryRepository, clock: FixedClock
    ):
        # Given two ledgers whose writes interleave on one store
        shared = FlakyRepository(repo).interleave("update_inventory")
        first = InventoryLedger(shared, clock=clock)
        second = InventoryLedger(shared, clock=clock)

        # When
        results = await asyncio.gather(first.reserve("P1", 8), second.reserve("P1", 8))

        # Then
        assert sum(1 for r in results if isinstance(r, Ok)) == 1
        (failure,) = [err(r) for r in results if not isinstance(r, Ok)]
        assert failure.kind is ErrorKind.INSUFFICIENT_STOCK
        assert failure.details["available"] == 2
        assert await counters(first, "P1") == (2, 8)
        assert len(ok(await first.history("P1"))) == 1

    @pytest.mark.asyncio
    async def test_stale_write_is_rejected_by_store(self, repo: MemoryRepository):
        # Given
        stale = ok(await repo.find_inventory_by_product_id("P1"))
        ledger = InventoryLedger(repo)
        ok(await ledger.reserve("P1", 1))
        assert stale is not None

        # When
        result = await repo.update_inventory(
            replace(stale, available_stock=0),
            StockMovement(
                id="mov-stale",
                product_id="P1",
                type=MovementType.OUT,
                quantity=10,
                previous_stock=10,
                new_stock=0,
                reason="stale write",
                reference=None,
                actor="system",
                timestamp=FIXED_NOW,
            ),
            expected=stale,
        )

        # Then
        assert err(result).conflict is True
        assert await counters(ledger, "P1") == (9, 1)

    @pytest.mark.asyncio
    async def test_persistence_failure_changes_nothing(
        self, repo: MemoryRepository, clock: FixedClock
    ):
        # Given
        flaky = FlakyRepository(repo).fail("update_inventory")
        ledger = InventoryLedger(flaky, clock=clock)

        # When
        error = err(await ledger.reserve("P1", 2))

        # Then
        assert error.kind is ErrorKind.PERSISTENCE_FAILURE
        assert await counters(ledger, "P1") == (10, 0)


class TestCommit:
    @pytest.mark.asyncio
    async def test_commit_consumes_reservation(self, ledger: InventoryLedger):
        ok(await ledger.reserve("P1", 3))

        record = ok(await ledger.commit("P1", 3))

        assert (record.available_stock, record.reserved_stock) == (7, 0)
        assert ok(await ledger.history("P1"))[-1].type is MovementType.OUT

    @pytest.mark.asyncio
    async def test_commit_needs_reserved_units(self, ledger: InventoryLedger):
        error = err(await ledger.commit("P1", 1))

        assert error.kind is ErrorKind.INSUFFICIENT_RESERVED_STOCK

    @pytest.mark.asyncio
    async def test_restore_reservation_undoes_commit(self, ledger: InventoryLedger):
        ok(await ledger.reserve("P1", 3))
        ok(await ledger.commit("P1", 3))

        ok(await ledger.restore_reservation("P1", 3))

        assert await counters(ledger, "P1") == (7, 3)


class TestAdjust:
    @pytest.mark.asyncio
    async def test_in_adds_and_stamps_restock(self, ledger: InventoryLedger, clock: FixedClock):
        record = ok(await ledger.adjust("P1", MovementType.IN, 5))

        assert record.available_stock == 15
        assert record.last_restocked == clock.now

    @pytest.mark.asyncio
    async def test_out_subtracts(self, ledger: InventoryLedger):
        assert ok(await ledger.adjust("P1", MovementType.OUT, 4)).available_stock == 6

    @pytest.mark.asyncio
    async def test_out_beyond_available(self, ledger: InventoryLedger):
        error = err(await ledger.adjust("P1", MovementType.OUT, 11))

        assert error.kind is ErrorKind.INSUFFICIENT_STOCK

    @pytest.mark.asyncio
    async def test_adjustment_sets_absolute_value(self, ledger: InventoryLedger):
        ok(await ledger.reserve("P1", 2))

        record = ok(await ledger.adjust("P1", MovementType.ADJUSTMENT, 0))

        assert (record.available_stock, record.reserved_stock) == (0, 2)

    @pytest.mark.asyncio
    async def test_reservation_types_rejected(self, ledger: InventoryLedger):
        error = err(await ledger.adjust("P1", MovementType.RESERVED, 1))

        assert error.kind is ErrorKind.INVALID_INPUT


class TestOpenRecord:
    @pytest.mark.asyncio
    async def test_initial_stock_is_an_in_movement(self, ledger: InventoryLedger):
        record = ok(await ledger.open_record("P4", 12, reorder_level=3, location="A-1"))

        assert record.available_stock == 12
        (movement,) = ok(await ledger.history("P4"))
        assert movement.type is MovementType.IN
        assert movement.quantity == 12

    @pytest.mark.asyncio
    async def test_existing_record(self, ledger: InventoryLedger):
        error = err(await ledger.open_record("P1", 1))

        assert error.kind is ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_unknown_product(self, ledger: InventoryLedger):
        error = err(await ledger.open_record("NOPE", 1))

        assert error.kind is ErrorKind.NOT_FOUND


class TestAlerts:
    @pytest.mark.parametrize(
        ("available", "priority", "suggested"),
        [
            (4, AlertPriority.LOW, 4),
            (2, AlertPriority.MEDIUM, 6),
            (1, AlertPriority.HIGH, 7),
            (0, AlertPriority.CRITICAL, 8),
        ],
    )
    def test_priority_and_suggestion(self, available, priority, suggested):
        assert alert_priority(available, 5) is priority
        assert suggested_order_quantity(available, 5) == suggested

    @pytest.mark.asyncio
    async def test_low_stock_publishes_alert(
        self, ledger: InventoryLedger, alerts: MemoryAlertPublisher
    ):
        ok(await ledger.adjust("P1", MovementType.ADJUSTMENT, 4))

        (alert,) = alerts.alerts
        assert alert.product_id == "P1"
        assert alert.product_name == "Widget"
        assert alert.priority is AlertPriority.LOW
        assert alert.suggested_order_quantity == 4

    @pytest.mark.asyncio
    async def test_healthy_stock_is_quiet(
        self, ledger: InventoryLedger, alerts: MemoryAlertPublisher
    ):
        ok(await ledger.reserve("P1", 2))

        assert alerts.alerts == []

    @pytest.mark.asyncio
    async def test_publisher_failure_does_not_fail_mutation(
        self, repo: MemoryRepository, clock: FixedClock
    ):
        ledger = InventoryLedger(repo, alerts=ExplodingPublisher(), clock=clock)

        record = ok(await ledger.adjust("P1", MovementType.ADJUSTMENT, 0))

        assert record.available_stock == 0

    @pytest.mark.asyncio
    async def test_alerts_sorted_by_urgency(self, ledger: InventoryLedger):
        ok(await ledger.adjust("P1", MovementType.ADJUSTMENT, 4))
        ok(await ledger.adjust("P2", MovementType.ADJUSTMENT, 0))

        alerts = ok(await ledger.low_stock_alerts())

        assert [a.product_id for a in alerts] == ["P2", "P1"]
        assert alerts[0].priority is AlertPriority.CRITICAL


class TestReport:
    @pytest.mark.asyncio
    async def test_totals(self, ledger: InventoryLedger):
        ok(await ledger.reserve("P2", 5))

        report = ok(await ledger.report())

        assert report.total_products == 3
        assert report.total_stock == 60
        assert report.total_reserved == 5
        assert report.low_stock_items == 0
        assert report.out_of_stock_items == 0
        assert report.total_value == Decimal("1250.00")
