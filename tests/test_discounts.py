"""Tests for DiscountRegistry: validation, stacking, combinations, redemption."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from kungfu import Ok

from shopcore.discounts import DiscountCode, DiscountRegistry, DiscountType
from shopcore.errors import ErrorKind
from shopcore.pricing import LineItem
from shopcore.store import MemoryRepository

from helpers import FixedClock, err, ok


def cart(amount: str) -> list[LineItem]:
    return [LineItem("P1", Decimal(amount), 1)]


def fixed(code: str, value: str, min_amount: str = "0", **kwargs) -> DiscountCode:
    return DiscountCode(code, DiscountType.FIXED, Decimal(value), Decimal(min_amount), **kwargs)


def percent(code: str, value: str, min_amount: str = "0", **kwargs) -> DiscountCode:
    return DiscountCode(
        code, DiscountType.PERCENTAGE, Decimal(value), Decimal(min_amount), **kwargs
    )


class TestDiscountCode:
    def test_code_is_upper_cased(self):
        assert fixed("spring", "5").code == "SPRING"

    def test_percentage_must_be_a_fraction(self):
        with pytest.raises(ValueError):
            percent("BAD", "20")

    def test_empty_code_rejected(self):
        with pytest.raises(ValueError):
            fixed("  ", "5")

    def test_remaining_uses(self):
        code = fixed("LIMITED", "5", usage_limit=3, used_count=1)

        assert code.remaining_uses == 2
        assert code.has_remaining_uses


class TestValidate:
    @pytest.mark.asyncio
    async def test_known_active_code(self, registry: DiscountRegistry):
        assert ok(await registry.validate("WELCOME10")) is True

    @pytest.mark.asyncio
    async def test_lookup_ignores_case(self, registry: DiscountRegistry):
        assert ok(await registry.validate("welcome10", "c-regular")) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("customer_id", [None, "c-regular", "c-vip", "c-gold"])
    async def test_expired_code_is_never_valid(
        self, registry: DiscountRegistry, customer_id: str | None
    ):
        assert ok(await registry.validate("EXPIRED", customer_id)) is False

    @pytest.mark.asyncio
    async def test_unknown_code(self, registry: DiscountRegistry):
        assert ok(await registry.validate("NOPE")) is False

    @pytest.mark.asyncio
    async def test_blank_code(self, registry: DiscountRegistry):
        assert ok(await registry.validate("   ")) is False

    @pytest.mark.asyncio
    async def test_restricted_code_needs_matching_tier(self, registry: DiscountRegistry):
        assert ok(await registry.validate("VIP25", "c-vip")) is True
        assert ok(await registry.validate("VIP25", "c-regular")) is False
        assert ok(await registry.validate("VIP25")) is False

    @pytest.mark.asyncio
    async def test_exhausted_code(self, registry: DiscountRegistry):
        ok(await registry.register(fixed("GONE", "5", usage_limit=2, used_count=2)))

        assert ok(await registry.validate("GONE")) is False


class TestStacking:
    @pytest.mark.asyncio
    async def test_order_changes_the_result(self, registry: DiscountRegistry):
        # Given
        ok(await registry.register(fixed("A", "60", "50")))
        ok(await registry.register(percent("B", "0.20", "50")))

        # When
        a_then_b = ok(await registry.compute_discount(cart("100"), ["A", "B"]))
        b_then_a = ok(await registry.compute_discount(cart("100"), ["B", "A"]))

        # Then
        assert a_then_b == Decimal("60.00")
        assert b_then_a == Decimal("80.00")

    @pytest.mark.asyncio
    async def test_bounded_by_subtotal(self, registry: DiscountRegistry):
        ok(await registry.register(fixed("HUGE", "500")))

        assert ok(await registry.compute_discount(cart("100"), ["HUGE"])) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_duplicate_codes_count_once(self, registry: DiscountRegistry):
        ok(await registry.register(fixed("A", "60", "50")))

        assert ok(await registry.compute_discount(cart("100"), ["A", "a"])) == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_invalid_codes_are_skipped(self, registry: DiscountRegistry):
        stacked = ok(await registry.stack(cart("100"), ["EXPIRED", "NOPE", "WELCOME10"]))

        assert stacked.amount == Decimal("10.00")
        assert stacked.codes == ("WELCOME10",)

    @pytest.mark.asyncio
    async def test_max_discount_caps_a_code(self, registry: DiscountRegistry):
        assert ok(await registry.compute_discount(cart("300"), ["WELCOME10"])) == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_min_amount_not_met(self, registry: DiscountRegistry):
        assert ok(await registry.compute_discount(cart("40"), ["WELCOME10"])) == Decimal("0")

    @pytest.mark.asyncio
    async def test_negative_line_rejected(self, registry: DiscountRegistry):
        error = err(await registry.stack([LineItem("P1", Decimal("-1"), 1)], ["WELCOME10"]))

        assert error.kind is ErrorKind.INVALID_INPUT


class TestCombinations:
    @pytest.mark.asyncio
    async def test_single_code_always_combines(self, registry: DiscountRegistry):
        assert ok(await registry.can_combine(["SAVE20"])) is True

    @pytest.mark.asyncio
    async def test_large_percentage_blocks_three_way_stack(self, registry: DiscountRegistry):
        assert ok(await registry.can_combine(["WELCOME10", "SAVE20", "FIXED15"])) is False
        assert ok(await registry.can_combine(["WELCOME10", "FIXED15"])) is True

    @pytest.mark.asyncio
    async def test_vip_code_combines_only_for_vip(self, registry: DiscountRegistry):
        assert ok(await registry.can_combine(["VIP25", "WELCOME10"], "c-regular")) is False
        assert ok(await registry.can_combine(["VIP25", "WELCOME10"], "c-vip")) is True

    @pytest.mark.asyncio
    async def test_best_combination(self, registry: DiscountRegistry):
        best = ok(await registry.best_combination(
            cart("300"), ["WELCOME10", "SAVE20", "FIXED15"], "c-regular"
        ))

        assert best.codes == ("WELCOME10", "SAVE20")
        assert best.amount == Decimal("75.00")

    @pytest.mark.asyncio
    async def test_tie_keeps_first_found(self, registry: DiscountRegistry):
        ok(await registry.register(fixed("X", "10")))
        ok(await registry.register(fixed("Y", "10")))

        best = ok(await registry.best_combination(cart("10"), ["X", "Y"]))

        assert best.codes == ("X",)
        assert best.amount == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_full_set_beats_every_pair(self, registry: DiscountRegistry):
        # Given three fixed codes, none of them a large percentage
        for code in ("A", "B", "C"):
            ok(await registry.register(fixed(code, "10")))

        # When
        best = ok(await registry.best_combination(cart("100"), ["A", "B", "C"]))

        # Then
        assert best.codes == ("A", "B", "C")
        assert best.amount == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_full_set_tying_a_pair_keeps_the_pair(self, registry: DiscountRegistry):
        for code in ("A", "B", "C"):
            ok(await registry.register(fixed(code, "10")))

        best = ok(await registry.best_combination(cart("20"), ["A", "B", "C"]))

        assert best.codes == ("A", "B")
        assert best.amount == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_nothing_applies(self, registry: DiscountRegistry):
        best = ok(await registry.best_combination(cart("10"), ["EXPIRED", "WELCOME10"]))

        assert best.codes == ()
        assert best.amount == 0


class TestRedemption:
    @pytest.mark.asyncio
    async def test_apply_counts_a_use(self, registry: DiscountRegistry, repo: MemoryRepository):
        updated = ok(await registry.apply("save20", "c-regular"))

        assert updated.used_count == 46
        stored = ok(await repo.find_discount_code("SAVE20"))
        assert stored is not None and stored.used_count == 46

    @pytest.mark.asyncio
    async def test_apply_expired(self, registry: DiscountRegistry):
        error = err(await registry.apply("EXPIRED"))

        assert error.kind is ErrorKind.INVALID_OR_EXPIRED_CODE

    @pytest.mark.asyncio
    async def test_apply_unknown(self, registry: DiscountRegistry):
        error = err(await registry.apply("NOPE"))

        assert error.kind is ErrorKind.INVALID_OR_EXPIRED_CODE

    @pytest.mark.asyncio
    async def test_apply_stops_at_usage_limit(self, registry: DiscountRegistry):
        ok(await registry.register(fixed("TWICE", "5", usage_limit=2)))

        ok(await registry.apply("TWICE"))
        ok(await registry.apply("TWICE"))
        error = err(await registry.apply("TWICE"))

        assert error.kind is ErrorKind.INVALID_OR_EXPIRED_CODE

    @pytest.mark.asyncio
    async def test_concurrent_applies_respect_limit(
        self, registry: DiscountRegistry, repo: MemoryRepository
    ):
        # Given
        ok(await registry.register(fixed("RUSH", "5", usage_limit=3)))

        # When
        results = await asyncio.gather(*(registry.apply("RUSH") for _ in range(5)))

        # Then
        assert sum(1 for r in results if isinstance(r, Ok)) == 3
        stored = ok(await repo.find_discount_code("RUSH"))
        assert stored is not None and stored.used_count == 3

    @pytest.mark.asyncio
    async def test_release_usage_never_goes_negative(self, registry: DiscountRegistry):
        assert ok(await registry.release_usage("WELCOME10")).used_count == 0

    @pytest.mark.asyncio
    async def test_release_usage_undoes_apply(self, registry: DiscountRegistry):
        ok(await registry.apply("SAVE20"))

        assert ok(await registry.release_usage("SAVE20")).used_count == 45

    @pytest.mark.asyncio
    async def test_release_unknown(self, registry: DiscountRegistry):
        error = err(await registry.release_usage("NOPE"))

        assert error.kind is ErrorKind.NOT_FOUND


class TestDescribe:
    @pytest.mark.asyncio
    async def test_active_code(self, registry: DiscountRegistry):
        info = ok(await registry.describe("SAVE20"))

        assert info.remaining_uses == 55
        assert info.is_expired is False

    @pytest.mark.asyncio
    async def test_expired_code(self, registry: DiscountRegistry):
        info = ok(await registry.describe("EXPIRED"))

        assert info.is_expired is True
        assert info.expires_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_vip_code_runs_out_at_year_end(
        self, registry: DiscountRegistry, clock: FixedClock
    ):
        info = ok(await registry.describe("VIP25"))
        assert info.expires_at == datetime(2026, 12, 31, tzinfo=timezone.utc)

        clock.now = datetime(2027, 1, 1, tzinfo=timezone.utc)

        assert ok(await registry.validate("VIP25", "c-vip")) is False
