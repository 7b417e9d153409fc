"""
DiscountRegistry — validation, sequential stacking, best combination, redemption.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from itertools import combinations
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error

from shopcore._locks import KeyedLock
from shopcore._types import Clock, ZERO, money, utc_now
from shopcore.errors import Errors, ShopError, from_store
from shopcore.discounts._types import (
    AppliedDiscount,
    DiscountCode,
    DiscountCombination,
    DiscountInfo,
    DiscountStack,
    DiscountType,
)

if TYPE_CHECKING:
    from shopcore.pricing import LineItem
    from shopcore.store import Repository

logger = logging.getLogger(__name__)

VIP_TIER = "vip"
STACKING_PERCENT_LIMIT = Decimal("0.20")


def canonical_codes(codes: Iterable[str]) -> tuple[str, ...]:
    """Upper-case, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for code in codes:
        key = code.strip().upper()
        if key:
            seen.setdefault(key, None)
    return tuple(seen)


def code_discount(code: DiscountCode, remaining: Decimal) -> Decimal:
    """Discount one code grants against the remaining amount (unrounded)."""
    if remaining <= 0 or remaining < code.min_amount:
        return ZERO

    if code.type is DiscountType.PERCENTAGE:
        amount = remaining * code.value
    else:
        amount = min(code.value, remaining)

    if code.max_discount is not None:
        amount = min(amount, code.max_discount)
    return max(min(amount, remaining), ZERO)


class DiscountRegistry:
    """
    Discount code rules over a repository.

    Example:
        registry = DiscountRegistry(repo)

        match await registry.compute_discount(items, ["SAVE20", "WELCOME10"], "c-1"):
            case Ok(amount):
                ...

    Note: apply() is serialized per code so concurrent redemptions cannot
    pass usage_limit.
    """

    def __init__(self, repository: Repository, clock: Clock = utc_now) -> None:
        self._repo = repository
        self._clock = clock
        self._locks = KeyedLock()

    # ───────────────────────────────────────────────────────────────────────────
    # Lookups
    # ───────────────────────────────────────────────────────────────────────────

    async def _find(self, code: str) -> Result[DiscountCode | None, ShopError]:
        return from_store(await self._repo.find_discount_code(code.strip().upper()))

    async def _find_many(
        self, codes: Iterable[str]
    ) -> Result[list[DiscountCode], ShopError]:
        """Known codes among `codes`, canonical order; unknown ones dropped."""
        found: list[DiscountCode] = []
        for code in canonical_codes(codes):
            match await self._find(code):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    continue
                case Ok(dc):
                    found.append(dc)
        return Ok(found)

    async def _tier_of(self, customer_id: str | None) -> Result[str | None, ShopError]:
        if not customer_id:
            return Ok(None)
        match from_store(await self._repo.find_customer_by_id(customer_id)):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Ok(None)
            case Ok(customer):
                return Ok(customer.tier)

    def _is_valid(self, code: DiscountCode, tier: str | None) -> bool:
        if code.is_expired(self._clock()):
            return False
        if not code.has_remaining_uses:
            return False
        if code.customer_restriction is not None:
            return tier is not None and code.is_restricted_to(tier)
        return True

    # ───────────────────────────────────────────────────────────────────────────
    # Validation
    # ───────────────────────────────────────────────────────────────────────────

    async def validate(
        self, code: str, customer_id: str | None = None
    ) -> Result[bool, ShopError]:
        """True iff the code exists, is unexpired, has uses left and fits the customer."""
        if not code or not code.strip():
            return Ok(False)

        match await self._find(code):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Ok(False)
            case Ok(dc):
                pass

        match await self._tier_of(customer_id):
            case Error(e):
                return Error(e)
            case Ok(tier):
                return Ok(self._is_valid(dc, tier))

    async def _valid_codes(
        self, codes: Iterable[str], customer_id: str | None
    ) -> Result[list[DiscountCode], ShopError]:
        match await self._tier_of(customer_id):
            case Error(e):
                return Error(e)
            case Ok(tier):
                pass
        match await self._find_many(codes):
            case Error(e):
                return Error(e)
            case Ok(found):
                return Ok([dc for dc in found if self._is_valid(dc, tier)])

    # ───────────────────────────────────────────────────────────────────────────
    # Stacking
    # ───────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _stack(subtotal: Decimal, codes: Sequence[DiscountCode]) -> DiscountStack:
        remaining = subtotal
        total = ZERO
        applied: list[AppliedDiscount] = []

        for dc in codes:
            if remaining <= 0:
                break
            amount = code_discount(dc, remaining)
            if amount <= 0:
                continue
            applied.append(AppliedDiscount(dc.code, money(amount)))
            total += amount
            remaining -= amount

        return DiscountStack(
            subtotal=money(subtotal),
            amount=money(min(total, subtotal)),
            applied=tuple(applied),
        )

    async def stack_amount(
        self,
        subtotal: Decimal,
        codes: Sequence[str],
        customer_id: str | None = None,
    ) -> Result[DiscountStack, ShopError]:
        """Sequential stacking against a precomputed subtotal."""
        if subtotal < 0:
            return Error(Errors.invalid_input("Subtotal cannot be negative"))
        match await self._valid_codes(codes, customer_id):
            case Error(e):
                return Error(e)
            case Ok(valid):
                return Ok(self._stack(subtotal, valid))

    async def stack(
        self,
        items: Sequence[LineItem],
        codes: Sequence[str],
        customer_id: str | None = None,
    ) -> Result[DiscountStack, ShopError]:
        """
        Apply codes in the given order against the shrinking remainder.

        Each code's min_amount is tested against the remainder, invalid codes
        are skipped, and stacking stops once nothing remains.
        """
        for item in items:
            if item.unit_price < 0 or item.quantity < 0:
                return Error(Errors.invalid_input(
                    "Line items cannot have negative price or quantity",
                    product_id=item.product_id,
                ))
        subtotal = sum((item.line_total for item in items), ZERO)
        return await self.stack_amount(subtotal, codes, customer_id)

    async def compute_discount(
        self,
        items: Sequence[LineItem],
        codes: Sequence[str],
        customer_id: str | None = None,
    ) -> Result[Decimal, ShopError]:
        match await self.stack(items, codes, customer_id):
            case Error(e):
                return Error(e)
            case Ok(stacked):
                return Ok(stacked.amount)

    # ───────────────────────────────────────────────────────────────────────────
    # Combination rules
    # ───────────────────────────────────────────────────────────────────────────

    @staticmethod
    def _combinable(codes: Sequence[DiscountCode], tier: str | None) -> bool:
        if len(codes) <= 1:
            return True
        if len(codes) > 2 and any(
            dc.type is DiscountType.PERCENTAGE and dc.value >= STACKING_PERCENT_LIMIT
            for dc in codes
        ):
            return False
        is_vip = tier is not None and tier.lower() == VIP_TIER
        if not is_vip and any(dc.is_restricted_to(VIP_TIER) for dc in codes):
            return False
        return True

    async def can_combine(
        self, codes: Sequence[str], customer_id: str | None = None
    ) -> Result[bool, ShopError]:
        if len(canonical_codes(codes)) <= 1:
            return Ok(True)
        match await self._tier_of(customer_id):
            case Error(e):
                return Error(e)
            case Ok(tier):
                pass
        match await self._find_many(codes):
            case Error(e):
                return Error(e)
            case Ok(found):
                return Ok(self._combinable(found, tier))

    async def best_combination(
        self,
        items: Sequence[LineItem],
        candidates: Sequence[str],
        customer_id: str | None = None,
    ) -> Result[DiscountCombination, ShopError]:
        """
        Highest-value subset: singles, then pairs, then the full set.

        Note: strictly greater wins, so on ties the first one found is kept.
        Returns an empty combination when no code yields anything.
        """
        match await self._tier_of(customer_id):
            case Error(e):
                return Error(e)
            case Ok(tier):
                pass
        match await self._valid_codes(candidates, customer_id):
            case Error(e):
                return Error(e)
            case Ok(valid):
                pass

        subtotal = sum((item.line_total for item in items), ZERO)

        options: list[tuple[DiscountCode, ...]] = [(dc,) for dc in valid]
        options.extend(
            pair for pair in combinations(valid, 2) if self._combinable(pair, tier)
        )
        if len(valid) > 2 and self._combinable(valid, tier):
            options.append(tuple(valid))

        best = DiscountCombination(codes=(), amount=ZERO)
        for option in options:
            amount = self._stack(subtotal, option).amount
            if amount > best.amount:
                best = DiscountCombination(tuple(dc.code for dc in option), amount)
        return Ok(best)

    # ───────────────────────────────────────────────────────────────────────────
    # Redemption
    # ───────────────────────────────────────────────────────────────────────────

    async def apply(
        self, code: str, customer_id: str | None = None
    ) -> Result[DiscountCode, ShopError]:
        """Revalidate and count one use."""
        key = code.strip().upper()
        async with self._locks.hold(key):
            match await self._find(key):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    return Error(Errors.invalid_code(key))
                case Ok(dc):
                    pass

            match await self._tier_of(customer_id):
                case Error(e):
                    return Error(e)
                case Ok(tier):
                    pass

            if not self._is_valid(dc, tier):
                logger.info("Rejected discount code %s for customer %s", key, customer_id)
                return Error(Errors.invalid_code(key))

            updated = dc.with_used_count(dc.used_count + 1)
            return from_store(await self._repo.save_discount_code(updated))

    async def release_usage(self, code: str) -> Result[DiscountCode, ShopError]:
        """Undo one apply(); used_count never drops below zero."""
        key = code.strip().upper()
        async with self._locks.hold(key):
            match await self._find(key):
                case Error(e):
                    return Error(e)
                case Ok(None):
                    return Error(Errors.not_found("Discount code", key))
                case Ok(dc):
                    pass

            updated = dc.with_used_count(max(dc.used_count - 1, 0))
            return from_store(await self._repo.save_discount_code(updated))

    # ───────────────────────────────────────────────────────────────────────────
    # Administration
    # ───────────────────────────────────────────────────────────────────────────

    async def describe(self, code: str) -> Result[DiscountInfo, ShopError]:
        match await self._find(code):
            case Error(e):
                return Error(e)
            case Ok(None):
                return Error(Errors.not_found("Discount code", code.strip().upper()))
            case Ok(dc):
                return Ok(DiscountInfo(
                    code=dc.code,
                    type=dc.type,
                    value=dc.value,
                    min_amount=dc.min_amount,
                    max_discount=dc.max_discount,
                    expires_at=dc.expires_at,
                    customer_restriction=dc.customer_restriction,
                    is_expired=dc.is_expired(self._clock()),
                    remaining_uses=dc.remaining_uses,
                ))

    async def register(self, code: DiscountCode) -> Result[DiscountCode, ShopError]:
        async with self._locks.hold(code.code):
            return from_store(await self._repo.save_discount_code(code))


__all__ = (
    "DiscountRegistry",
    "canonical_codes",
    "code_discount",
    "VIP_TIER",
)
