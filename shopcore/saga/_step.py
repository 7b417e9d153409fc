"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult, Result
from combinators import lift as L

from shopcore.saga._types import SagaStep, CompensatorWithValue

# ═══════════════════════════════════════════════════════════════════════════════
# step() — Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: CompensatorWithValue[T] | None = None,
    *,
    name: str = "",
) -> SagaStep[T, E]:
    """
    Create a compensated saga step.

    Args:
        action: The operation to perform (LazyCoroResult)
        compensate: The compensation action if rollback needed
        name: Label used in rollback logs

    Example:
        from shopcore import saga as S

        reserve = S.step(
            action=LazyCoroResult(lambda: ledger.reserve("sku-1", 2, meta)),
            compensate=lambda record: ledger.release("sku-1", 2, meta),
        )
    """
    return SagaStep(action=action, compensate=compensate, name=name)


# ═══════════════════════════════════════════════════════════════════════════════
# from_async() — Create step from async callable
# ═══════════════════════════════════════════════════════════════════════════════


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: CompensatorWithValue[T] | None = None,
    *,
    name: str = "",
) -> SagaStep[T, E]:
    """
    Create step from a raising async callable.

    Example:
        S.from_async(
            lambda: gateway.authorize(order),
            on_error=lambda e: Errors.invalid_input(str(e)),
            compensate=gateway.void,
        )
    """
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
        name=name,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# from_result() — Create step from Result-returning callable
# ═══════════════════════════════════════════════════════════════════════════════


def from_result[T, E](
    action: Callable[[], Awaitable[Result[T, E]]],
    compensate: CompensatorWithValue[T] | None = None,
    *,
    name: str = "",
) -> SagaStep[T, E]:
    """Create step from an async callable that already returns Result."""
    return SagaStep(action=LazyCoroResult(action), compensate=compensate, name=name)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("step", "from_async", "from_result")
