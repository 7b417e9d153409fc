"""
Saga composition helpers.
"""

from __future__ import annotations

from collections.abc import Iterable

from shopcore.saga._types import SagaExpr, Sequence


def sequence[T, E](*steps: SagaExpr[T, E]) -> Sequence[T, E]:
    """
    Run steps in order; value is the tuple of their values.

    Example:
        S.sequence(reserve_a, reserve_b, reserve_c)
    """
    return Sequence(tuple(steps))


def sequence_of[T, E](steps: Iterable[SagaExpr[T, E]]) -> Sequence[T, E]:
    """sequence() for an already-built iterable."""
    return Sequence(tuple(steps))


__all__ = ("sequence", "sequence_of")
