"""
Saga execution with automatic rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kungfu import Result, Ok, Error

from shopcore.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    SagaExpr,
    Then,
    Sequence,
    CompensatorWithValue,
)

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Recorded Compensator
# ═══════════════════════════════════════════════════════════════════════════════

type RecordedCompensator = tuple[str, object, CompensatorWithValue[object]]


@dataclass(slots=True)
class _Trace:
    """Mutable bookkeeping shared by one run()."""

    steps: int = 0
    compensators: list[RecordedCompensator] = field(
        default_factory=list[RecordedCompensator]
    )


# ═══════════════════════════════════════════════════════════════════════════════
# run_step() — Execute single step
# ═══════════════════════════════════════════════════════════════════════════════


async def run_step[T, E](step: SagaStep[T, E], trace: _Trace) -> Result[T, E]:
    """Execute single step, recording compensator on success."""
    trace.steps += 1
    result = await step.action
    match result:
        case Ok(value):
            if step.compensate is not None:
                trace.compensators.append(
                    (step.name or f"step-{trace.steps}", value, step.compensate)
                )
            return Ok(value)
        case Error(e):
            return Error(e)


async def _execute(expr: SagaExpr[object, object], trace: _Trace) -> Result[object, object]:
    match expr:
        case SagaStep():
            return await run_step(expr, trace)

        case Then(inner=inner, f=f):
            match await _execute(inner, trace):
                case Ok(value):
                    return await _execute(f(value), trace)
                case Error(e):
                    return Error(e)

        case Sequence(steps=steps):
            values: list[object] = []
            for s in steps:
                match await _execute(s, trace):
                    case Ok(value):
                        values.append(value)
                    case Error(e):
                        return Error(e)
            return Ok(tuple(values))

    raise TypeError(f"Not a saga expression: {expr!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators() — Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def run_compensators(
    compensators: list[RecordedCompensator],
) -> tuple[int, int, tuple[object, ...]]:
    """Run compensators in reverse. Returns (run, failed, errors)."""
    comp_run = 0
    errors: list[object] = []

    for name, value, comp in reversed(compensators):
        try:
            outcome = await comp(value)
        except Exception as e:
            logger.error("Compensator %s raised: %s", name, e)
            errors.append(e)
            continue

        match outcome:
            case Error(e):
                logger.error("Compensator %s failed: %s", name, e)
                errors.append(e)
            case _:
                comp_run += 1

    return comp_run, len(errors), tuple(errors)


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](saga: SagaExpr[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute saga with automatic rollback on failure.

    On success: returns SagaResult with value and metadata.
    On failure: runs compensators in reverse, returns SagaError.
    On an exception (cancellation included): runs compensators in reverse
    in the same task, then re-raises.

    Note: compensators are not moved to another task on cancellation, so
    they still re-enter locks the calling task holds.

    Example:
        from shopcore import saga as S

        order_saga = (
            S.from_result(persist_order, delete_order)
            .then(lambda order: S.sequence(*reserve_steps(order)))
        )

        match await S.run(order_saga):
            case Ok(r):
                print(r.value)
            case Error(e):
                print(f"Failed at step {e.step_failed}")
    """
    trace = _Trace()

    try:
        outcome = await _execute(saga, trace)  # type: ignore[arg-type]
    except BaseException as exc:
        logger.error(
            "Saga interrupted at step %d by %r, rolling back %d step(s)",
            trace.steps,
            exc,
            len(trace.compensators),
        )
        _, comp_failed, _ = await run_compensators(trace.compensators)
        if comp_failed:
            logger.critical("Rollback after %r left %d compensation(s) failed", exc, comp_failed)
        raise

    match outcome:
        case Ok(value):
            return Ok(SagaResult(
                value=value,  # type: ignore[arg-type]
                steps_executed=trace.steps,
                compensators_recorded=len(trace.compensators),
            ))

        case Error(error):
            logger.warning(
                "Saga failed at step %d, rolling back %d step(s): %s",
                trace.steps,
                len(trace.compensators),
                error,
            )
            comp_run, comp_failed, comp_errors = await run_compensators(
                trace.compensators
            )

            return Error(SagaError(
                error=error,  # type: ignore[arg-type]
                step_failed=trace.steps,
                compensators_run=comp_run,
                compensators_failed=comp_failed,
                rollback_complete=comp_failed == 0,
                compensation_errors=comp_errors,
            ))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("run", "run_step", "run_compensators")
