"""
Saga — multi-step writes with compensation.

    from shopcore import saga as S

    saga = S.from_result(persist, delete).then(lambda o: S.sequence(*reserve(o)))
    result = await S.run(saga)
"""

from __future__ import annotations

from shopcore.saga._types import (
    CompensatorWithValue,
    SagaStep,
    SagaResult,
    SagaError,
    SagaExpr,
    Then,
    Sequence,
)
from shopcore.saga._step import step, from_async, from_result
from shopcore.saga._run import run, run_step, run_compensators
from shopcore.saga._compose import sequence, sequence_of

__all__ = (
    "CompensatorWithValue",
    "SagaStep",
    "SagaResult",
    "SagaError",
    "SagaExpr",
    "Then",
    "Sequence",
    "step",
    "from_async",
    "from_result",
    "run",
    "run_step",
    "run_compensators",
    "sequence",
    "sequence_of",
)
