"""
Fallback Executor
=================
Runs an execution plan one attempt at a time.

State machine::

    IDLE → ATTEMPTING(strategy, n) ─┬─ success ─────────────→ SUCCESS
                                    ├─ retries left → RETRYING → ATTEMPTING
                                    └─ exhausted ──→ NEXT_STRATEGY → ATTEMPTING
                                                   └─ (no more) → EXHAUSTED

Every attempt races the operation against a timer. The first to finish
settles the attempt through an ``AttemptGuard``; only the settling outcome is
recorded in the metrics store. When the timer wins, the operation task is
cancelled and anything it produces afterwards is discarded.

Strategies and retries never run in parallel.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from loguru import logger

from ._utils import log_abandoned_task, now_ms
from .catalog import Strategy
from .exceptions import (
    AggregateFailure,
    AttemptFailure,
    AttemptTimeout,
    NoAvailableStrategy,
    StrategyFailure,
)
from .metrics_store import AttemptRecord, MetricsStore
from .selector import PlannedStrategy

OperationFactory = Callable[[Strategy], Awaitable[Any]]
AttemptError = Union[AttemptTimeout, AttemptFailure]


class ExecutorState(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    NEXT_STRATEGY = "next_strategy"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class FallbackResult:
    """Successful outcome of ``execute_with_fallback``."""
    value: Any
    strategy_name: str
    attempts: int
    duration_ms: float

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy_name,
            "attempts": self.attempts,
            "duration_ms": round(self.duration_ms, 3),
        }


@dataclass(frozen=True)
class _Resolved:
    value: Any


class AttemptGuard:
    """Lets exactly one outcome settle an attempt."""

    def __init__(self, label: str):
        self.label = label
        self._settled = False
        self._outcome: Union[_Resolved, AttemptError, None] = None

    def settle(self, outcome: Union[_Resolved, AttemptError]) -> bool:
        if self._settled:
            logger.debug(f"Attempt {self.label} already settled; ignoring {type(outcome).__name__}")
            return False
        self._settled = True
        self._outcome = outcome
        return True

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def outcome(self) -> Union[_Resolved, AttemptError, None]:
        return self._outcome


class Executor:
    """
    Executes a plan with timeout racing, linear backoff and fallback.

    One executor drives one call; concurrent calls share the metrics store,
    not the executor.
    """

    def __init__(
        self,
        metrics: MetricsStore,
        base_delay_ms: int = 1000,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.metrics = metrics
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep
        self._clock = clock
        self._state = ExecutorState.IDLE
        self._current: Optional[Tuple[str, int]] = None

    @property
    def state(self) -> ExecutorState:
        return self._state

    @property
    def current_attempt(self) -> Optional[Tuple[str, int]]:
        """(strategy name, attempt number) while ATTEMPTING/RETRYING."""
        return self._current

    def backoff_delay_ms(self, attempt_number: int) -> int:
        return self.base_delay_ms * attempt_number

    def _transition(self, state: ExecutorState, current: Optional[Tuple[str, int]] = None) -> None:
        self._state = state
        self._current = current

    # ── Single attempt ────────────────────────────────────────────────

    def _record(self, planned: PlannedStrategy, attempt_number: int, started: float,
                error: Optional[AttemptError]) -> None:
        self.metrics.record_attempt(
            AttemptRecord(
                strategy_name=planned.name,
                success=error is None,
                duration_ms=max(0.0, (self._clock() - started) * 1000.0),
                timestamp_ms=now_ms(),
                error_kind=None if error is None else error.kind,
                attempt_number=attempt_number,
            )
        )

    async def _race(self, planned: PlannedStrategy, attempt_number: int,
                    operation_factory: OperationFactory) -> Union[_Resolved, AttemptError]:
        label = f"{planned.name}#{attempt_number}"
        guard = AttemptGuard(label)
        started = self._clock()

        try:
            operation = asyncio.ensure_future(operation_factory(planned.strategy))
        except Exception as exc:
            # The factory itself failed before handing back an awaitable.
            outcome = AttemptFailure(planned.name, attempt_number, exc)
            if guard.settle(outcome):
                self._record(planned, attempt_number, started, outcome)
            return outcome

        timer = asyncio.ensure_future(asyncio.sleep(planned.effective_timeout_ms / 1000.0))
        try:
            done, _ = await asyncio.wait({operation, timer}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            operation.cancel()
            timer.cancel()
            raise

        if operation in done:
            timer.cancel()
            if operation.cancelled():
                outcome = AttemptFailure(
                    planned.name, attempt_number, asyncio.CancelledError("operation was cancelled")
                )
            elif operation.exception() is not None:
                outcome = AttemptFailure(planned.name, attempt_number, operation.exception())
            else:
                outcome = _Resolved(operation.result())
        else:
            outcome = AttemptTimeout(planned.name, attempt_number, planned.effective_timeout_ms)

        if guard.settle(outcome):
            self._record(
                planned, attempt_number, started,
                None if isinstance(outcome, _Resolved) else outcome,
            )

        if not operation.done():
            # Timed out: whatever the operation yields from now on is discarded.
            operation.add_done_callback(log_abandoned_task(label))
            operation.cancel()

        return guard.outcome

    # ── Plan execution ────────────────────────────────────────────────

    async def execute_with_fallback(
        self,
        plan: Sequence[PlannedStrategy],
        operation_factory: OperationFactory,
    ) -> FallbackResult:
        """
        Try each planned strategy in order until one succeeds.

        Returns:
            FallbackResult for the first successful attempt.

        Raises:
            AggregateFailure: Every strategy exhausted its retries.
            NoAvailableStrategy: The plan is empty.
            asyncio.CancelledError: The call itself was cancelled.
        """
        plan = list(plan)
        if not plan:
            raise NoAvailableStrategy()

        started = self._clock()
        failures: List[StrategyFailure] = []
        total_attempts = 0

        try:
            for index, planned in enumerate(plan):
                attempts = 0
                last_error: Optional[AttemptError] = None
                logger.info(
                    f"Trying strategy {planned.name} "
                    f"(timeout={planned.effective_timeout_ms}ms, retries={planned.effective_retries})"
                )

                for attempt_number in range(1, planned.effective_retries + 1):
                    self._transition(ExecutorState.ATTEMPTING, (planned.name, attempt_number))
                    attempts += 1
                    total_attempts += 1

                    outcome = await self._race(planned, attempt_number, operation_factory)

                    if isinstance(outcome, _Resolved):
                        self._transition(ExecutorState.SUCCESS)
                        elapsed = (self._clock() - started) * 1000.0
                        logger.info(
                            f"Strategy {planned.name} succeeded on attempt {attempt_number} "
                            f"({total_attempts} attempts, {elapsed:.1f}ms total)"
                        )
                        return FallbackResult(
                            value=outcome.value,
                            strategy_name=planned.name,
                            attempts=total_attempts,
                            duration_ms=elapsed,
                        )

                    last_error = outcome
                    logger.warning(
                        f"Strategy {planned.name} failed "
                        f"(attempt {attempt_number}/{planned.effective_retries}): {outcome.message}"
                    )

                    if attempt_number < planned.effective_retries:
                        self._transition(ExecutorState.RETRYING, (planned.name, attempt_number))
                        delay_ms = self.backoff_delay_ms(attempt_number)
                        if delay_ms > 0:
                            await self._sleep(delay_ms / 1000.0)

                failures.append(StrategyFailure(planned.name, attempts, last_error))
                if index < len(plan) - 1:
                    self._transition(ExecutorState.NEXT_STRATEGY)
                    logger.warning(
                        f"Strategy {planned.name} exhausted after {attempts} attempts; "
                        f"falling back to {plan[index + 1].name}"
                    )
        except asyncio.CancelledError:
            logger.info(f"Fallback execution cancelled after {total_attempts} attempts")
            self._transition(ExecutorState.IDLE)
            raise

        self._transition(ExecutorState.EXHAUSTED)
        error = AggregateFailure(failures)
        logger.error(f"All strategies failed after {total_attempts} attempts: {error.message}")
        raise error
