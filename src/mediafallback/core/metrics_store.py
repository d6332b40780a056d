"""
Attempt Telemetry Store
=======================
Bounded history of delivery attempts plus per-strategy success rates.

Success rates are exponential moving averages::

    rate = rate * (1 - alpha) + outcome * alpha      (outcome: 1.0 / 0.0)

A strategy's rate starts at ``initial_success_rate`` (0.5) the first time it
is observed, so with alpha=0.1 a first success yields 0.55 and a first
failure 0.45.

EMA updates are order-dependent, so all writes go through one lock. Reads
return immutable snapshots copied under the same lock.

Thread-safety: All mutations are protected by a reentrant lock.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Deque, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from .config import MetricsConfig
from .exceptions import ValidationError


@dataclass(frozen=True)
class AttemptRecord:
    """
    Outcome of a single attempt.

    Fields:
        strategy_name: Strategy the attempt ran.
        success: Whether the operation resolved successfully in time.
        duration_ms: Wall time spent on the attempt.
        timestamp_ms: Epoch milliseconds when the attempt finished.
        error_kind: "timeout" or the failing exception's class name.
        attempt_number: 1-based attempt index within the strategy.
    """
    strategy_name: str
    success: bool
    duration_ms: float
    timestamp_ms: int
    error_kind: Optional[str] = None
    attempt_number: int = 1

    def __post_init__(self):
        if not self.strategy_name:
            raise ValidationError("strategy_name", "must be non-empty")
        if self.duration_ms < 0:
            raise ValidationError("duration_ms", "must be non-negative", self.duration_ms)
        if self.attempt_number < 1:
            raise ValidationError("attempt_number", "must be >= 1", self.attempt_number)
        if self.success and self.error_kind is not None:
            raise ValidationError("error_kind", "successful attempts carry no error kind", self.error_kind)

    def to_dict(self) -> dict:
        return {
            "strategy_name": self.strategy_name,
            "success": self.success,
            "duration_ms": round(self.duration_ms, 3),
            "timestamp_ms": self.timestamp_ms,
            "error_kind": self.error_kind,
            "attempt_number": self.attempt_number,
        }


@dataclass(frozen=True)
class ConnectionSample:
    strategy_name: str
    duration_ms: float
    timestamp_ms: int


@dataclass(frozen=True)
class MetricsSnapshot:
    """Read-only copy of the store at one point in time."""
    success_rates: Mapping[str, float]
    recent_records: Tuple[AttemptRecord, ...]
    error_rate: float
    default_success_rate: float = 0.5

    def success_rate(self, strategy_name: str) -> float:
        return self.success_rates.get(strategy_name, self.default_success_rate)

    def records_for(self, strategy_name: str) -> List[AttemptRecord]:
        return [r for r in self.recent_records if r.strategy_name == strategy_name]

    def to_dict(self) -> dict:
        return {
            "success_rates": dict(self.success_rates),
            "recent_records": [r.to_dict() for r in self.recent_records],
            "error_rate": self.error_rate,
        }


EMPTY_SNAPSHOT = MetricsSnapshot(success_rates=MappingProxyType({}), recent_records=(), error_rate=0.0)


class MetricsStore:
    """Ring buffer of AttemptRecords with EMA success-rate scoring."""

    def __init__(
        self,
        alpha: float = 0.1,
        history_size: int = 50,
        initial_success_rate: float = 0.5,
        snapshot_window: int = 10,
        error_window: int = 20,
        connection_history_size: int = 100,
    ):
        if not 0.0 < alpha <= 1.0:
            raise ValidationError("alpha", "must be in (0, 1]", alpha)
        if history_size < 1:
            raise ValidationError("history_size", "must be >= 1", history_size)
        self.alpha = alpha
        self.history_size = history_size
        self.initial_success_rate = initial_success_rate
        self.snapshot_window = snapshot_window
        self.error_window = error_window

        self._lock = threading.RLock()
        self._history: Deque[AttemptRecord] = deque(maxlen=history_size)
        self._connection_times: Deque[ConnectionSample] = deque(maxlen=connection_history_size)
        self._success_rates: Dict[str, float] = {}

    @classmethod
    def from_config(cls, config: MetricsConfig) -> "MetricsStore":
        return cls(
            alpha=config.alpha,
            history_size=config.history_size,
            initial_success_rate=config.initial_success_rate,
            snapshot_window=config.snapshot_window,
            error_window=config.error_window,
            connection_history_size=config.connection_history_size,
        )

    # ── Writes ────────────────────────────────────────────────────────

    def record_attempt(self, record: AttemptRecord) -> float:
        """Append ``record`` and return the strategy's updated success rate."""
        outcome = 1.0 if record.success else 0.0
        with self._lock:
            self._history.append(record)
            old = self._success_rates.get(record.strategy_name, self.initial_success_rate)
            new = old * (1.0 - self.alpha) + outcome * self.alpha
            new = max(0.0, min(1.0, new))
            self._success_rates[record.strategy_name] = new
            if record.success:
                self._connection_times.append(
                    ConnectionSample(record.strategy_name, record.duration_ms, record.timestamp_ms)
                )
        logger.debug(
            f"Recorded {'success' if record.success else 'failure'} for "
            f"{record.strategy_name}: success_rate {old:.3f} -> {new:.3f}"
        )
        return new

    def reset(self) -> None:
        with self._lock:
            self._history.clear()
            self._connection_times.clear()
            self._success_rates.clear()
        logger.info("Metrics store reset")

    # ── Reads ─────────────────────────────────────────────────────────

    def success_rate(self, strategy_name: str) -> float:
        with self._lock:
            return self._success_rates.get(strategy_name, self.initial_success_rate)

    def error_rate(self, window: Optional[int] = None) -> float:
        """Failure fraction over the most recent ``window`` records (0.0 if empty)."""
        window = self.error_window if window is None else window
        if window < 1:
            raise ValidationError("window", "must be >= 1", window)
        with self._lock:
            return self._error_rate_locked(window)

    def _error_rate_locked(self, window: int) -> float:
        recent = list(self._history)[-window:]
        if not recent:
            return 0.0
        failures = sum(1 for r in recent if not r.success)
        return failures / len(recent)

    def average_connection_time(self, strategy_name: str) -> Optional[float]:
        with self._lock:
            times = [s.duration_ms for s in self._connection_times if s.strategy_name == strategy_name]
        if not times:
            return None
        return sum(times) / len(times)

    @property
    def history(self) -> Tuple[AttemptRecord, ...]:
        with self._lock:
            return tuple(self._history)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def snapshot(self, window: Optional[int] = None) -> MetricsSnapshot:
        """Immutable copy of the success rates and the last ``window`` records."""
        window = self.snapshot_window if window is None else window
        with self._lock:
            rates = MappingProxyType(dict(self._success_rates))
            records = tuple(self._history)[-window:] if window > 0 else ()
            error_rate = self._error_rate_locked(self.error_window)
        return MetricsSnapshot(
            success_rates=rates,
            recent_records=records,
            error_rate=error_rate,
            default_success_rate=self.initial_success_rate,
        )
