"""
Strategy Selector
=================
Turns the catalog, a capability set, a network condition and a metrics
snapshot into an ordered execution plan.

Pipeline:
    1. Filter strategies whose requirements are satisfied.
    2. Score each:  w_s * success_rate + w_p * priority_score
       where priority_score = (max_priority_value - priority) / max_priority_value.
    3. Stable sort by score (descending); registration order breaks ties.
    4. On a slow network, the configured lightweight-first order replaces the
       score order.
    5. Adjust timeout and retry budget for this call only.

The selector is pure: it reads an immutable snapshot and never mutates the
catalog, so it can run concurrently with executor writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger

from .capabilities import CapabilitySet
from .catalog import Strategy, StrategyCatalog
from .config import SelectorConfig
from .exceptions import ConfigurationError, NoAvailableStrategy
from .metrics_store import EMPTY_SNAPSHOT, MetricsSnapshot
from .network import NetworkCondition


@dataclass(frozen=True)
class PlannedStrategy:
    """A strategy with the timeout/retry budget to use for one execution."""
    strategy: Strategy
    effective_timeout_ms: int
    effective_retries: int
    score: float = 0.0

    @property
    def name(self) -> str:
        return self.strategy.name

    def to_dict(self) -> dict:
        return {
            "name": self.strategy.name,
            "priority": self.strategy.priority,
            "score": round(self.score, 4),
            "timeout_ms": self.strategy.timeout_ms,
            "effective_timeout_ms": self.effective_timeout_ms,
            "max_retries": self.strategy.max_retries,
            "effective_retries": self.effective_retries,
        }


class Selector:
    """Computes ordered, network-adjusted execution plans."""

    def __init__(self, catalog: StrategyCatalog, config: Optional[SelectorConfig] = None):
        self.catalog = catalog
        self.config = config or SelectorConfig()
        if self.config.max_priority_value is not None and self.config.max_priority_value <= 0:
            raise ConfigurationError(
                "selector.max_priority_value",
                f"must be positive, got {self.config.max_priority_value}",
            )

    # ── Scoring ───────────────────────────────────────────────────────

    def max_priority_value(self) -> int:
        if self.config.max_priority_value is not None:
            return self.config.max_priority_value
        return self.catalog.max_priority + 1

    def priority_score(self, strategy: Strategy) -> float:
        max_value = self.max_priority_value()
        score = (max_value - strategy.priority) / max_value
        return max(0.0, min(1.0, score))

    def score(self, strategy: Strategy, snapshot: MetricsSnapshot) -> float:
        rate = snapshot.success_rates.get(strategy.name, self.config.default_success_rate)
        return (
            self.config.success_weight * rate
            + self.config.priority_weight * self.priority_score(strategy)
        )

    # ── Ordering ──────────────────────────────────────────────────────

    def _lightweight_first(
        self, scored: List[Tuple[Strategy, float]]
    ) -> List[Tuple[Strategy, float]]:
        """Reorder by the configured lightweight list; unlisted strategies keep score order."""
        rank = {name: i for i, name in enumerate(self.config.lightweight_order)}
        listed = [item for item in scored if item[0].name in rank]
        unlisted = [item for item in scored if item[0].name not in rank]
        listed.sort(key=lambda item: rank[item[0].name])
        return listed + unlisted

    def _adjust(self, strategy: Strategy, score: float, condition: NetworkCondition) -> PlannedStrategy:
        adjustment = self.config.adjustment_for(condition)
        timeout_ms = max(1, int(round(strategy.timeout_ms * adjustment.timeout_multiplier)))
        retries = max(adjustment.min_retries, strategy.max_retries + adjustment.retry_delta)
        return PlannedStrategy(
            strategy=strategy,
            effective_timeout_ms=timeout_ms,
            effective_retries=retries,
            score=score,
        )

    def select_order(
        self,
        capabilities: CapabilitySet,
        network_condition: NetworkCondition,
        metrics_snapshot: Optional[MetricsSnapshot] = None,
    ) -> List[PlannedStrategy]:
        """
        Build the execution plan.

        Raises:
            NoAvailableStrategy: If no registered strategy is satisfied by
                ``capabilities``.
        """
        capabilities = CapabilitySet.coerce(capabilities)
        condition = NetworkCondition.parse(network_condition)
        snapshot = metrics_snapshot or EMPTY_SNAPSHOT

        available = self.catalog.available_for(capabilities)
        if not available:
            missing = {
                s.name: sorted(c.value for c in capabilities.missing(s.required_capabilities))
                for s in self.catalog.list()
            }
            raise NoAvailableStrategy(
                enabled_capabilities=[c.value for c in capabilities.enabled],
                missing=missing,
            )

        scored = [(s, self.score(s, snapshot)) for s in available]
        # list.sort is stable: equal scores keep registration order.
        scored.sort(key=lambda item: item[1], reverse=True)

        if condition is NetworkCondition.SLOW:
            scored = self._lightweight_first(scored)

        plan = [self._adjust(strategy, score, condition) for strategy, score in scored]
        logger.debug(
            f"Selected order for network={condition.value}: "
            + ", ".join(f"{p.name}({p.score:.3f})" for p in plan)
        )
        return plan

    def select_best(
        self,
        capabilities: CapabilitySet,
        network_condition: NetworkCondition,
        metrics_snapshot: Optional[MetricsSnapshot] = None,
    ) -> PlannedStrategy:
        return self.select_order(capabilities, network_condition, metrics_snapshot)[0]
