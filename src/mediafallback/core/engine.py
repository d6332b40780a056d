"""
Fallback Engine
===============
Wires the catalog, metrics store, selector and executor together.

Collaborators are injected at construction; the engine keeps no module-level
state. The metrics store belongs to the engine for its whole lifetime and is
only exposed through read-only snapshots.

Example:
    engine = FallbackEngine(
        capability_provider=static_capabilities("proxy_server"),
        sample_provider=lambda: NetworkSample(effective_type="3g"),
    )

    async def play(strategy):
        return await transports[strategy.name].start(url)

    result = await engine.execute(play)
    print(result.strategy_name, result.value)
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from loguru import logger

from .capabilities import CapabilityProvider, CapabilitySet
from .catalog import StrategyCatalog
from .config import EngineConfig, validate_config
from .executor import Executor, FallbackResult, OperationFactory
from .metrics_store import MetricsSnapshot, MetricsStore
from .network import (
    NetworkClassifier,
    NetworkCondition,
    NetworkSample,
    NetworkSampleProvider,
    make_classifier,
)
from .selector import PlannedStrategy, Selector

NetworkInput = Union[NetworkCondition, NetworkSample, str, None]


class FallbackEngine:
    """Selects and executes media delivery strategies with adaptive fallback."""

    def __init__(
        self,
        capability_provider: CapabilityProvider,
        network_classifier: Optional[NetworkClassifier] = None,
        sample_provider: Optional[NetworkSampleProvider] = None,
        *,
        config: Optional[EngineConfig] = None,
        catalog: Optional[StrategyCatalog] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            capability_provider: Returns the current capability set.
            network_classifier: Maps a NetworkSample to a NetworkCondition.
                Defaults to the label > downlink > bandwidth classifier using
                the configured thresholds.
            sample_provider: Returns the current NetworkSample. Without one
                (and without an explicit network argument) the condition is
                UNKNOWN.
            config: EngineConfig (defaults when None).
            catalog: Prebuilt catalog; built from ``config.strategies`` when None.
            sleep: Backoff sleep coroutine (injectable for tests).
        """
        self.config = validate_config(config or EngineConfig())
        self._capability_provider = capability_provider
        self._classifier = network_classifier or make_classifier(self.config.network)
        self._sample_provider = sample_provider
        self._sleep = sleep

        self._catalog = (catalog or StrategyCatalog.from_config(self.config.strategies)).seal()
        self._metrics = MetricsStore.from_config(self.config.metrics)
        self._selector = Selector(self._catalog, self.config.selector)

        # Last selection, for the performance report.
        self._last_selected: Optional[str] = None
        self._last_capabilities: Optional[CapabilitySet] = None
        self._last_network: NetworkCondition = NetworkCondition.UNKNOWN

        logger.info(
            f"FallbackEngine initialised with {len(self._catalog)} strategies: "
            + ", ".join(s.name for s in self._catalog.list())
        )

    @property
    def catalog(self) -> StrategyCatalog:
        return self._catalog

    # ── Environment ───────────────────────────────────────────────────

    def current_capabilities(self) -> CapabilitySet:
        return CapabilitySet.coerce(self._capability_provider())

    def current_network(self, network: NetworkInput = None) -> NetworkCondition:
        """Resolve ``network`` (or the sample provider) to a NetworkCondition."""
        if isinstance(network, NetworkSample):
            return self._classifier(network)
        if network is not None:
            return NetworkCondition.parse(network)
        if self._sample_provider is not None:
            return self._classifier(self._sample_provider())
        return NetworkCondition.UNKNOWN

    # ── Planning ──────────────────────────────────────────────────────

    def plan(
        self,
        capabilities: Optional[CapabilitySet] = None,
        network: NetworkInput = None,
    ) -> List[PlannedStrategy]:
        """Ordered, network-adjusted plan for the current (or given) environment."""
        caps = CapabilitySet.coerce(capabilities) if capabilities is not None else self.current_capabilities()
        condition = self.current_network(network)
        plan = self._selector.select_order(caps, condition, self._metrics.snapshot())

        self._last_selected = plan[0].name
        self._last_capabilities = caps
        self._last_network = condition
        logger.info(f"Selected strategy {plan[0].name} (network={condition.value})")
        return plan

    def select_best(
        self,
        capabilities: Optional[CapabilitySet] = None,
        network: NetworkInput = None,
    ) -> PlannedStrategy:
        return self.plan(capabilities, network)[0]

    # ── Execution ─────────────────────────────────────────────────────

    async def execute(
        self,
        operation_factory: OperationFactory,
        *,
        capabilities: Optional[CapabilitySet] = None,
        network: NetworkInput = None,
    ) -> FallbackResult:
        """
        Plan and run ``operation_factory`` with timeout racing and fallback.

        Raises:
            NoAvailableStrategy: No strategy fits the capability set.
            AggregateFailure: Every planned strategy exhausted its retries.
        """
        plan = self.plan(capabilities, network)
        return await self.execute_plan(plan, operation_factory)

    async def execute_plan(
        self,
        plan: List[PlannedStrategy],
        operation_factory: OperationFactory,
    ) -> FallbackResult:
        executor = Executor(
            self._metrics,
            base_delay_ms=self.config.executor.base_delay_ms,
            sleep=self._sleep,
        )
        return await executor.execute_with_fallback(plan, operation_factory)

    # ── Introspection ─────────────────────────────────────────────────

    def get_metrics_snapshot(self, window: Optional[int] = None) -> MetricsSnapshot:
        return self._metrics.snapshot(window)

    def reset_metrics(self) -> None:
        self._metrics.reset()

    def get_performance_report(self) -> Dict[str, Any]:
        """Summary of the last selection, telemetry and per-strategy availability."""
        snapshot = self._metrics.snapshot(10)
        caps = self._last_capabilities
        availability = []
        for strategy in self._catalog.list():
            availability.append({
                "name": strategy.name,
                "available": strategy.is_available(caps) if caps is not None else None,
                "success_rate": snapshot.success_rate(strategy.name),
                "average_connection_ms": self._metrics.average_connection_time(strategy.name),
            })
        return {
            "current_strategy": self._last_selected,
            "capabilities": caps.to_dict() if caps is not None else None,
            "network_condition": self._last_network.value,
            "success_rates": dict(snapshot.success_rates),
            "error_rate": snapshot.error_rate,
            "recent_attempts": [r.to_dict() for r in snapshot.recent_records],
            "strategies": availability,
        }
