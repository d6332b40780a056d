"""
MediaFallback Core Module
=========================
The strategy selection and execution engine.

Data:
    - Strategy / StrategyCatalog: registered delivery strategies
    - Capability / CapabilitySet: closed set of environment features
    - NetworkCondition / NetworkSample: coarse network classification
    - AttemptRecord / MetricsStore: bounded attempt history + EMA success rates

Engine halves:
    - Selector: capability filter, scoring, slow-network override, adjustment
    - Executor: timeout racing, retry/backoff, fallback, single resolution

Configuration:
    Settings are loaded from YAML via the config module (ENV > YAML > defaults).

Example:
    from mediafallback.core import FallbackEngine, CapabilitySet

    engine = FallbackEngine(lambda: CapabilitySet.of("proxy_server"))
    plan = engine.plan(network="slow")
"""

from .capabilities import (
    Capability,
    CapabilityProvider,
    CapabilitySet,
    parse_capabilities,
    static_capabilities,
)
from .catalog import Strategy, StrategyCatalog, default_strategies
from .config import (
    EngineConfig,
    ExecutorConfig,
    MetricsConfig,
    NetworkAdjustment,
    ObservabilityConfig,
    SelectorConfig,
    StrategyConfig,
    get_config,
    load_config,
    reset_config,
)
from .engine import FallbackEngine
from .exceptions import (
    AggregateFailure,
    AttemptFailure,
    AttemptTimeout,
    ConfigurationError,
    DuplicateStrategy,
    MediaFallbackError,
    NoAvailableStrategy,
    StrategyFailure,
    ValidationError,
)
from .executor import AttemptGuard, Executor, ExecutorState, FallbackResult
from .metrics_store import AttemptRecord, MetricsSnapshot, MetricsStore
from .network import (
    NetworkCondition,
    NetworkSample,
    NetworkThresholds,
    classify_network,
    make_classifier,
)
from .selector import PlannedStrategy, Selector

__all__ = [
    # Capabilities
    "Capability",
    "CapabilityProvider",
    "CapabilitySet",
    "parse_capabilities",
    "static_capabilities",
    # Catalog
    "Strategy",
    "StrategyCatalog",
    "default_strategies",
    # Config
    "EngineConfig",
    "ExecutorConfig",
    "MetricsConfig",
    "NetworkAdjustment",
    "ObservabilityConfig",
    "SelectorConfig",
    "StrategyConfig",
    "get_config",
    "load_config",
    "reset_config",
    # Engine
    "FallbackEngine",
    # Exceptions
    "AggregateFailure",
    "AttemptFailure",
    "AttemptTimeout",
    "ConfigurationError",
    "DuplicateStrategy",
    "MediaFallbackError",
    "NoAvailableStrategy",
    "StrategyFailure",
    "ValidationError",
    # Executor
    "AttemptGuard",
    "Executor",
    "ExecutorState",
    "FallbackResult",
    # Metrics
    "AttemptRecord",
    "MetricsSnapshot",
    "MetricsStore",
    # Network
    "NetworkCondition",
    "NetworkSample",
    "NetworkThresholds",
    "classify_network",
    "make_classifier",
    # Selector
    "PlannedStrategy",
    "Selector",
]
