"""
MediaFallback Configuration System
==================================
Centralized, validated configuration with environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from mediafallback.core.capabilities import Capability
from mediafallback.core.exceptions import ConfigurationError, DuplicateStrategy, ValidationError
from mediafallback.core.network import NetworkCondition, NetworkThresholds


@dataclass(frozen=True)
class StrategyConfig:
    name: str
    priority: int
    timeout_ms: int
    max_retries: int
    required_capabilities: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class NetworkAdjustment:
    """Per-call timeout/retry adjustment applied for one network condition."""
    timeout_multiplier: float = 1.0
    retry_delta: int = 0
    min_retries: int = 1


def _default_strategies() -> Tuple[StrategyConfig, ...]:
    return (
        StrategyConfig(
            name="webrtc",
            priority=1,
            timeout_ms=10000,
            max_retries=2,
            required_capabilities=("webrtc_support", "websocket_support"),
            description="WebRTC real-time stream",
        ),
        StrategyConfig(
            name="proxy",
            priority=2,
            timeout_ms=15000,
            max_retries=3,
            required_capabilities=("proxy_server",),
            description="Playback through the proxy server",
        ),
        StrategyConfig(
            name="transcode",
            priority=3,
            timeout_ms=30000,
            max_retries=2,
            required_capabilities=("proxy_server", "ffmpeg_support"),
            description="Server-side transcoded playback",
        ),
        StrategyConfig(
            name="direct",
            priority=4,
            timeout_ms=20000,
            max_retries=1,
            required_capabilities=(),
            description="Direct playback",
        ),
    )


def _default_adjustments() -> Dict[NetworkCondition, NetworkAdjustment]:
    return {
        NetworkCondition.SLOW: NetworkAdjustment(timeout_multiplier=2.0, retry_delta=1),
        NetworkCondition.MEDIUM: NetworkAdjustment(timeout_multiplier=1.5),
        NetworkCondition.FAST: NetworkAdjustment(timeout_multiplier=0.8, min_retries=1),
        NetworkCondition.UNKNOWN: NetworkAdjustment(),
    }


DEFAULT_LIGHTWEIGHT_ORDER: Tuple[str, ...] = ("direct", "proxy", "transcode", "webrtc")


@dataclass(frozen=True)
class SelectorConfig:
    success_weight: float = 0.7
    priority_weight: float = 0.3
    default_success_rate: float = 0.5
    max_priority_value: Optional[int] = None  # None = highest registered priority + 1
    lightweight_order: Tuple[str, ...] = DEFAULT_LIGHTWEIGHT_ORDER
    adjustments: Mapping[NetworkCondition, NetworkAdjustment] = field(
        default_factory=_default_adjustments
    )

    def adjustment_for(self, condition: NetworkCondition) -> NetworkAdjustment:
        return self.adjustments.get(condition, NetworkAdjustment())


@dataclass(frozen=True)
class ExecutorConfig:
    base_delay_ms: int = 1000


@dataclass(frozen=True)
class MetricsConfig:
    alpha: float = 0.1
    history_size: int = 50
    initial_success_rate: float = 0.5
    snapshot_window: int = 10
    error_window: int = 20
    connection_history_size: int = 100


@dataclass(frozen=True)
class ObservabilityConfig:
    log_level: str = "INFO"
    json_logs: bool = False


@dataclass(frozen=True)
class EngineConfig:
    """Root configuration for the fallback engine."""

    version: str = "1.0"
    strategies: Tuple[StrategyConfig, ...] = field(default_factory=_default_strategies)
    selector: SelectorConfig = field(default_factory=SelectorConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    network: NetworkThresholds = field(default_factory=NetworkThresholds)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


def _env_override(key: str, default):
    """Check for MEDIAFALLBACK_<KEY> environment variable override."""
    env_key = f"MEDIAFALLBACK_{key.upper()}"
    val = os.environ.get(env_key)
    if val is None:
        return default
    # Type coercion based on the default's type
    try:
        if isinstance(default, bool):
            return val.lower() in ("true", "1", "yes")
        if isinstance(default, int):
            return int(val)
        if isinstance(default, float):
            return float(val)
    except ValueError:
        raise ConfigurationError(
            config_key=key.lower(),
            reason=f"cannot parse {env_key}={val!r} as {type(default).__name__}",
        ) from None
    return val


def _build_strategy(raw: dict, index: int) -> StrategyConfig:
    missing = [k for k in ("name", "priority", "timeout_ms", "max_retries") if k not in raw]
    if missing:
        raise ConfigurationError(
            config_key=f"strategies[{index}]",
            reason=f"missing required field(s): {', '.join(missing)}",
        )
    caps = tuple(raw.get("required_capabilities") or ())
    for tag in caps:
        try:
            Capability.parse(tag)
        except ValidationError as exc:
            raise ConfigurationError(
                config_key=f"strategies[{index}].required_capabilities",
                reason=exc.message,
            ) from exc
    return StrategyConfig(
        name=str(raw["name"]),
        priority=int(raw["priority"]),
        timeout_ms=int(raw["timeout_ms"]),
        max_retries=int(raw["max_retries"]),
        required_capabilities=caps,
        description=raw.get("description", ""),
    )


def _build_adjustments(raw: dict) -> Dict[NetworkCondition, NetworkAdjustment]:
    adjustments = _default_adjustments()
    for key, values in (raw or {}).items():
        try:
            condition = NetworkCondition.parse(key)
        except ValidationError as exc:
            raise ConfigurationError(config_key=f"selector.adjustments.{key}", reason=exc.message) from exc
        base = adjustments[condition]
        values = values or {}
        adjustments[condition] = NetworkAdjustment(
            timeout_multiplier=float(values.get("timeout_multiplier", base.timeout_multiplier)),
            retry_delta=int(values.get("retry_delta", base.retry_delta)),
            min_retries=int(values.get("min_retries", base.min_retries)),
        )
    return adjustments


def _optional_int(value, key: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(config_key=key, reason=f"expected an integer, got {value!r}") from None


def validate_config(config: EngineConfig) -> EngineConfig:
    """Raise ConfigurationError for values the engine cannot work with.

    Duplicate strategy names raise DuplicateStrategy.
    """
    seen = set()
    for strategy in config.strategies:
        if strategy.name in seen:
            raise DuplicateStrategy(strategy.name, context={"config_key": "strategies"})
        seen.add(strategy.name)

    m = config.metrics
    if not 0.0 < m.alpha <= 1.0:
        raise ConfigurationError("metrics.alpha", f"must be in (0, 1], got {m.alpha}")
    if m.history_size < 1:
        raise ConfigurationError("metrics.history_size", f"must be >= 1, got {m.history_size}")
    if not 0.0 <= m.initial_success_rate <= 1.0:
        raise ConfigurationError(
            "metrics.initial_success_rate", f"must be in [0, 1], got {m.initial_success_rate}"
        )
    if m.snapshot_window < 0 or m.error_window < 1 or m.connection_history_size < 1:
        raise ConfigurationError("metrics", "window sizes must be positive")

    s = config.selector
    if s.success_weight < 0 or s.priority_weight < 0:
        raise ConfigurationError("selector", "score weights must be non-negative")
    if s.max_priority_value is not None and s.max_priority_value <= 0:
        raise ConfigurationError(
            "selector.max_priority_value", f"must be positive, got {s.max_priority_value}"
        )
    for condition, adj in s.adjustments.items():
        if adj.timeout_multiplier <= 0:
            raise ConfigurationError(
                f"selector.adjustments.{condition.value}.timeout_multiplier",
                f"must be positive, got {adj.timeout_multiplier}",
            )
        if adj.min_retries < 1:
            raise ConfigurationError(
                f"selector.adjustments.{condition.value}.min_retries",
                f"must be >= 1, got {adj.min_retries}",
            )

    if config.executor.base_delay_ms < 0:
        raise ConfigurationError(
            "executor.base_delay_ms", f"must be >= 0, got {config.executor.base_delay_ms}"
        )
    return config


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Priority: ENV > YAML > defaults.

    Args:
        path: Path to a YAML file. If None, searches ./mediafallback.yaml
              and ./config.yaml.

    Returns:
        Validated EngineConfig instance.

    Raises:
        ConfigurationError: If any value is out of range or malformed.
    """
    if path is None:
        for candidate in (Path("mediafallback.yaml"), Path("config.yaml")):
            if candidate.exists():
                path = candidate
                break

    raw = {}
    if path is not None and Path(path).exists():
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
            raw = loaded.get("mediafallback") or {}

    # Strategies
    strategies_raw = raw.get("strategies")
    if strategies_raw is None:
        strategies = _default_strategies()
    else:
        strategies = tuple(_build_strategy(item, i) for i, item in enumerate(strategies_raw))

    # Selector
    sel_raw = raw.get("selector") or {}
    order_env = os.environ.get("MEDIAFALLBACK_LIGHTWEIGHT_ORDER")
    if order_env:
        lightweight_order = tuple(n.strip() for n in order_env.split(",") if n.strip())
    else:
        lightweight_order = tuple(sel_raw.get("lightweight_order", DEFAULT_LIGHTWEIGHT_ORDER))
    selector = SelectorConfig(
        success_weight=_env_override("SUCCESS_WEIGHT", float(sel_raw.get("success_weight", 0.7))),
        priority_weight=_env_override("PRIORITY_WEIGHT", float(sel_raw.get("priority_weight", 0.3))),
        default_success_rate=float(sel_raw.get("default_success_rate", 0.5)),
        max_priority_value=_optional_int(sel_raw.get("max_priority_value"), "selector.max_priority_value"),
        lightweight_order=lightweight_order,
        adjustments=_build_adjustments(sel_raw.get("adjustments")),
    )

    # Executor
    exec_raw = raw.get("executor") or {}
    executor = ExecutorConfig(
        base_delay_ms=_env_override("BASE_DELAY_MS", int(exec_raw.get("base_delay_ms", 1000))),
    )

    # Metrics
    met_raw = raw.get("metrics") or {}
    metrics = MetricsConfig(
        alpha=_env_override("ALPHA", float(met_raw.get("alpha", 0.1))),
        history_size=_env_override("HISTORY_SIZE", int(met_raw.get("history_size", 50))),
        initial_success_rate=float(met_raw.get("initial_success_rate", 0.5)),
        snapshot_window=int(met_raw.get("snapshot_window", 10)),
        error_window=int(met_raw.get("error_window", 20)),
        connection_history_size=int(met_raw.get("connection_history_size", 100)),
    )

    # Network thresholds
    net_raw = raw.get("network") or {}
    network = NetworkThresholds(
        downlink_slow_mbps=float(net_raw.get("downlink_slow_mbps", 1.0)),
        downlink_medium_mbps=float(net_raw.get("downlink_medium_mbps", 10.0)),
        bandwidth_slow_bps=float(net_raw.get("bandwidth_slow_bps", 1_000_000)),
        bandwidth_medium_bps=float(net_raw.get("bandwidth_medium_bps", 10_000_000)),
    )

    # Observability
    obs_raw = raw.get("observability") or {}
    observability = ObservabilityConfig(
        log_level=_env_override("LOG_LEVEL", obs_raw.get("log_level", "INFO")),
        json_logs=_env_override("JSON_LOGS", bool(obs_raw.get("json_logs", False))),
    )

    return validate_config(
        EngineConfig(
            version=str(raw.get("version", "1.0")),
            strategies=strategies,
            selector=selector,
            executor=executor,
            metrics=metrics,
            network=network,
            observability=observability,
        )
    )


# Module-level singleton (lazy-loaded)
_CONFIG: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get or initialize the global config singleton."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def reset_config():
    """Reset the global config singleton (useful for testing)."""
    global _CONFIG
    _CONFIG = None
