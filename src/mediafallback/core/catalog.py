"""
Strategy Catalog
================
Registered delivery strategies and their declared requirements.

Registration order is significant: it is the stable tie-break used by the
selector, and ``list()`` / ``available_for()`` always preserve it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional

from loguru import logger

from .capabilities import Capability, CapabilitySet, parse_capabilities
from .config import EngineConfig, StrategyConfig
from .exceptions import ConfigurationError, DuplicateStrategy, ValidationError


@dataclass(frozen=True)
class Strategy:
    """
    One way of delivering the media.

    Fields:
        name: Unique identifier within a catalog.
        priority: Lower is more preferred (>= 0).
        timeout_ms: Per-attempt timeout before network adjustment.
        max_retries: Attempts allowed per execution (>= 1).
        required_capabilities: Tags that must all be available.
        description: Free-form label for reports.
    """
    name: str
    priority: int
    timeout_ms: int
    max_retries: int
    required_capabilities: FrozenSet[Capability] = field(default_factory=frozenset)
    description: str = ""

    def __post_init__(self):
        if not self.name or not str(self.name).strip():
            raise ValidationError("name", "strategy name must be non-empty", self.name)
        if isinstance(self.priority, bool) or not isinstance(self.priority, int) or self.priority < 0:
            raise ValidationError("priority", "must be a non-negative integer", self.priority)
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int) or self.timeout_ms <= 0:
            raise ValidationError("timeout_ms", "must be a positive integer", self.timeout_ms)
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int) or self.max_retries < 1:
            raise ValidationError("max_retries", "must be an integer >= 1", self.max_retries)
        # Normalise whatever iterable of tags was passed into a frozenset of enums.
        object.__setattr__(
            self, "required_capabilities", parse_capabilities(self.required_capabilities)
        )

    @classmethod
    def from_config(cls, cfg: StrategyConfig) -> "Strategy":
        return cls(
            name=cfg.name,
            priority=cfg.priority,
            timeout_ms=cfg.timeout_ms,
            max_retries=cfg.max_retries,
            required_capabilities=frozenset(cfg.required_capabilities),
            description=cfg.description,
        )

    def is_available(self, capabilities: CapabilitySet) -> bool:
        return capabilities.satisfies(self.required_capabilities)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "priority": self.priority,
            "timeout_ms": self.timeout_ms,
            "max_retries": self.max_retries,
            "required_capabilities": sorted(c.value for c in self.required_capabilities),
            "description": self.description,
        }


class StrategyCatalog:
    """Ordered, name-unique collection of strategies."""

    def __init__(self, strategies: Optional[Iterable[Strategy]] = None):
        self._strategies: Dict[str, Strategy] = {}
        self._sealed = False
        for strategy in strategies or ():
            self.register(strategy)

    @classmethod
    def from_config(cls, configs: Iterable[StrategyConfig]) -> "StrategyCatalog":
        return cls(Strategy.from_config(cfg) for cfg in configs)

    def register(self, strategy: Strategy) -> None:
        if self._sealed:
            raise ConfigurationError(
                config_key="strategies",
                reason=f"catalog is sealed; cannot register '{strategy.name}'",
            )
        if strategy.name in self._strategies:
            raise DuplicateStrategy(strategy.name)
        self._strategies[strategy.name] = strategy
        logger.debug(
            f"Registered strategy {strategy.name} (priority={strategy.priority}, "
            f"requires={sorted(c.value for c in strategy.required_capabilities)})"
        )

    def seal(self) -> "StrategyCatalog":
        """Disallow further registration."""
        self._sealed = True
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    def list(self) -> List[Strategy]:
        return list(self._strategies.values())

    def available_for(self, capabilities: CapabilitySet) -> List[Strategy]:
        return [s for s in self._strategies.values() if s.is_available(capabilities)]

    def get(self, name: str) -> Optional[Strategy]:
        return self._strategies.get(name)

    def registration_index(self, name: str) -> int:
        for index, registered in enumerate(self._strategies):
            if registered == name:
                return index
        raise KeyError(name)

    @property
    def max_priority(self) -> int:
        return max((s.priority for s in self._strategies.values()), default=0)

    def __len__(self) -> int:
        return len(self._strategies)

    def __contains__(self, name: object) -> bool:
        return name in self._strategies

    def __iter__(self) -> Iterator[Strategy]:
        return iter(self.list())


def default_strategies() -> List[Strategy]:
    """The four media delivery strategies: webrtc, proxy, transcode, direct."""
    return [Strategy.from_config(cfg) for cfg in EngineConfig().strategies]
