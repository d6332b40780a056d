"""
Capability tags and capability sets.

The set of tags is closed: every requirement a strategy can declare is a
member of ``Capability``. Detection of these capabilities happens outside the
engine; the engine only receives a ``CapabilitySet`` from a provider.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Callable, FrozenSet, Iterable, Iterator, Optional, Union

from .exceptions import ValidationError


class Capability(str, Enum):
    """Environment features a delivery strategy may require."""
    WEBRTC_SUPPORT = "webrtc_support"
    WEBSOCKET_SUPPORT = "websocket_support"
    PROXY_SERVER = "proxy_server"
    FFMPEG_SUPPORT = "ffmpeg_support"
    HARDWARE_ACCELERATION = "hardware_acceleration"

    @classmethod
    def parse(cls, value: Union["Capability", str]) -> "Capability":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                field="capability",
                reason=f"unknown capability tag (expected one of: {', '.join(c.value for c in cls)})",
                value=value,
            ) from None


CapabilityLike = Union[Capability, str]


def parse_capabilities(tags: Iterable[CapabilityLike]) -> FrozenSet[Capability]:
    """Parse an iterable of tags into a frozenset of ``Capability``."""
    return frozenset(Capability.parse(tag) for tag in tags)


class CapabilitySet(Mapping):
    """
    Immutable mapping of ``Capability`` -> bool.

    Tags that are not mentioned are treated as unavailable.
    """

    __slots__ = ("_flags",)

    def __init__(self, flags: Optional[Mapping[CapabilityLike, bool]] = None):
        parsed = {}
        for tag, value in (flags or {}).items():
            parsed[Capability.parse(tag)] = bool(value)
        self._flags = parsed

    @classmethod
    def of(cls, *tags: CapabilityLike) -> "CapabilitySet":
        """Build a set where exactly ``tags`` are available."""
        return cls({tag: True for tag in tags})

    @classmethod
    def coerce(cls, value: Union["CapabilitySet", Mapping, Iterable, None]) -> "CapabilitySet":
        if isinstance(value, CapabilitySet):
            return value
        if value is None:
            return cls()
        if isinstance(value, Mapping):
            return cls(value)
        return cls.of(*value)

    def __getitem__(self, key: CapabilityLike) -> bool:
        return self._flags.get(Capability.parse(key), False)

    def __contains__(self, key: object) -> bool:
        try:
            return Capability.parse(key) in self._flags  # type: ignore[arg-type]
        except ValidationError:
            return False

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def __repr__(self) -> str:
        enabled = ", ".join(sorted(c.value for c in self.enabled))
        return f"CapabilitySet({{{enabled}}})"

    @property
    def enabled(self) -> FrozenSet[Capability]:
        return frozenset(tag for tag, value in self._flags.items() if value)

    def satisfies(self, required: Iterable[Capability]) -> bool:
        return frozenset(required) <= self.enabled

    def missing(self, required: Iterable[Capability]) -> FrozenSet[Capability]:
        return frozenset(required) - self.enabled

    def to_dict(self) -> dict:
        return {tag.value: value for tag, value in self._flags.items()}


# A provider is any zero-argument callable returning the current capabilities.
CapabilityProvider = Callable[[], CapabilitySet]


def static_capabilities(*tags: CapabilityLike) -> CapabilityProvider:
    """Provider that always reports the same capability set."""
    capabilities = CapabilitySet.of(*tags)

    def provider() -> CapabilitySet:
        return capabilities

    return provider
