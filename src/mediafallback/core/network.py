"""
Network Condition Classification
================================
Maps a raw network sample onto a coarse ``NetworkCondition``.

Signals are consulted in a fixed precedence order and the first one that
yields a category wins:

    1. explicit connection-class label (``effective_type``)
    2. measured downlink in Mbps
    3. bandwidth estimate in bits per second

A sample with none of these signals classifies as ``UNKNOWN``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Union

from .exceptions import ValidationError


class NetworkCondition(str, Enum):
    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union["NetworkCondition", str, None]) -> "NetworkCondition":
        if value is None:
            return cls.UNKNOWN
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                field="network_condition",
                reason="expected one of: slow, medium, fast, unknown",
                value=value,
            ) from None


@dataclass(frozen=True)
class NetworkSample:
    """Raw network signals; any of them may be missing."""
    effective_type: Optional[str] = None
    downlink_mbps: Optional[float] = None
    bandwidth_bps: Optional[float] = None

    def __post_init__(self):
        if self.downlink_mbps is not None and self.downlink_mbps < 0:
            raise ValidationError("downlink_mbps", "must be non-negative", self.downlink_mbps)
        if self.bandwidth_bps is not None and self.bandwidth_bps < 0:
            raise ValidationError("bandwidth_bps", "must be non-negative", self.bandwidth_bps)

    def to_dict(self) -> dict:
        return {
            "effective_type": self.effective_type,
            "downlink_mbps": self.downlink_mbps,
            "bandwidth_bps": self.bandwidth_bps,
        }


@dataclass(frozen=True)
class NetworkThresholds:
    """Upper bounds (exclusive) for the slow and medium buckets."""
    downlink_slow_mbps: float = 1.0
    downlink_medium_mbps: float = 10.0
    bandwidth_slow_bps: float = 1_000_000.0
    bandwidth_medium_bps: float = 10_000_000.0


EFFECTIVE_TYPE_LABELS: Dict[str, NetworkCondition] = {
    "slow-2g": NetworkCondition.SLOW,
    "2g": NetworkCondition.SLOW,
    "3g": NetworkCondition.MEDIUM,
    "4g": NetworkCondition.FAST,
}

DEFAULT_THRESHOLDS = NetworkThresholds()

NetworkClassifier = Callable[[NetworkSample], NetworkCondition]
NetworkSampleProvider = Callable[[], NetworkSample]


def _bucket(value: float, slow_below: float, medium_below: float) -> NetworkCondition:
    if value < slow_below:
        return NetworkCondition.SLOW
    if value < medium_below:
        return NetworkCondition.MEDIUM
    return NetworkCondition.FAST


def classify_network(
    sample: Optional[NetworkSample],
    thresholds: NetworkThresholds = DEFAULT_THRESHOLDS,
) -> NetworkCondition:
    """Classify ``sample`` using label > downlink > bandwidth precedence."""
    if sample is None:
        return NetworkCondition.UNKNOWN

    if sample.effective_type:
        # Unrecognised labels fall through to the measured signals.
        label = EFFECTIVE_TYPE_LABELS.get(sample.effective_type.strip().lower())
        if label is not None:
            return label

    if sample.downlink_mbps is not None:
        return _bucket(
            sample.downlink_mbps,
            thresholds.downlink_slow_mbps,
            thresholds.downlink_medium_mbps,
        )

    if sample.bandwidth_bps is not None:
        return _bucket(
            sample.bandwidth_bps,
            thresholds.bandwidth_slow_bps,
            thresholds.bandwidth_medium_bps,
        )

    return NetworkCondition.UNKNOWN


def make_classifier(thresholds: NetworkThresholds) -> NetworkClassifier:
    """Bind ``classify_network`` to a set of thresholds."""

    def classifier(sample: NetworkSample) -> NetworkCondition:
        return classify_network(sample, thresholds)

    return classifier
