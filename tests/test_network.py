"""
Tests for network condition classification.
"""

import pytest

from mediafallback.core.exceptions import ValidationError
from mediafallback.core.network import (
    NetworkCondition,
    NetworkSample,
    NetworkThresholds,
    classify_network,
    make_classifier,
)


class TestNetworkCondition:
    def test_parse(self):
        assert NetworkCondition.parse("SLOW") is NetworkCondition.SLOW
        assert NetworkCondition.parse(NetworkCondition.FAST) is NetworkCondition.FAST
        assert NetworkCondition.parse(None) is NetworkCondition.UNKNOWN

    def test_parse_invalid(self):
        with pytest.raises(ValidationError):
            NetworkCondition.parse("warp")


class TestClassification:
    @pytest.mark.parametrize("label,expected", [
        ("slow-2g", NetworkCondition.SLOW),
        ("2g", NetworkCondition.SLOW),
        ("3g", NetworkCondition.MEDIUM),
        ("4g", NetworkCondition.FAST),
        ("4G", NetworkCondition.FAST),
    ])
    def test_effective_type_labels(self, label, expected):
        assert classify_network(NetworkSample(effective_type=label)) is expected

    @pytest.mark.parametrize("downlink,expected", [
        (0.0, NetworkCondition.SLOW),
        (0.5, NetworkCondition.SLOW),
        (1.0, NetworkCondition.MEDIUM),
        (9.99, NetworkCondition.MEDIUM),
        (10.0, NetworkCondition.FAST),
        (250.0, NetworkCondition.FAST),
    ])
    def test_downlink_thresholds(self, downlink, expected):
        assert classify_network(NetworkSample(downlink_mbps=downlink)) is expected

    @pytest.mark.parametrize("bandwidth,expected", [
        (500_000, NetworkCondition.SLOW),
        (1_000_000, NetworkCondition.MEDIUM),
        (10_000_000, NetworkCondition.FAST),
    ])
    def test_bandwidth_thresholds(self, bandwidth, expected):
        assert classify_network(NetworkSample(bandwidth_bps=bandwidth)) is expected

    def test_label_beats_downlink(self):
        sample = NetworkSample(effective_type="2g", downlink_mbps=50.0, bandwidth_bps=50_000_000)
        assert classify_network(sample) is NetworkCondition.SLOW

    def test_downlink_beats_bandwidth(self):
        sample = NetworkSample(downlink_mbps=50.0, bandwidth_bps=10)
        assert classify_network(sample) is NetworkCondition.FAST

    def test_unrecognised_label_falls_through(self):
        sample = NetworkSample(effective_type="5g-ultra", downlink_mbps=0.2)
        assert classify_network(sample) is NetworkCondition.SLOW

    def test_no_signals_is_unknown(self):
        assert classify_network(NetworkSample()) is NetworkCondition.UNKNOWN
        assert classify_network(None) is NetworkCondition.UNKNOWN
        assert classify_network(NetworkSample(effective_type="wifi")) is NetworkCondition.UNKNOWN

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            NetworkSample(downlink_mbps=-1.0)
        with pytest.raises(ValidationError):
            NetworkSample(bandwidth_bps=-5)

    def test_custom_thresholds(self):
        classifier = make_classifier(NetworkThresholds(downlink_slow_mbps=5.0, downlink_medium_mbps=50.0))
        assert classifier(NetworkSample(downlink_mbps=4.0)) is NetworkCondition.SLOW
        assert classifier(NetworkSample(downlink_mbps=20.0)) is NetworkCondition.MEDIUM
