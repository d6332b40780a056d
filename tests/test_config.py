"""
MediaFallback Test Suite - Configuration Tests
"""

import pytest
import yaml

from mediafallback.core.config import (
    EngineConfig,
    MetricsConfig,
    NetworkAdjustment,
    SelectorConfig,
    get_config,
    load_config,
    reset_config,
    validate_config,
)
from mediafallback.core.exceptions import ConfigurationError
from mediafallback.core.network import NetworkCondition


@pytest.fixture
def sample_config_path(tmp_path):
    """Create a temporary mediafallback.yaml."""
    config_data = {
        "mediafallback": {
            "version": "1.0-test",
            "strategies": [
                {
                    "name": "hls",
                    "priority": 1,
                    "timeout_ms": 5000,
                    "max_retries": 2,
                    "required_capabilities": ["proxy_server"],
                },
                {"name": "direct", "priority": 2, "timeout_ms": 8000, "max_retries": 1},
            ],
            "selector": {
                "success_weight": 0.6,
                "priority_weight": 0.4,
                "lightweight_order": ["direct", "hls"],
                "adjustments": {"slow": {"timeout_multiplier": 3.0}},
            },
            "executor": {"base_delay_ms": 250},
            "metrics": {"alpha": 0.2, "history_size": 20},
            "network": {"downlink_slow_mbps": 2.0},
            "observability": {"log_level": "DEBUG", "json_logs": True},
        }
    }
    path = tmp_path / "mediafallback.yaml"
    with open(path, "w") as f:
        yaml.dump(config_data, f)
    return path


def write_config(tmp_path, body):
    path = tmp_path / "config.yaml"
    with open(path, "w") as f:
        yaml.dump({"mediafallback": body}, f)
    return path


class TestDefaults:
    def test_default_config(self):
        config = EngineConfig()
        assert config.selector.success_weight == 0.7
        assert config.selector.priority_weight == 0.3
        assert config.selector.max_priority_value is None
        assert config.selector.lightweight_order == ("direct", "proxy", "transcode", "webrtc")
        assert config.executor.base_delay_ms == 1000
        assert config.metrics.alpha == 0.1
        assert config.metrics.history_size == 50
        assert [s.name for s in config.strategies] == ["webrtc", "proxy", "transcode", "direct"]

    def test_default_adjustments(self):
        selector = SelectorConfig()
        assert selector.adjustment_for(NetworkCondition.SLOW) == NetworkAdjustment(2.0, 1, 1)
        assert selector.adjustment_for(NetworkCondition.MEDIUM).timeout_multiplier == 1.5
        assert selector.adjustment_for(NetworkCondition.FAST).timeout_multiplier == 0.8
        assert selector.adjustment_for(NetworkCondition.UNKNOWN) == NetworkAdjustment()

    def test_load_without_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == EngineConfig()

    def test_config_is_frozen(self):
        config = EngineConfig()
        with pytest.raises(AttributeError):
            config.version = "2.0"


class TestLoadConfig:
    def test_load_from_yaml(self, sample_config_path):
        config = load_config(sample_config_path)
        assert config.version == "1.0-test"
        assert [s.name for s in config.strategies] == ["hls", "direct"]
        assert config.strategies[0].required_capabilities == ("proxy_server",)
        assert config.selector.success_weight == 0.6
        assert config.selector.lightweight_order == ("direct", "hls")
        slow = config.selector.adjustment_for(NetworkCondition.SLOW)
        assert slow.timeout_multiplier == 3.0
        assert slow.retry_delta == 1
        assert config.executor.base_delay_ms == 250
        assert config.metrics.alpha == 0.2
        assert config.metrics.history_size == 20
        assert config.network.downlink_slow_mbps == 2.0
        assert config.network.downlink_medium_mbps == 10.0
        assert config.observability.log_level == "DEBUG"
        assert config.observability.json_logs is True

    def test_search_path(self, sample_config_path, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config().version == "1.0-test"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == EngineConfig()

    def test_missing_strategy_field(self, tmp_path):
        path = write_config(tmp_path, {"strategies": [{"name": "x", "priority": 1}]})
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.config_key == "strategies[0]"

    def test_unknown_capability(self, tmp_path):
        path = write_config(tmp_path, {"strategies": [
            {"name": "x", "priority": 1, "timeout_ms": 10, "max_retries": 1,
             "required_capabilities": ["teleportation"]},
        ]})
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_unknown_adjustment_condition(self, tmp_path):
        path = write_config(tmp_path, {"selector": {"adjustments": {"warp": {"timeout_multiplier": 1}}}})
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_alpha(self, tmp_path):
        path = write_config(tmp_path, {"metrics": {"alpha": 1.5}})
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.config_key == "metrics.alpha"


class TestEnvOverrides:
    def test_env_overrides_yaml(self, sample_config_path, monkeypatch):
        monkeypatch.setenv("MEDIAFALLBACK_SUCCESS_WEIGHT", "0.9")
        monkeypatch.setenv("MEDIAFALLBACK_BASE_DELAY_MS", "50")
        monkeypatch.setenv("MEDIAFALLBACK_ALPHA", "0.3")
        monkeypatch.setenv("MEDIAFALLBACK_JSON_LOGS", "false")
        monkeypatch.setenv("MEDIAFALLBACK_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("MEDIAFALLBACK_LIGHTWEIGHT_ORDER", "hls, direct")

        config = load_config(sample_config_path)

        assert config.selector.success_weight == 0.9
        assert config.executor.base_delay_ms == 50
        assert config.metrics.alpha == 0.3
        assert config.observability.json_logs is False
        assert config.observability.log_level == "WARNING"
        assert config.selector.lightweight_order == ("hls", "direct")

    def test_unparseable_env_value(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MEDIAFALLBACK_HISTORY_SIZE", "lots")
        with pytest.raises(ConfigurationError) as exc_info:
            load_config()
        assert exc_info.value.config_key == "history_size"

    def test_env_value_validated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MEDIAFALLBACK_BASE_DELAY_MS", "-5")
        with pytest.raises(ConfigurationError):
            load_config()


class TestValidation:
    @pytest.mark.parametrize("config", [
        EngineConfig(metrics=MetricsConfig(history_size=0)),
        EngineConfig(metrics=MetricsConfig(initial_success_rate=1.5)),
        EngineConfig(selector=SelectorConfig(success_weight=-0.1)),
        EngineConfig(selector=SelectorConfig(max_priority_value=0)),
        EngineConfig(selector=SelectorConfig(adjustments={
            NetworkCondition.SLOW: NetworkAdjustment(timeout_multiplier=0),
        })),
        EngineConfig(selector=SelectorConfig(adjustments={
            NetworkCondition.SLOW: NetworkAdjustment(min_retries=0),
        })),
    ])
    def test_invalid_values(self, config):
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_valid_config_returned(self):
        config = EngineConfig()
        assert validate_config(config) is config


class TestSingleton:
    def test_get_config_caches(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first


def test_example_file_matches_defaults():
    from pathlib import Path

    example = Path(__file__).resolve().parents[1] / "mediafallback.example.yaml"
    assert load_config(example) == EngineConfig()


class TestStrategyNames:
    def test_duplicate_names_rejected_on_load(self, tmp_path):
        from mediafallback.core.exceptions import DuplicateStrategy

        path = write_config(tmp_path, {"strategies": [
            {"name": "direct", "priority": 1, "timeout_ms": 1000, "max_retries": 1},
            {"name": "direct", "priority": 2, "timeout_ms": 2000, "max_retries": 1},
        ]})
        with pytest.raises(DuplicateStrategy) as exc_info:
            load_config(path)
        assert exc_info.value.context["config_key"] == "strategies"


class TestMaxPriorityValue:
    def test_quoted_value_is_converted(self, tmp_path):
        path = write_config(tmp_path, {"selector": {"max_priority_value": "8"}})
        assert load_config(path).selector.max_priority_value == 8

    def test_non_integer_value(self, tmp_path):
        path = write_config(tmp_path, {"selector": {"max_priority_value": "high"}})
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.config_key == "selector.max_priority_value"

    def test_zero_from_yaml(self, tmp_path):
        path = write_config(tmp_path, {"selector": {"max_priority_value": "0"}})
        with pytest.raises(ConfigurationError):
            load_config(path)
