"""
Tests for MediaFallback Error Handling
======================================
Tests the exception hierarchy, error codes and serialisation.
"""

import pytest

from mediafallback.core.exceptions import (
    AggregateFailure,
    AttemptFailure,
    AttemptTimeout,
    ConfigurationError,
    DuplicateStrategy,
    ErrorCategory,
    IrrecoverableError,
    MediaFallbackError,
    NoAvailableStrategy,
    RecoverableError,
    StrategyFailure,
    ValidationError,
)


class TestHierarchy:
    @pytest.mark.parametrize("error", [
        AttemptTimeout("a", 1, 100),
        AttemptFailure("a", 1, RuntimeError("boom")),
    ])
    def test_attempt_errors_are_recoverable(self, error):
        assert isinstance(error, RecoverableError)
        assert error.recoverable is True
        assert error.category is ErrorCategory.EXECUTION

    @pytest.mark.parametrize("error", [
        ConfigurationError("key", "bad"),
        ValidationError("field", "bad"),
        DuplicateStrategy("a"),
        NoAvailableStrategy(),
        AggregateFailure([]),
    ])
    def test_caller_errors_are_irrecoverable(self, error):
        assert isinstance(error, IrrecoverableError)
        assert isinstance(error, MediaFallbackError)
        assert error.recoverable is False


class TestErrorDetails:
    def test_to_dict(self):
        error = DuplicateStrategy("proxy")
        data = error.to_dict()
        assert data == {
            "error": "Strategy 'proxy' is already registered",
            "code": "DUPLICATE_STRATEGY",
            "recoverable": False,
            "context": {"strategy": "proxy"},
        }

    def test_str_includes_context(self):
        error = ConfigurationError("metrics.alpha", "must be in (0, 1]")
        assert "metrics.alpha" in str(error)
        assert "context=" in str(error)

    def test_validation_value_truncated(self):
        error = ValidationError("payload", "too long", value="x" * 500)
        assert len(error.context["value"]) == 103

    def test_attempt_error_kinds(self):
        assert AttemptTimeout("a", 1, 100).kind == "timeout"
        failure = AttemptFailure("a", 2, ConnectionResetError("reset"))
        assert failure.kind == "ConnectionResetError"
        assert isinstance(failure.__cause__, ConnectionResetError)
        assert failure.context["attempt"] == 2

    def test_no_available_strategy_context(self):
        error = NoAvailableStrategy(["proxy_server"], {"webrtc": ["webrtc_support"]})
        assert error.context == {
            "enabled_capabilities": ["proxy_server"],
            "missing": {"webrtc": ["webrtc_support"]},
        }


class TestAggregateFailure:
    def test_attempt_accounting(self):
        error = AggregateFailure([
            StrategyFailure("webrtc", 2, AttemptTimeout("webrtc", 2, 10000)),
            StrategyFailure("direct", 1, AttemptFailure("direct", 1, OSError("down"))),
        ])
        assert error.total_attempts == 3
        assert error.attempts_for("webrtc") == 2
        assert error.attempts_for("proxy") == 0
        assert "webrtc, direct" in error.message
        assert "down" in error.message

        failures = error.to_dict()["context"]["failures"]
        assert failures[0]["error_kind"] == "timeout"
        assert failures[1]["error_kind"] == "OSError"
        assert failures[1]["attempts"] == 1

    def test_empty(self):
        error = AggregateFailure([])
        assert error.total_attempts == 0
        assert "none" in error.message
