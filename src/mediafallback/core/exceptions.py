"""
MediaFallback Domain-Specific Exceptions
=========================================

This module defines a hierarchy of exceptions for consistent error handling
across the fallback engine.

Exception Hierarchy:
    MediaFallbackError (base)
    ├── RecoverableError (handled inside the executor, triggers retry/fallback)
    │   ├── AttemptTimeout
    │   └── AttemptFailure
    └── IrrecoverableError (surfaced to the caller)
        ├── ConfigurationError
        ├── ValidationError
        ├── DuplicateStrategy
        ├── NoAvailableStrategy
        └── AggregateFailure

Usage Guidelines:
    - Attempt-level errors never leave the executor; they are recorded as
      failed AttemptRecords and drive retry or fallback.
    - A caller of the engine only ever sees a result, NoAvailableStrategy
      or a single AggregateFailure.
    - Always include context in error messages
    - Use error_code for API responses
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorCategory(Enum):
    """Categories for error classification."""
    SELECTION = "SELECTION"
    EXECUTION = "EXECUTION"
    CONFIG = "CONFIG"
    VALIDATION = "VALIDATION"
    SYSTEM = "SYSTEM"


class MediaFallbackError(Exception):
    """
    Base exception for all MediaFallback errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        context: Additional context about the error
        recoverable: Whether the error is potentially recoverable
    """

    error_code: str = "MEDIA_FALLBACK_ERROR"
    recoverable: bool = True
    category: ErrorCategory = ErrorCategory.SYSTEM

    def __init__(
        self,
        message: str,
        context: Optional[dict] = None,
        error_code: Optional[str] = None,
        recoverable: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        if error_code is not None:
            self.error_code = error_code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message

    def to_dict(self, include_traceback: bool = False) -> dict:
        """
        Convert exception to dictionary for JSON output.

        Args:
            include_traceback: Whether to include stack trace (only in DEBUG mode)
        """
        result = {
            "error": self.message,
            "code": self.error_code,
            "recoverable": self.recoverable,
        }

        if include_traceback:
            import traceback
            result["traceback"] = traceback.format_exc()

        if self.context:
            result["context"] = self.context

        return result


# =============================================================================
# Base Categories: Recoverable vs Irrecoverable
# =============================================================================

class RecoverableError(MediaFallbackError):
    """
    Base class for attempt-level errors.

    These are transient and are absorbed by the executor:
    - Attempt timeouts
    - Failures raised by a strategy operation
    """
    recoverable = True


class IrrecoverableError(MediaFallbackError):
    """
    Base class for errors surfaced to the caller:
    - Invalid configuration
    - Validation failures
    - No eligible strategy
    - Every strategy exhausted
    """
    recoverable = False


# =============================================================================
# Configuration & Validation Errors
# =============================================================================

class ConfigurationError(IrrecoverableError):
    """Raised when configuration is invalid or missing."""
    error_code = "CONFIGURATION_ERROR"
    category = ErrorCategory.CONFIG

    def __init__(self, config_key: str, reason: str, context: Optional[dict] = None):
        ctx = {"config_key": config_key}
        if context:
            ctx.update(context)
        super().__init__(f"Configuration error for '{config_key}': {reason}", ctx)
        self.config_key = config_key


class ValidationError(IrrecoverableError):
    """Raised when input validation fails."""
    error_code = "VALIDATION_ERROR"
    category = ErrorCategory.VALIDATION

    def __init__(self, field: str, reason: str, value: Any = None, context: Optional[dict] = None):
        ctx = {"field": field}
        if value is not None:
            # Truncate large values
            value_str = str(value)
            if len(value_str) > 100:
                value_str = value_str[:100] + "..."
            ctx["value"] = value_str
        if context:
            ctx.update(context)
        super().__init__(f"Validation error for '{field}': {reason}", ctx)
        self.field = field
        self.reason = reason


class DuplicateStrategy(IrrecoverableError):
    """Raised when a strategy name is registered twice."""
    error_code = "DUPLICATE_STRATEGY"
    category = ErrorCategory.CONFIG

    def __init__(self, name: str, context: Optional[dict] = None):
        ctx = {"strategy": name}
        if context:
            ctx.update(context)
        super().__init__(f"Strategy '{name}' is already registered", ctx)
        self.name = name


# =============================================================================
# Selection Errors
# =============================================================================

class NoAvailableStrategy(IrrecoverableError):
    """Raised when no registered strategy is satisfied by the capability set."""
    error_code = "NO_AVAILABLE_STRATEGY"
    category = ErrorCategory.SELECTION

    def __init__(
        self,
        enabled_capabilities: Sequence[str] = (),
        missing: Optional[Dict[str, List[str]]] = None,
        context: Optional[dict] = None,
    ):
        ctx: Dict[str, Any] = {"enabled_capabilities": sorted(enabled_capabilities)}
        if missing:
            ctx["missing"] = missing
        if context:
            ctx.update(context)
        super().__init__("No strategy is available for the current capabilities", ctx)
        self.enabled_capabilities = tuple(sorted(enabled_capabilities))
        self.missing = dict(missing or {})


# =============================================================================
# Attempt Errors (internal to the executor)
# =============================================================================

class AttemptTimeout(RecoverableError):
    """A single attempt lost the race against its timeout."""
    error_code = "ATTEMPT_TIMEOUT"
    category = ErrorCategory.EXECUTION
    kind = "timeout"

    def __init__(self, strategy: str, attempt: int, timeout_ms: int, context: Optional[dict] = None):
        ctx = {"strategy": strategy, "attempt": attempt, "timeout_ms": timeout_ms}
        if context:
            ctx.update(context)
        super().__init__(
            f"Strategy '{strategy}' attempt {attempt} timed out after {timeout_ms}ms", ctx
        )
        self.strategy = strategy
        self.attempt = attempt
        self.timeout_ms = timeout_ms


class AttemptFailure(RecoverableError):
    """A single attempt failed; wraps the error raised by the operation."""
    error_code = "ATTEMPT_FAILURE"
    category = ErrorCategory.EXECUTION

    def __init__(self, strategy: str, attempt: int, cause: BaseException, context: Optional[dict] = None):
        ctx = {"strategy": strategy, "attempt": attempt, "cause": type(cause).__name__}
        if context:
            ctx.update(context)
        super().__init__(f"Strategy '{strategy}' attempt {attempt} failed: {cause}", ctx)
        self.strategy = strategy
        self.attempt = attempt
        self.cause = cause
        self.__cause__ = cause

    @property
    def kind(self) -> str:
        return type(self.cause).__name__


@dataclass(frozen=True)
class StrategyFailure:
    """Per-strategy summary carried by AggregateFailure."""
    strategy: str
    attempts: int
    last_error: Optional[RecoverableError]

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "attempts": self.attempts,
            "last_error": str(self.last_error) if self.last_error else None,
            "error_kind": getattr(self.last_error, "kind", None),
        }


class AggregateFailure(IrrecoverableError):
    """Raised once every planned strategy has exhausted its retries."""
    error_code = "AGGREGATE_FAILURE"
    category = ErrorCategory.EXECUTION

    def __init__(self, failures: Sequence[StrategyFailure], context: Optional[dict] = None):
        failures = list(failures)
        ctx: Dict[str, Any] = {"failures": [f.to_dict() for f in failures]}
        if context:
            ctx.update(context)
        names = ", ".join(f.strategy for f in failures) or "none"
        last = failures[-1].last_error if failures else None
        msg = f"All strategies failed ({names})"
        if last is not None:
            msg += f": {last.message}"
        super().__init__(msg, ctx)
        self.failures = failures

    @property
    def total_attempts(self) -> int:
        return sum(f.attempts for f in self.failures)

    def attempts_for(self, strategy: str) -> int:
        for failure in self.failures:
            if failure.strategy == strategy:
                return failure.attempts
        return 0
