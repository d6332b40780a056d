import os
import sys
from pathlib import Path

import pytest
from loguru import logger


# Ensure local src/ package imports work without editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from mediafallback.core.catalog import Strategy  # noqa: E402
from mediafallback.core.config import reset_config  # noqa: E402
from mediafallback.core.metrics_store import MetricsStore  # noqa: E402
from mediafallback.core.selector import PlannedStrategy  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow-running (use pytest -m 'not slow' to skip)"
    )


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Reset the config singleton, MEDIAFALLBACK_* env vars and loguru sinks."""
    for key in list(os.environ):
        if key.startswith("MEDIAFALLBACK_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
    logger.remove()


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def metrics():
    """Fresh metrics store with default parameters."""
    return MetricsStore()


class SleepRecorder:
    """Stand-in for asyncio.sleep that records backoff delays (seconds)."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


def make_strategy(name, priority=1, timeout_ms=1000, max_retries=1, requires=()):
    return Strategy(
        name=name,
        priority=priority,
        timeout_ms=timeout_ms,
        max_retries=max_retries,
        required_capabilities=frozenset(requires),
    )


def planned(strategy, timeout_ms=None, retries=None):
    """Plan entry using the strategy's own budget unless overridden."""
    return PlannedStrategy(
        strategy=strategy,
        effective_timeout_ms=timeout_ms if timeout_ms is not None else strategy.timeout_ms,
        effective_retries=retries if retries is not None else strategy.max_retries,
    )
