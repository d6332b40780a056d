"""
Log setup for the fallback engine.

Every module logs through ``loguru.logger``. The engine reports selections,
attempt outcomes, retries, fallbacks, discarded late results and exhaustion.
``configure_logging`` decides where those lines go:

    configure_logging(level="DEBUG")                      # coloured text on stderr
    configure_logging(json_format=True, sink="fb.jsonl")  # one JSON record per line

Records from stdlib loggers (asyncio included) are forwarded to the same sink.
The CLI calls this once per invocation with the ``observability`` config.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from loguru import logger

_CONFIGURED = False

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
    "<level>{message}</level>"
)


class _StdlibForwarder(logging.Handler):
    """Re-emits stdlib ``LogRecord``s through loguru at the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the original call site.
        depth = 2
        frame = logging.currentframe()
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    *,
    sink: Optional[str] = None,
    enqueue: bool = True,
) -> None:
    """
    Replace every loguru sink with a single engine sink.

    Args:
        level: Minimum level; falls back to ``LOG_LEVEL`` and then INFO.
        json_format: Serialised records instead of text; falls back to
            ``LOG_FORMAT=json``.
        sink: File path to write to; stderr when omitted.
        enqueue: Write from a background thread. The CLI passes False so
            output is flushed before the process exits.
    """
    global _CONFIGURED

    if json_format is None:
        json_format = os.environ.get("LOG_FORMAT", "").lower() == "json"
    level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    logger.remove()
    logger.add(
        sink or sys.stderr,
        level=level,
        format="{message}" if json_format else _TEXT_FORMAT,
        serialize=json_format,
        colorize=not json_format and sink is None,
        enqueue=enqueue,
        diagnose=False,
    )

    logging.basicConfig(handlers=[_StdlibForwarder()], level=0, force=True)
    logging.getLogger("asyncio").setLevel(level)

    _CONFIGURED = True
    logger.debug(f"Engine logging ready (level={level}, json={json_format})")


def is_configured() -> bool:
    return _CONFIGURED


__all__ = ["configure_logging", "is_configured", "logger"]
