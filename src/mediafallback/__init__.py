"""
MediaFallback - Adaptive Multi-Strategy Media Delivery
======================================================

A resilience engine that chooses between alternative media delivery
strategies (webrtc, proxy, transcode, direct), races every attempt against a
timeout, retries with backoff, falls back to the next strategy on exhaustion
and adapts future ordering from live network conditions and success-rate
telemetry.

Main Packages:
    - core: catalog, metrics store, selector, executor, engine, config
    - cli: command-line inspection of plans and network classification

Quick Start:
    from mediafallback.core import FallbackEngine, static_capabilities

    engine = FallbackEngine(static_capabilities("proxy_server"))
    result = await engine.execute(play, network="medium")

Version: 1.0.0
"""

__version__ = "1.0.0"
