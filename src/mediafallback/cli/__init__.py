"""
MediaFallback CLI - Command Line Interface

Provides terminal commands for:
- Listing the configured strategy catalog
- Printing the execution plan for a capability set and network
- Classifying a network sample
- Simulating a fallback run
"""

from .main import cli

__all__ = ["cli"]
