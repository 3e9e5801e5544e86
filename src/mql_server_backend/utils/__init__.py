"""
Utilities package for the MQL server backend.

This package contains configuration and logging helpers used throughout
the engine.
"""

from .config import ConfigManager, ConfigPaths

__all__ = [
    "ConfigManager",
    "ConfigPaths",
]
