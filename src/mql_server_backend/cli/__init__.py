"""
MQL server CLI package.

Operator commands for running queries against local datasets, inspecting
fingerprints, probing health and showing configuration.
"""

from .cli import app, cli_main

__all__ = ["app", "cli_main"]
