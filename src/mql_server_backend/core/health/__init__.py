"""
Component health aggregation.
"""

from .types import HealthReportItem, HealthStatus
from .aggregator import HealthAggregator, default_probes

__all__ = [
    "HealthReportItem",
    "HealthStatus",
    "HealthAggregator",
    "default_probes",
]
