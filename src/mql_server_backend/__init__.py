"""
MQL server backend.

Execution and caching engine behind a metric-query service: asynchronous
query lifecycle, fingerprint-keyed result cache, constraint evaluation,
paginated result materialization and health aggregation.
"""

__version__ = "0.1.0"
