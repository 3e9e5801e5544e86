"""
Core engine components.

Subpackages:
    constraints: Constraint tree parsing, normalization and evaluation
    cache_store: Fingerprint-keyed result cache
    query_manager: Query lifecycle and asynchronous execution
    result_materializer: Series, tabular pages and table materialization
    health: Component health aggregation
"""
