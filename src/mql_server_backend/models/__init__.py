"""
Domain models for the MQL server backend.
"""

from .query_schema import *  # noqa: F401,F403
from .query_schema import __all__ as _query_schema_all

__all__ = list(_query_schema_all)
