"""
Service layer for the MQL server backend.
"""

from .mql_service import MqlService, create_service, error_payload

__all__ = [
    "MqlService",
    "create_service",
    "error_payload",
]
