"""
Query lifecycle management package.

Modules:
    types: MqlQuery record, QueryLog and QuerySummary
    lifecycle: Status state machine
    post_processors: Named result transforms
    executor: Bounded worker pool
    manager: QueryManager orchestration
"""

from .types import MqlQuery, QueryLog, QuerySummary
from .lifecycle import LEGAL_TRANSITIONS, can_transition, check_transition
from .post_processors import (
    PostProcessContext,
    apply_post_processors,
    available_post_processors,
    register_post_processor,
    validate_post_processors,
)
from .executor import QueryExecutor
from .manager import QueryManager

__all__ = [
    "MqlQuery",
    "QueryLog",
    "QuerySummary",
    "LEGAL_TRANSITIONS",
    "can_transition",
    "check_transition",
    "PostProcessContext",
    "apply_post_processors",
    "available_post_processors",
    "register_post_processor",
    "validate_post_processors",
    "QueryExecutor",
    "QueryManager",
]
