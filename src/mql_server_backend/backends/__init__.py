"""
External collaborator ports and their in-memory implementations.
"""

from .protocols import (
    ExecutionBackend,
    ExecutionRequest,
    LogCallback,
    ModelRepository,
    TableLocation,
    TableStore,
)
from .in_memory import (
    InMemoryDataset,
    InMemoryExecutionBackend,
    InMemoryModelRepository,
    InMemoryTableStore,
    MetricDefinition,
)

__all__ = [
    "ExecutionBackend",
    "ExecutionRequest",
    "LogCallback",
    "ModelRepository",
    "TableLocation",
    "TableStore",
    "InMemoryDataset",
    "InMemoryExecutionBackend",
    "InMemoryModelRepository",
    "InMemoryTableStore",
    "MetricDefinition",
]
