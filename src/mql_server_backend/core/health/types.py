"""
Types for component health reporting.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class HealthStatus(Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"


@dataclass(frozen=True)
class HealthReportItem:
    """Outcome of one health probe."""
    name: str
    status: HealthStatus
    error_message: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "error_message": self.error_message,
            "duration_seconds": round(self.duration_seconds, 6),
        }
