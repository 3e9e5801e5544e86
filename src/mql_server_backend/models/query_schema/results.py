"""
Result series value objects.

ResultDatum is a closed tagged union keyed by ``kind``. Every variant
exposes ``y``; each adds its own axis field (or none).
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

ALL_SERIES_VALUE = "ALL"


def _json_number(value: float) -> Optional[float]:
    return None if math.isnan(value) else value


@dataclass(frozen=True)
class TimeSeriesDatum:
    """A metric value at a point in time."""
    y: float
    x_date: datetime
    kind: str = field(default="time_series", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "y": _json_number(self.y), "x_date": self.x_date.isoformat()}


@dataclass(frozen=True)
class ScalarDatum:
    """A metric value without a time axis."""
    y: float
    kind: str = field(default="scalar", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "y": _json_number(self.y)}


ResultDatum = Union[TimeSeriesDatum, ScalarDatum]


@dataclass
class MqlQueryResultSeries:
    """
    One series per distinct combination of cut dimension values.

    Attributes:
        series_value: "ALL" when there is no dimensional cut, otherwise the cut's value
        data: Ordered result points
    """
    series_value: str
    data: List[ResultDatum] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "series_value": self.series_value,
            "data": [datum.to_dict() for datum in self.data],
        }
