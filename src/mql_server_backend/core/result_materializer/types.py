"""
Types for result materialization.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TabularOrient(Enum):
    """JSON layouts accepted by pandas ``DataFrame.to_json``."""
    SPLIT = "split"
    RECORDS = "records"
    INDEX = "index"
    COLUMNS = "columns"
    VALUES = "values"
    TABLE = "table"

    @classmethod
    def parse(cls, value: Any) -> "TabularOrient":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid orient '{value}'. Expected one of: {', '.join(o.value for o in cls)}"
            )


@dataclass(frozen=True)
class TabularPage:
    """
    One page of a tabular result.

    Attributes:
        data: Base64 of the page's JSON in the requested orient
        next_cursor: Token for the following page, None on the last page
        orient: Orient used for ``data``
        offset: Row offset of the page
        row_count: Rows in this page
        total_rows: Rows in the full result
    """
    data: str
    next_cursor: Optional[str]
    orient: TabularOrient = TabularOrient.RECORDS
    offset: int = 0
    row_count: int = 0
    total_rows: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "next_cursor": self.next_cursor,
            "orient": self.orient.value,
            "offset": self.offset,
            "row_count": self.row_count,
            "total_rows": self.total_rows,
        }


@dataclass(frozen=True)
class MaterializationResult:
    """Where a materialized result was written."""
    schema: str
    table: str
    query_id: Optional[str] = None
    row_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema,
            "table": self.table,
            "query_id": self.query_id,
            "row_count": self.row_count,
        }
