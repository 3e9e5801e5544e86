"""
Paged tabular rendering of result frames.
"""

import base64
from typing import Optional, Union

import pandas as pd

from ...exceptions.query_exceptions import QueryValidationError
from .cursor import decode_cursor, encode_cursor
from .types import TabularOrient, TabularPage


def encode_frame(frame: pd.DataFrame, orient: TabularOrient) -> str:
    """Base64 of ``frame.to_json`` in the given orient, dates as ISO 8601."""
    payload = frame.to_json(orient=orient.value, date_format="iso")
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_page_data(data: str) -> str:
    """Inverse of the base64 step of ``encode_frame``; returns the JSON text."""
    return base64.b64decode(data.encode("ascii")).decode("utf-8")


def to_tabular(
    frame: pd.DataFrame,
    query_id: str,
    cursor: Optional[str] = None,
    orient: Union[TabularOrient, str] = TabularOrient.RECORDS,
    page_size: int = 1000,
) -> TabularPage:
    """
    Render one page of ``frame``.

    Raises:
        QueryValidationError: If the orient or page size is invalid
        InvalidCursorError: If the cursor is malformed or belongs to another query
    """
    try:
        orient = TabularOrient.parse(orient)
    except ValueError as e:
        raise QueryValidationError(str(e), {"field": "orient"}) from e
    if page_size < 1:
        raise QueryValidationError(f"page_size must be positive, got {page_size}")

    offset = decode_cursor(cursor, query_id) if cursor is not None else 0
    total_rows = len(frame)
    page = frame.iloc[offset:offset + page_size]

    end = offset + len(page)
    next_cursor = encode_cursor(query_id, end) if end < total_rows else None

    return TabularPage(
        data=encode_frame(page, orient),
        next_cursor=next_cursor,
        orient=orient,
        offset=offset,
        row_count=len(page),
        total_rows=total_rows,
    )
