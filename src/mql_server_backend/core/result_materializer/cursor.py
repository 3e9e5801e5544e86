"""
Opaque pagination cursors.

A cursor is urlsafe base64 of a small JSON document binding a query id to a
row offset. It carries no secret; it is only valid while the query is
retained.
"""

import base64
import binascii
import json
from typing import Tuple

from ...exceptions.query_exceptions import InvalidCursorError

CURSOR_VERSION = 1


def encode_cursor(query_id: str, offset: int) -> str:
    document = {"v": CURSOR_VERSION, "q": query_id, "o": offset}
    raw = json.dumps(document, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str, query_id: str) -> int:
    """
    Return the row offset stored in ``cursor``.

    Raises:
        InvalidCursorError: If the cursor is malformed or was issued for a
            different query
    """
    cursor_query_id, offset = _parse(cursor)
    if cursor_query_id != query_id:
        raise InvalidCursorError("Cursor was issued for a different query", cursor)
    return offset


def _parse(cursor: str) -> Tuple[str, int]:
    if not isinstance(cursor, str) or not cursor:
        raise InvalidCursorError("Cursor must be a non-empty string")
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii"))
        document = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursorError(f"Malformed cursor: {e}", cursor) from e

    if not isinstance(document, dict) or document.get("v") != CURSOR_VERSION:
        raise InvalidCursorError("Unsupported cursor format", cursor)

    query_id = document.get("q")
    offset = document.get("o")
    if not isinstance(query_id, str) or not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise InvalidCursorError("Malformed cursor contents", cursor)
    return query_id, offset
