"""
Value coercion helpers shared by constraint validation and evaluation.

SET membership compares textual forms. RANGE bounds compare as numbers when
all operands are numeric, as datetimes when all operands parse as ISO dates,
and as strings otherwise.
"""

from datetime import date, datetime, time, timezone
from numbers import Number
from typing import Any, Optional, Tuple

_NUMBER = "number"
_DATETIME = "datetime"
_TEXT = "text"


def as_text(value: Any) -> str:
    """Render a dimension value the way SET values are written."""
    if isinstance(value, datetime):
        naive = _to_naive(value)
        if naive.time() == time(0, 0):
            return naive.date().isoformat()
        return naive.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_datetime(text: str) -> Optional[datetime]:
    try:
        return _to_naive(datetime.fromisoformat(text.strip()))
    except ValueError:
        return None


def _coerce(value: Any) -> Tuple[str, Any]:
    if isinstance(value, bool):
        return _TEXT, as_text(value)
    if isinstance(value, Number):
        return _NUMBER, float(value)
    if isinstance(value, datetime):
        return _DATETIME, _to_naive(value)
    if isinstance(value, date):
        return _DATETIME, datetime.combine(value, time(0, 0))
    text = str(value)
    try:
        return _NUMBER, float(text)
    except ValueError:
        pass
    parsed = _parse_datetime(text)
    if parsed is not None:
        return _DATETIME, parsed
    return _TEXT, text


def comparable(*values: Any) -> Tuple[Any, ...]:
    """
    Coerce values to a common comparable type.

    Falls back to text when the operands do not share a parsed type.
    """
    coerced = [_coerce(v) for v in values]
    kinds = {kind for kind, _ in coerced}
    if len(kinds) == 1:
        return tuple(v for _, v in coerced)
    return tuple(as_text(v) for v in values)


def in_range(value: Any, start: Any, stop: Any) -> bool:
    """Inclusive range test."""
    v, lo, hi = comparable(value, start, stop)
    return lo <= v <= hi


def is_missing(value: Any) -> bool:
    """True for None and NaN-like values."""
    if value is None:
        return True
    try:
        return value != value  # NaN, NaT
    except (TypeError, ValueError):
        return False
