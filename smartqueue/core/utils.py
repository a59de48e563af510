"""Small helpers shared by the store and the smart sort services."""

import re
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")

# Postgres text output: any number of fraction digits, "+HH" offsets
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")
_HOUR_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)([+-]\d{2})$")


def chunked(items: Sequence[T], chunk_size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most chunk_size items (minimum 1)."""
    size = max(1, int(chunk_size))
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def unique(values) -> List[Any]:
    """Drop falsy values and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def _normalize_iso(text: str) -> str:
    text = text.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)
    return _HOUR_OFFSET.sub(r"\1\2:00", text)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Coerce a stored timestamp into an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC) and ISO-8601 strings,
    including a trailing 'Z' and Postgres text forms such as
    '2025-01-02 03:04:05.12345+00'. Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(_normalize_iso(value))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_epoch_ms(value: Any) -> float:
    """Milliseconds since the epoch, or 0.0 when the value cannot be parsed."""
    dt = parse_timestamp(value)
    if dt is None:
        return 0.0
    try:
        return dt.timestamp() * 1000.0
    except (OverflowError, OSError, ValueError):
        return 0.0


def from_epoch_ms(value: Optional[float]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
