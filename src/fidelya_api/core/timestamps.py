"""Conversion of stored date values into timezone-aware instants.

Dates reach the services from several places: SQLAlchemy columns (SQLite hands
back naive datetimes), JSON payloads (ISO strings or epoch numbers) and store
client objects that wrap their own timestamp type. ``to_instant`` is the single
conversion used wherever a date crosses the store boundary.

Precedence is fixed:

1. store timestamps exposing ``to_datetime()``
2. native ``datetime`` / ``date`` values
3. numbers (epoch seconds, or epoch milliseconds when the magnitude says so)
   and strings (ISO-8601, ``Z`` suffix accepted, or numeric strings)
4. anything else raises ``ValueError``

Naive values are interpreted as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable


# Epoch values above this are milliseconds (year 5138 in seconds).
_MILLISECOND_THRESHOLD = 100_000_000_000


@runtime_checkable
class SupportsToDatetime(Protocol):
    def to_datetime(self) -> datetime:
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _from_epoch(value: float) -> datetime:
    seconds = value / 1000 if abs(value) >= _MILLISECOND_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"Epoch value out of range: {value!r}") from exc


def to_instant(value: Any) -> datetime:
    """Convert ``value`` into an aware ``datetime`` or raise ``ValueError``."""

    if isinstance(value, SupportsToDatetime):
        return _ensure_aware(value.to_datetime())

    if isinstance(value, datetime):
        return _ensure_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if isinstance(value, bool):
        raise ValueError("Boolean values are not timestamps")
    if isinstance(value, (int, float, Decimal)):
        return _from_epoch(float(value))

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp string")
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError(f"Unparseable timestamp: {value!r}") from exc
        return _ensure_aware(parsed)

    raise ValueError(f"Unsupported timestamp value: {type(value).__name__}")


def to_optional_instant(value: Any) -> datetime | None:
    """Like ``to_instant`` but maps ``None`` to ``None``."""

    if value is None:
        return None
    return to_instant(value)


__all__ = ["SupportsToDatetime", "to_instant", "to_optional_instant", "utcnow"]
