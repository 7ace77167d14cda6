from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize to tz-aware UTC. Naive values (SQLite round-trips) are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return as_utc(dt).isoformat().replace('+00:00', 'Z')


def parse_datetime(value) -> Optional[datetime]:
    """Parse ISO-8601 strings (``Z`` suffix allowed) or pass datetimes through, as UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value).replace('Z', '+00:00')))
    except ValueError:
        return None


__all__ = ['utcnow', 'as_utc', 'isoformat_z', 'parse_datetime']
