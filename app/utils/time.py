from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime:
    """
    Garante datetime timezone-aware em UTC.

    O SQLite devolve datetimes "naive"; tratamos como UTC.
    """
    if dt is None:
        return utcnow()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def elapsed_seconds(started_at: datetime, ended_at: datetime) -> int:
    """Segundos inteiros (floor) entre os dois instantes, nunca negativo."""
    delta = ensure_utc(ended_at) - ensure_utc(started_at)
    return max(0, int(delta.total_seconds()))
