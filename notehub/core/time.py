"""
Utilidades de fecha/hora. Todo se guarda en UTC (timezone-aware).
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Asegura timezone-aware en UTC (Mongo puede devolver fechas naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    return (now or now_utc()) - timedelta(days=days)


def iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return as_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
