from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

__all__ = ["utc_now", "ensure_aware_utc"]

def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)

def ensure_aware_utc(dt: datetime | None) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware in UTC (naive input is assumed to already be UTC).

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)`` columns,
    so anything read from the database goes through here before comparison.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
