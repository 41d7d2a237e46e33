from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def iso_utc_timestamp(now: Optional[datetime] = None) -> str:
    """
    Format like "2025-12-26T14:03:07.512Z" (UTC, millisecond precision).

    Naive datetimes are assumed to already be UTC. The fixed width keeps the strings sortable.
    """
    dt = now or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
