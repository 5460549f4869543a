from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def compute_runtime_s(
    started_at: Optional[datetime],
    finished_at: Optional[datetime],
    *,
    now: Optional[datetime] = None,
) -> float:
    """
    Compute runtime in seconds.

    Contract:
    - Runtime starts when the sync run enters Running (started_at).
    - A run that has not finished is measured up to `now`.
    """
    if started_at is None:
        return 0.0

    if now is None:
        now = datetime.now(timezone.utc)

    start = _ensure_utc(started_at)
    end = _ensure_utc(finished_at) if finished_at is not None else _ensure_utc(now)

    runtime_s = (end - start).total_seconds()
    return max(0.0, float(runtime_s))


def compute_items_per_minute(
    imported: int,
    upgraded: int,
    skipped: int,
    runtime_s: float,
) -> float:
    """
    items_per_minute = (imported + upgraded + skipped) / runtime * 60
    (runtime > 0)
    """
    if runtime_s <= 0:
        return 0.0

    total = int(imported) + int(upgraded) + int(skipped)
    return float(total) * 60.0 / float(runtime_s)
