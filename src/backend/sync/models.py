from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from src.shared.stats import compute_items_per_minute, compute_runtime_s
from src.shared.task_status import SyncPhase


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class SyncSession:
    """
    Ephemeral progress record of one sync run (never persisted).

    Only the worker mutates it, through StatusReporter; everyone else gets
    copies.
    """
    kind: str
    phase: SyncPhase = SyncPhase.IDLE
    running: bool = False
    cancelled: bool = False
    max_new_items: Optional[int] = None

    scanned_pages: int = 0
    scanned_candidates: int = 0
    skipped_existing: int = 0
    skipped_by_hash: int = 0
    attempted: int = 0
    imported: int = 0
    upgraded: int = 0
    failed: int = 0
    unavailable: int = 0

    last_error: Optional[str] = None
    current_message: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def cap_reached(self) -> bool:
        return self.max_new_items is not None and self.attempted >= self.max_new_items

    def to_public_dict(self, *, now: Optional[datetime] = None) -> dict[str, Any]:
        runtime_s = compute_runtime_s(self.started_at, self.finished_at, now=now)
        return {
            "kind": self.kind,
            "phase": self.phase.value,
            "running": self.running,
            "cancelled": self.cancelled,
            "max_new_items": self.max_new_items,
            "scanned_pages": self.scanned_pages,
            "scanned_candidates": self.scanned_candidates,
            "skipped_existing": self.skipped_existing,
            "skipped_by_hash": self.skipped_by_hash,
            "attempted": self.attempted,
            "imported": self.imported,
            "upgraded": self.upgraded,
            "failed": self.failed,
            "unavailable": self.unavailable,
            "last_error": self.last_error,
            "current_message": self.current_message,
            "started_at": format_utc_z(self.started_at),
            "finished_at": format_utc_z(self.finished_at),
            "runtime_s": runtime_s,
            "items_per_minute": compute_items_per_minute(
                self.imported,
                self.upgraded,
                self.skipped_existing + self.skipped_by_hash,
                runtime_s,
            ),
        }
