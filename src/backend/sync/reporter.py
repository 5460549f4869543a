"""
Live, pollable progress for one sync kind.

Every method takes the lock, touches a few fields and releases it. Nothing
here blocks or awaits, so the worker can never hold the lock across a
network call or file write.
"""

from __future__ import annotations

import dataclasses
import threading
from typing import Optional

from src.shared.errors import SyncAlreadyRunningError
from src.shared.task_status import SyncPhase

from .models import SyncSession, utc_now


COUNTER_FIELDS = frozenset(
    {
        "scanned_pages",
        "scanned_candidates",
        "skipped_existing",
        "skipped_by_hash",
        "attempted",
        "imported",
        "upgraded",
        "failed",
        "unavailable",
    }
)


class StatusReporter:
    def __init__(self, *, kind: str) -> None:
        self._lock = threading.Lock()
        self._session = SyncSession(kind=kind)

    @property
    def kind(self) -> str:
        return self._session.kind

    def snapshot(self) -> SyncSession:
        with self._lock:
            return dataclasses.replace(self._session)

    def is_running(self) -> bool:
        with self._lock:
            return self._session.running

    def begin(self, *, max_new_items: Optional[int] = None) -> SyncSession:
        """Reset to a fresh running session; rejects if one is already running."""
        with self._lock:
            if self._session.running:
                raise SyncAlreadyRunningError(f"{self._session.kind} sync already running")
            self._session = SyncSession(
                kind=self._session.kind,
                phase=SyncPhase.RUNNING,
                running=True,
                max_new_items=max_new_items,
                current_message="Starting...",
                started_at=utc_now(),
            )
            return dataclasses.replace(self._session)

    def increment(self, **deltas: int) -> None:
        unknown = set(deltas) - COUNTER_FIELDS
        if unknown:
            raise KeyError(f"unknown counters: {sorted(unknown)}")
        with self._lock:
            for name, delta in deltas.items():
                setattr(self._session, name, getattr(self._session, name) + int(delta))

    def set_message(self, message: str) -> None:
        with self._lock:
            self._session.current_message = message

    def record_error(self, message: str) -> None:
        with self._lock:
            self._session.last_error = message

    def request_cancel(self) -> SyncSession:
        with self._lock:
            self._session.cancelled = True
            if self._session.running:
                self._session.phase = SyncPhase.STOPPING
                self._session.current_message = "Cancel requested"
            return dataclasses.replace(self._session)

    def stop_reason(self) -> Optional[str]:
        """'cancelled' / 'limit' when the worker must not start more work."""
        with self._lock:
            if self._session.cancelled:
                return "cancelled"
            if self._session.cap_reached():
                return "limit"
            return None

    def finish(self, phase: SyncPhase, *, error: Optional[str] = None, message: Optional[str] = None) -> bool:
        """
        Move to a terminal phase. Only the first call has an effect.

        Returns True if this call performed the transition.
        """
        if not phase.is_terminal():
            raise ValueError(f"{phase} is not a terminal phase")
        with self._lock:
            if not self._session.running:
                return False
            self._session.running = False
            self._session.phase = phase
            self._session.finished_at = utc_now()
            if error is not None:
                self._session.last_error = error
            self._session.current_message = message or phase.value
            return True
