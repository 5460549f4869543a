"""
Sync phase enum shared across backend modules and tests.

State machine:
    Idle -> Running -> {Stopping -> Stopped, Completed, Failed}
"""

from __future__ import annotations

from enum import Enum


class SyncPhase(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    COMPLETED = "Completed"
    FAILED = "Failed"

    def is_active(self) -> bool:
        return self in (SyncPhase.RUNNING, SyncPhase.STOPPING)

    def is_terminal(self) -> bool:
        return self in (SyncPhase.STOPPED, SyncPhase.COMPLETED, SyncPhase.FAILED)
