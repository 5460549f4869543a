from __future__ import annotations

from .metrics import compute_items_per_minute, compute_runtime_s

__all__ = [
    "compute_items_per_minute",
    "compute_runtime_s",
]
