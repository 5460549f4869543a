"""
Ingestion: deduplication, cross-source upgrade and atomic persistence.
"""

from .dedup import DedupIndex, DedupResult
from .upgrade import UpgradeMatcher
from .writer import IngestionWriter, NewItem

__all__ = [
    "DedupIndex",
    "DedupResult",
    "UpgradeMatcher",
    "IngestionWriter",
    "NewItem",
]
