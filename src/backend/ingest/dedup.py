"""
Two-tier deduplication against the library database.

1. Identity: is there a live item with the same (source, source_id)?
   Checked before any network fetch for the candidate.
2. Content: is there a live item whose MD5 matches the downloaded bytes?
   Checked after download, before anything is written.

Trashed items never count as duplicates. A failed lookup raises
PersistenceError, which only skips the candidate being checked.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum

from src.shared.errors import PersistenceError

from ..library.repo import LibraryRepository


class DedupResult(str, Enum):
    """Result of a deduplication check."""
    NEW = "new"
    DUPLICATE_IDENTITY = "duplicate_identity"
    DUPLICATE_HASH = "duplicate_hash"


@dataclass
class DedupIndex:
    """
    Thin policy layer over LibraryRepository lookups.

    Usage:
        index = DedupIndex(repo)
        if index.check_identity("e621", "123") is DedupResult.DUPLICATE_IDENTITY:
            skipped_existing += 1
        ...
        if index.check_hash(md5) is DedupResult.DUPLICATE_HASH:
            skipped_by_hash += 1
    """

    repo: LibraryRepository

    def check_identity(self, source_kind: str, source_id: str) -> DedupResult:
        try:
            exists = self.repo.item_exists(source_kind, source_id)
        except sqlite3.Error as exc:
            raise PersistenceError(f"identity lookup failed for {source_kind}#{source_id}: {exc}") from exc
        return DedupResult.DUPLICATE_IDENTITY if exists else DedupResult.NEW

    def check_hash(self, content_hash: str) -> DedupResult:
        try:
            exists = self.repo.hash_exists(content_hash.lower())
        except sqlite3.Error as exc:
            raise PersistenceError(f"hash lookup failed for {content_hash}: {exc}") from exc
        return DedupResult.DUPLICATE_HASH if exists else DedupResult.NEW
