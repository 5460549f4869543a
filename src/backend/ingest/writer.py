"""
Atomic persistence of one archived item.

Order of operations:
1. Write bytes to <root>/cache/tmp/ (fsync), then os.replace() into media/.
   A partially written file is never visible at its final path.
2. One SQLite transaction: item row + typed tags + source URL links.
   If the transaction fails, the media file written in step 1 is removed, so
   no orphan file and no half item remain.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from src.shared.errors import DuplicateItemError, PersistenceError

from ..fs.naming import UNKNOWN_ARTIST, generate_media_filename, sanitize_slug
from ..fs.storage import LibraryStorage
from ..library.db import open_db
from ..library.repo import insert_item, link_sources, link_tags
from ..scraper.models import MediaDetail


MAX_DUP_SUFFIX = 1000

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewItem:
    """Item row about to be inserted (identity + content key)."""
    source_kind: str
    source_id: str
    content_hash: str
    ext: str
    primary_artist: str = UNKNOWN_ARTIST

    @classmethod
    def from_detail(cls, detail: MediaDetail, content_hash: str) -> "NewItem":
        return cls(
            source_kind=detail.source_kind,
            source_id=detail.source_id,
            content_hash=content_hash.lower(),
            ext=detail.ext,
            primary_artist=sanitize_slug(detail.primary_artist or UNKNOWN_ARTIST),
        )


class IngestionWriter:
    """
    Writes media files and item rows for one library.

    One instance is shared by every sync kind so filename reservation is
    serialized across concurrent runs.
    """

    def __init__(self, *, storage: LibraryStorage, db_path: Path) -> None:
        self._storage = storage
        self._db_path = Path(db_path)
        self._name_lock = threading.Lock()

    def persist(
        self,
        item: NewItem,
        detail: MediaDetail,
        content: bytes,
        *,
        provenance_urls: Iterable[str] = (),
    ) -> int:
        """
        Persist one item. Returns the new item_id.

        Raises:
            DuplicateItemError: identity or hash already taken by a live item.
            PersistenceError: disk or database failure.
        """
        try:
            paths = self._storage.ensure_layout()
            tmp_path = self._write_temp(paths.tmp, content)
        except OSError as exc:
            raise PersistenceError(f"write failed for {item.source_kind}#{item.source_id}: {exc}") from exc

        try:
            final_path = self._move_into_media(tmp_path, paths.media, item)
        except (OSError, ValueError) as exc:
            self._discard(tmp_path)
            raise PersistenceError(f"move failed for {item.source_kind}#{item.source_id}: {exc}") from exc

        file_rel = self._storage.relative_media_path(final_path.name)
        source_urls = [detail.canonical_url, *detail.external_source_urls, *provenance_urls]

        try:
            with open_db(self._db_path) as conn:
                with conn:
                    item_id = insert_item(
                        conn,
                        source=item.source_kind,
                        source_id=item.source_id,
                        md5=item.content_hash,
                        remote_url=detail.download_url,
                        file_rel=file_rel,
                        ext=item.ext,
                        rating=detail.rating,
                        fav_count=detail.fav_count,
                        score_total=detail.score_total,
                        created_at=detail.created_at,
                        primary_artist=item.primary_artist,
                    )
                    for category, names in detail.tags.by_category():
                        link_tags(conn, item_id, names, category)
                    link_sources(conn, item_id, _unique(source_urls))
        except sqlite3.IntegrityError as exc:
            self._discard(final_path)
            raise DuplicateItemError(
                f"{item.source_kind}#{item.source_id} already in library: {exc}",
                by_hash="items.md5" in str(exc),
            ) from exc
        except sqlite3.Error as exc:
            self._discard(final_path)
            raise PersistenceError(f"transaction failed for {item.source_kind}#{item.source_id}: {exc}") from exc

        logger.debug("persisted %s#%s as %s (item %d)", item.source_kind, item.source_id, file_rel, item_id)
        return item_id

    def _write_temp(self, tmp_dir: Path, content: bytes) -> Path:
        fd, tmp_path_str = tempfile.mkstemp(dir=str(tmp_dir), suffix=".part")
        tmp_path = Path(tmp_path_str)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        except OSError:
            self._discard(tmp_path)
            raise
        return tmp_path

    def _move_into_media(self, tmp_path: Path, media_dir: Path, item: NewItem) -> Path:
        with self._name_lock:
            for dup_index in range(MAX_DUP_SUFFIX):
                name = generate_media_filename(
                    item.primary_artist,
                    item.source_kind,
                    item.source_id,
                    item.ext,
                    dup_index=dup_index,
                )
                final_path = media_dir / name
                if not final_path.exists():
                    os.replace(tmp_path, final_path)
                    return final_path
        raise OSError(f"no free filename for {item.source_kind}#{item.source_id}")

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("could not remove %s: %s", path, exc)


def _unique(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            out.append(url)
    return out
