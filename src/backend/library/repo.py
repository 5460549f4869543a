"""
Library queries.

Read helpers open their own connection. The write helpers that take a
``conn`` are meant to run inside one caller-owned transaction (see
IngestionWriter).
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .db import ensure_schema, open_db, utc_now_iso


@dataclass(frozen=True)
class UnavailablePost:
    source: str
    source_id: str
    seen_at: str
    reason: str
    sources: tuple[str, ...]

    def to_public_dict(self) -> dict:
        return {
            "source": self.source,
            "source_id": self.source_id,
            "seen_at": self.seen_at,
            "reason": self.reason,
            "sources": list(self.sources),
        }


@dataclass(frozen=True)
class ItemRow:
    item_id: int
    source: str
    source_id: str
    md5: Optional[str]
    file_rel: str
    ext: Optional[str]
    rating: Optional[str]
    fav_count: Optional[int]
    score_total: Optional[int]
    created_at: Optional[str]
    added_at: str
    primary_artist: Optional[str]
    trashed_at: Optional[str]


def normalize_tag(name: str) -> str:
    return name.strip().lower()


def insert_item(
    conn: sqlite3.Connection,
    *,
    source: str,
    source_id: str,
    md5: str,
    remote_url: Optional[str],
    file_rel: str,
    ext: str,
    rating: Optional[str],
    fav_count: Optional[int],
    score_total: Optional[int],
    created_at: Optional[str],
    primary_artist: Optional[str],
) -> int:
    cur = conn.execute(
        """
        INSERT INTO items(source, source_id, md5, remote_url, file_rel, ext, rating,
                          fav_count, score_total, created_at, added_at, primary_artist)
        VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            source,
            source_id,
            md5,
            remote_url,
            file_rel,
            ext,
            rating,
            fav_count,
            score_total,
            created_at,
            utc_now_iso(),
            primary_artist,
        ),
    )
    return int(cur.lastrowid)


def upsert_tag(conn: sqlite3.Connection, name: str, tag_type: str) -> int:
    # A specific category always wins over the catch-all "general".
    conn.execute(
        """
        INSERT INTO tags(name, type) VALUES(?, ?)
        ON CONFLICT(name) DO UPDATE SET
            type = CASE
                WHEN excluded.type <> 'general' THEN excluded.type
                ELSE tags.type
            END
        """,
        (name, tag_type),
    )
    row = conn.execute("SELECT tag_id FROM tags WHERE name = ?", (name,)).fetchone()
    return int(row["tag_id"])


def upsert_source(conn: sqlite3.Connection, url: str) -> int:
    conn.execute("INSERT INTO sources(url) VALUES(?) ON CONFLICT(url) DO NOTHING", (url,))
    row = conn.execute("SELECT source_row_id FROM sources WHERE url = ?", (url,)).fetchone()
    return int(row["source_row_id"])


def link_tags(conn: sqlite3.Connection, item_id: int, names: Iterable[str], tag_type: str) -> int:
    linked = 0
    for raw in names:
        name = normalize_tag(raw)
        if not name:
            continue
        tag_id = upsert_tag(conn, name, tag_type)
        conn.execute(
            "INSERT OR IGNORE INTO item_tags(item_id, tag_id) VALUES(?, ?)",
            (item_id, tag_id),
        )
        linked += 1
    return linked


def link_sources(conn: sqlite3.Connection, item_id: int, urls: Iterable[str]) -> int:
    linked = 0
    for raw in urls:
        url = (raw or "").strip()
        if not url:
            continue
        source_row_id = upsert_source(conn, url)
        conn.execute(
            "INSERT OR IGNORE INTO item_sources(item_id, source_row_id) VALUES(?, ?)",
            (item_id, source_row_id),
        )
        linked += 1
    return linked


class LibraryRepository:
    """Read-side queries plus the unavailable-posts log."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with open_db(self._db_path) as conn:
            ensure_schema(conn)

    def item_exists(self, source: str, source_id: str) -> bool:
        with open_db(self._db_path) as conn:
            row = conn.execute(
                "SELECT 1 FROM items WHERE source = ? AND source_id = ? AND trashed_at IS NULL LIMIT 1",
                (source, source_id),
            ).fetchone()
        return row is not None

    def hash_exists(self, md5: str) -> bool:
        with open_db(self._db_path) as conn:
            row = conn.execute(
                "SELECT 1 FROM items WHERE md5 = ? AND trashed_at IS NULL LIMIT 1",
                (md5.lower(),),
            ).fetchone()
        return row is not None

    def count_items(self) -> int:
        with open_db(self._db_path) as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM items WHERE trashed_at IS NULL").fetchone()
        return int(row["n"])

    def list_items(self) -> list[ItemRow]:
        with open_db(self._db_path) as conn:
            rows = conn.execute(
                """
                SELECT item_id, source, source_id, md5, file_rel, ext, rating, fav_count,
                       score_total, created_at, added_at, primary_artist, trashed_at
                FROM items ORDER BY item_id
                """
            ).fetchall()
        return [ItemRow(**dict(r)) for r in rows]

    def item_tags(self, item_id: int) -> dict[str, str]:
        """tag name -> tag type for one item."""
        with open_db(self._db_path) as conn:
            rows = conn.execute(
                """
                SELECT t.name, t.type FROM tags t
                JOIN item_tags it ON it.tag_id = t.tag_id
                WHERE it.item_id = ?
                """,
                (item_id,),
            ).fetchall()
        return {r["name"]: r["type"] for r in rows}

    def item_source_urls(self, item_id: int) -> list[str]:
        with open_db(self._db_path) as conn:
            rows = conn.execute(
                """
                SELECT s.url FROM sources s
                JOIN item_sources its ON its.source_row_id = s.source_row_id
                WHERE its.item_id = ?
                ORDER BY s.url
                """,
                (item_id,),
            ).fetchall()
        return [r["url"] for r in rows]

    def upsert_unavailable(
        self,
        *,
        source: str,
        source_id: str,
        reason: str,
        sources: Sequence[str] = (),
    ) -> None:
        with open_db(self._db_path) as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO unavailable_posts(source, source_id, seen_at, reason, sources_json)
                    VALUES(?, ?, ?, ?, ?)
                    ON CONFLICT(source, source_id) DO UPDATE SET
                        seen_at = excluded.seen_at,
                        reason = excluded.reason,
                        sources_json = excluded.sources_json
                    """,
                    (source, source_id, utc_now_iso(), reason, json.dumps(list(sources))),
                )

    def list_unavailable(self, limit: int = 100) -> list[UnavailablePost]:
        with open_db(self._db_path) as conn:
            rows = conn.execute(
                """
                SELECT source, source_id, seen_at, reason, sources_json
                FROM unavailable_posts
                ORDER BY seen_at DESC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()

        out: list[UnavailablePost] = []
        for r in rows:
            try:
                sources = json.loads(r["sources_json"] or "[]")
            except ValueError:
                sources = []
            out.append(
                UnavailablePost(
                    source=r["source"],
                    source_id=r["source_id"],
                    seen_at=r["seen_at"],
                    reason=r["reason"],
                    sources=tuple(str(s) for s in sources if isinstance(s, str)),
                )
            )
        return out
