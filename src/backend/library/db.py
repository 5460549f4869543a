"""Low-level SQLite helpers for the library database."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator


BUSY_TIMEOUT_MS = 5000


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT_MS / 1000)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def open_db(db_path: Path | str) -> Iterator[sqlite3.Connection]:
    """
    Short-lived connection; one per operation.

    Callers that need a transaction wrap their statements in ``with conn:``.
    """
    conn = connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Uniqueness only binds live rows: a trashed item must not block
    # re-importing the same post or file.
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS items (
            item_id        INTEGER PRIMARY KEY,
            source         TEXT NOT NULL,
            source_id      TEXT NOT NULL,
            md5            TEXT,
            remote_url     TEXT,
            file_rel       TEXT NOT NULL,
            ext            TEXT,
            rating         TEXT,
            fav_count      INTEGER,
            score_total    INTEGER,
            created_at     TEXT,
            added_at       TEXT NOT NULL,
            primary_artist TEXT,
            trashed_at     TEXT
        );

        CREATE UNIQUE INDEX IF NOT EXISTS ux_items_identity_live
            ON items(source, source_id) WHERE trashed_at IS NULL;
        CREATE UNIQUE INDEX IF NOT EXISTS ux_items_md5_live
            ON items(md5) WHERE trashed_at IS NULL AND md5 IS NOT NULL;
        CREATE INDEX IF NOT EXISTS idx_items_added_at ON items(added_at);
        CREATE INDEX IF NOT EXISTS idx_items_trashed_at ON items(trashed_at);

        CREATE TABLE IF NOT EXISTS tags (
            tag_id INTEGER PRIMARY KEY,
            name   TEXT NOT NULL UNIQUE,
            type   TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS item_tags (
            item_id INTEGER NOT NULL,
            tag_id  INTEGER NOT NULL,
            PRIMARY KEY (item_id, tag_id),
            FOREIGN KEY (item_id) REFERENCES items(item_id) ON DELETE CASCADE,
            FOREIGN KEY (tag_id)  REFERENCES tags(tag_id)  ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS sources (
            source_row_id INTEGER PRIMARY KEY,
            url           TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS item_sources (
            item_id       INTEGER NOT NULL,
            source_row_id INTEGER NOT NULL,
            PRIMARY KEY (item_id, source_row_id),
            FOREIGN KEY (item_id) REFERENCES items(item_id) ON DELETE CASCADE,
            FOREIGN KEY (source_row_id) REFERENCES sources(source_row_id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS unavailable_posts (
            source       TEXT NOT NULL,
            source_id    TEXT NOT NULL,
            seen_at      TEXT NOT NULL,
            reason       TEXT NOT NULL,
            sources_json TEXT NOT NULL DEFAULT '[]',
            PRIMARY KEY (source, source_id)
        );
        """
    )
