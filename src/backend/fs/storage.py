"""
Library directory structure management.

Directory structure:
    <library_root>/db/library.sqlite
    <library_root>/media/
    <library_root>/cache/tmp/
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple


DB_DIRNAME = "db"
DB_FILENAME = "library.sqlite"
MEDIA_DIRNAME = "media"
TMP_DIRNAME = "cache/tmp"


class LibraryPaths(NamedTuple):
    """Paths inside one library root."""
    root: Path        # <library_root>/
    db_file: Path     # <library_root>/db/library.sqlite
    media: Path       # <library_root>/media/
    tmp: Path         # <library_root>/cache/tmp/


class LibraryStorage:
    """
    Manages the on-disk layout of a media library.

    Media files are referenced from the database by a POSIX path relative to
    the root (e.g. ``media/artist_e621_123.png``).
    """

    def __init__(self, library_root: Path):
        self._root = Path(library_root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def paths(self) -> LibraryPaths:
        return LibraryPaths(
            root=self._root,
            db_file=self._root / DB_DIRNAME / DB_FILENAME,
            media=self._root / MEDIA_DIRNAME,
            tmp=self._root / TMP_DIRNAME,
        )

    def ensure_layout(self) -> LibraryPaths:
        """
        Ensure the library directories exist, creating them if needed.

        Raises:
            OSError: If directories cannot be created.
        """
        paths = self.paths
        paths.db_file.parent.mkdir(parents=True, exist_ok=True)
        paths.media.mkdir(parents=True, exist_ok=True)
        paths.tmp.mkdir(parents=True, exist_ok=True)
        return paths

    def relative_media_path(self, filename: str) -> str:
        return f"{MEDIA_DIRNAME}/{filename}"

    def resolve(self, file_rel: str) -> Path:
        return self._root / Path(file_rel)
