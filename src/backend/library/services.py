from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

from ..fs.storage import LibraryStorage
from ..ingest.dedup import DedupIndex
from ..ingest.writer import IngestionWriter
from .repo import LibraryRepository


@dataclass(frozen=True)
class LibraryServices:
    """Everything the ingestion path needs for one library root."""
    storage: LibraryStorage
    repo: LibraryRepository
    dedup: DedupIndex
    writer: IngestionWriter

    @classmethod
    def open(cls, library_root: Path | str) -> "LibraryServices":
        """Create the layout and schema if missing. Raises OSError / sqlite3.Error."""
        storage = LibraryStorage(Path(library_root))
        paths = storage.ensure_layout()
        repo = LibraryRepository(paths.db_file)
        repo.initialize()
        return cls(
            storage=storage,
            repo=repo,
            dedup=DedupIndex(repo),
            writer=IngestionWriter(storage=storage, db_path=paths.db_file),
        )


class LibraryRegistry:
    """
    One LibraryServices per library root, shared by every sync kind.

    Sharing the writer is what serializes filename reservation between two
    runs writing into the same media directory.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_root: dict[Path, LibraryServices] = {}

    def get(self, library_root: Path | str) -> LibraryServices:
        key = Path(library_root).resolve()
        with self._lock:
            services = self._by_root.get(key)
            if services is None:
                services = LibraryServices.open(key)
                self._by_root[key] = services
            return services
