"""
File system utilities for the media library.

Provides:
- Library directory layout (storage.py)
- File naming conventions (naming.py)
- Content hashing for deduplication (hashing.py)
"""

from .storage import LibraryPaths, LibraryStorage
from .naming import generate_media_filename, pick_primary_artist, sanitize_slug
from .hashing import compute_bytes_hash, compute_file_hash, normalize_hash

__all__ = [
    "LibraryPaths",
    "LibraryStorage",
    "generate_media_filename",
    "pick_primary_artist",
    "sanitize_slug",
    "compute_bytes_hash",
    "compute_file_hash",
    "normalize_hash",
]
