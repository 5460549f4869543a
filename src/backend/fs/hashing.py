"""
Content hashing utilities for media deduplication.

Uses MD5 for content hashing: the trusted source indexes its posts by the MD5
of the original file, so the same digest doubles as the cross-source lookup
key. The full hex digest is stored per item and is the dedup key.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO


# Hash algorithm to use
HASH_ALGORITHM = "md5"

# Length of a hex digest for HASH_ALGORITHM
HASH_HEX_LENGTH = 32

# Buffer size for streaming hash computation
BUFFER_SIZE = 65536  # 64 KB


def compute_file_hash(file_path: Path | str) -> str:
    """
    Compute the MD5 hash of a file's contents.

    Args:
        file_path: Path to the file.

    Returns:
        Lowercase hexadecimal hash string.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        IOError: If the file cannot be read.
    """
    path = Path(file_path)
    hasher = hashlib.new(HASH_ALGORITHM)

    with open(path, 'rb') as f:
        _update_hash_from_stream(hasher, f)

    return hasher.hexdigest()


def compute_bytes_hash(data: bytes) -> str:
    """
    Compute the MD5 hash of bytes.

    Args:
        data: The bytes to hash.

    Returns:
        Lowercase hexadecimal hash string.
    """
    return hashlib.new(HASH_ALGORITHM, data).hexdigest()


def _update_hash_from_stream(hasher, stream: BinaryIO) -> None:
    """Update a hash object from a stream in chunks."""
    while True:
        chunk = stream.read(BUFFER_SIZE)
        if not chunk:
            break
        hasher.update(chunk)


def normalize_hash(value: str | None) -> str | None:
    """
    Normalize an advertised hash (e.g. from a remote listing).

    Returns the lowercase digest, or None if the value is not a well-formed
    hex digest of the expected length.
    """
    if not value:
        return None
    cleaned = value.strip().lower()
    if len(cleaned) != HASH_HEX_LENGTH:
        return None
    try:
        int(cleaned, 16)
    except ValueError:
        return None
    return cleaned
