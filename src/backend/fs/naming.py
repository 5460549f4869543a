"""
Media file naming conventions.

Filename format: <artist>_<source>_<sourceId>.<ext>

- artist: Sanitized primary artist slug ("unknown_artist" if none)
- source: Source kind the item is persisted under (e.g. e621, furaffinity)
- sourceId: Post / submission id on that source
- ext: File extension (e.g., jpg, png, webm)

When a name is already taken on disk, `_dup<N>` is appended before the
extension.
"""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlparse


UNKNOWN_ARTIST = "unknown_artist"

# Artist "tags" that are really warnings, never a person.
NON_ARTIST_TAGS = frozenset({"sound_warning", "conditional_dnp", "unknown_artist"})

_FORBIDDEN_CHARS = '<>;:"/\\|?*'


def sanitize_slug(value: str) -> str:
    """Lowercase, spaces to underscores, strip path-hostile characters."""
    out = value.strip().lower().replace(" ", "_")
    for ch in _FORBIDDEN_CHARS:
        out = out.replace(ch, "")
    return out or UNKNOWN_ARTIST


def pick_primary_artist(artists: Iterable[str]) -> str:
    """First artist tag that is not a warning tag."""
    for artist in artists:
        if artist and artist not in NON_ARTIST_TAGS:
            return artist
    return UNKNOWN_ARTIST


def normalize_extension(value: str) -> Optional[str]:
    """Lowercase extension without the dot, or None unless 1-10 ASCII alphanumerics."""
    ext = value.strip().lstrip('.').lower()
    if 1 <= len(ext) <= 10 and ext.isascii() and ext.isalnum():
        return ext
    return None


def generate_media_filename(
    artist: str,
    source: str,
    source_id: str,
    extension: str,
    *,
    dup_index: int = 0,
) -> str:
    """
    Generate a media filename following the naming convention.

    Args:
        artist: Primary artist (sanitized here).
        source: Source kind.
        source_id: Id on the source.
        extension: File extension (with or without leading dot).
        dup_index: >0 appends `_dup<N>` to avoid an on-disk collision.

    Raises:
        ValueError: If the extension is not 1-10 ASCII letters or digits.
    """
    ext = normalize_extension(extension)
    if ext is None:
        raise ValueError(f"invalid file extension: {extension!r}")

    base = f"{sanitize_slug(artist)}_{source}_{source_id}"
    if dup_index > 0:
        base = f"{base}_dup{dup_index}"
    return f"{base}.{ext}"


def get_extension_from_url(url: str, default: str = 'jpg') -> str:
    """
    Extract file extension from a URL.

    Args:
        url: The URL to parse.
        default: Returned when no plausible extension is present.

    Returns:
        File extension without dot.
    """
    path = urlparse(url).path

    if '.' in path.rsplit('/', 1)[-1]:
        ext = normalize_extension(path.rsplit('.', 1)[-1])
        if ext is not None:
            return ext

    return default
