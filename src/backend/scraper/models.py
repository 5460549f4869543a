"""
Data model shared by source adapters and the ingestion pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


# Order in which typed tags are written; the most specific categories first.
TAG_CATEGORIES: tuple[str, ...] = (
    "artist",
    "copyright",
    "character",
    "species",
    "general",
    "meta",
    "lore",
)

RATING_SAFE = "s"
RATING_QUESTIONABLE = "q"
RATING_EXPLICIT = "e"

_RATING_ALIASES = {
    "s": RATING_SAFE,
    "safe": RATING_SAFE,
    "general": RATING_SAFE,
    "q": RATING_QUESTIONABLE,
    "questionable": RATING_QUESTIONABLE,
    "mature": RATING_QUESTIONABLE,
    "e": RATING_EXPLICIT,
    "explicit": RATING_EXPLICIT,
    "adult": RATING_EXPLICIT,
}


def normalize_rating(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return _RATING_ALIASES.get(value.strip().lower())


@dataclass(frozen=True)
class Candidate:
    """
    An unresolved favorite discovered on a listing page.

    `payload` carries the raw listing entry when the listing already contains
    the full detail (structured API), so no second request is needed.
    """
    source_kind: str
    source_id: str
    payload: Optional[Mapping[str, Any]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CategorizedTags:
    general: tuple[str, ...] = ()
    species: tuple[str, ...] = ()
    character: tuple[str, ...] = ()
    artist: tuple[str, ...] = ()
    meta: tuple[str, ...] = ()
    lore: tuple[str, ...] = ()
    copyright: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Any) -> "CategorizedTags":
        if not isinstance(raw, Mapping):
            return cls()

        def _names(key: str) -> tuple[str, ...]:
            values = raw.get(key)
            if not isinstance(values, (list, tuple)):
                return ()
            return tuple(str(v) for v in values if isinstance(v, str) and v.strip())

        return cls(**{key: _names(key) for key in TAG_CATEGORIES})

    def by_category(self) -> list[tuple[str, tuple[str, ...]]]:
        return [(key, getattr(self, key)) for key in TAG_CATEGORIES]


@dataclass(frozen=True)
class MediaDetail:
    """Resolved metadata for one candidate."""
    source_kind: str
    source_id: str
    canonical_url: str
    download_url: Optional[str]
    ext: str
    rating: Optional[str] = None
    fav_count: Optional[int] = None
    score_total: Optional[int] = None
    created_at: Optional[str] = None
    tags: CategorizedTags = field(default_factory=CategorizedTags)
    external_source_urls: tuple[str, ...] = ()
    advertised_hash: Optional[str] = None
    primary_artist: Optional[str] = None


@dataclass(frozen=True)
class ListingPage:
    candidates: tuple[Candidate, ...]
    next_cursor: Optional[str] = None
