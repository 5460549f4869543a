"""
Parsing of e621 `posts.json` payloads into MediaDetail.

Two input shapes are accepted:
- the raw API post object (`file.url`, `score.total`, ...)
- the flattened import DTO (`file_url`, `file_ext`, `score_total`, ...)
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from src.shared.errors import ParseError

from ..fs.hashing import normalize_hash
from ..fs.naming import get_extension_from_url, normalize_extension, pick_primary_artist
from .models import CategorizedTags, MediaDetail, normalize_rating


SOURCE_KIND = "e621"
E621_BASE_URL = "https://e621.net"


def post_url(post_id: str | int) -> str:
    return f"{E621_BASE_URL}/posts/{post_id}"


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _str_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, Sequence) or isinstance(value, str):
        return ()
    return tuple(v.strip() for v in value if isinstance(v, str) and v.strip())


def post_id_of(raw: Any) -> Optional[str]:
    if not isinstance(raw, Mapping):
        return None
    pid = _opt_int(raw.get("id"))
    if pid is None or pid <= 0:
        return None
    return str(pid)


def extract_posts(page: Any) -> list[Mapping[str, Any]]:
    """`{"posts": [...]}` -> list of post objects with a usable id."""
    if not isinstance(page, Mapping):
        raise ParseError("e621 response is not an object")
    posts = page.get("posts")
    if posts is None:
        return []
    if not isinstance(posts, list):
        raise ParseError("e621 response 'posts' is not a list")
    return [p for p in posts if post_id_of(p) is not None]


def parse_post(raw: Mapping[str, Any]) -> MediaDetail:
    """Raw API post object -> MediaDetail. `download_url` is None for deleted/blocked posts."""
    post_id = post_id_of(raw)
    if post_id is None:
        raise ParseError("e621 post without id")

    file_obj = raw.get("file")
    if not isinstance(file_obj, Mapping):
        file_obj = {}
    file_url = file_obj.get("url") if isinstance(file_obj.get("url"), str) else None
    ext = normalize_extension(str(file_obj.get("ext") or ""))
    if ext is None and file_url:
        ext = get_extension_from_url(file_url)

    score = raw.get("score")
    score_total = _opt_int(score.get("total")) if isinstance(score, Mapping) else _opt_int(score)

    tags = CategorizedTags.from_mapping(raw.get("tags"))
    created_at = raw.get("created_at")

    return MediaDetail(
        source_kind=SOURCE_KIND,
        source_id=post_id,
        canonical_url=post_url(post_id),
        download_url=file_url or None,
        ext=ext or "jpg",
        rating=normalize_rating(raw.get("rating")),
        fav_count=_opt_int(raw.get("fav_count")),
        score_total=score_total,
        created_at=created_at if isinstance(created_at, str) else None,
        tags=tags,
        external_source_urls=_str_list(raw.get("sources")),
        advertised_hash=normalize_hash(file_obj.get("md5") if isinstance(file_obj.get("md5"), str) else None),
        primary_artist=pick_primary_artist(tags.artist),
    )


def parse_post_dto(dto: Mapping[str, Any]) -> MediaDetail:
    """Flattened import DTO -> MediaDetail."""
    post_id = post_id_of(dto)
    if post_id is None:
        raise ParseError("post DTO without id")

    file_url = dto.get("file_url")
    if not isinstance(file_url, str) or not file_url.strip():
        file_url = None
    raw_ext = str(dto.get("file_ext") or "")
    if not raw_ext.strip():
        raise ParseError("Missing file_ext")
    ext = normalize_extension(raw_ext)
    if ext is None:
        raise ParseError(f"Invalid file_ext: {raw_ext!r}")

    tags = CategorizedTags.from_mapping(dto.get("tags"))
    created_at = dto.get("created_at")
    file_md5 = dto.get("file_md5")

    return MediaDetail(
        source_kind=SOURCE_KIND,
        source_id=post_id,
        canonical_url=post_url(post_id),
        download_url=file_url,
        ext=ext,
        rating=normalize_rating(dto.get("rating")),
        fav_count=_opt_int(dto.get("fav_count")),
        score_total=_opt_int(dto.get("score_total")),
        created_at=created_at if isinstance(created_at, str) else None,
        tags=tags,
        external_source_urls=_str_list(dto.get("sources")),
        advertised_hash=normalize_hash(file_md5 if isinstance(file_md5, str) else None),
        primary_artist=pick_primary_artist(tags.artist),
    )
