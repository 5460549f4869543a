"""
HTML parsing for FurAffinity favorites and submission pages.

Pure functions over page markup (no I/O) so fixtures can be tested offline.
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

from src.shared.errors import ParseError

from ..fs.naming import UNKNOWN_ARTIST, get_extension_from_url
from .models import RATING_SAFE, CategorizedTags, MediaDetail, normalize_rating


SOURCE_KIND = "furaffinity"
FA_BASE_URL = "https://www.furaffinity.net"

# Tried in order; the first non-empty text wins.
ARTIST_SELECTORS = (
    "div.submission-id-sub-container a strong",
    "div.submission-id-sub-container a[href*='/user/']",
    ".submission-sidebar .user-name",
)


def favorites_url(page: int) -> str:
    if page <= 1:
        return f"{FA_BASE_URL}/controls/favorites/"
    return f"{FA_BASE_URL}/controls/favorites/{page}/"


def view_url(submission_id: str) -> str:
    return f"{FA_BASE_URL}/view/{submission_id}/"


def parse_favorite_ids(html: str) -> list[str]:
    """Submission ids from `<figure class="t-image" id="sid-123">`, page order."""
    soup = BeautifulSoup(html, "html.parser")
    ids: list[str] = []
    for figure in soup.select("figure.t-image"):
        raw = (figure.get("id") or "").strip()
        sid = raw.replace("sid-", "", 1)
        if sid and sid.isdigit() and sid not in ids:
            ids.append(sid)
    return ids


def _absolute_download_url(href: str) -> str:
    href = href.strip()
    if href.startswith("//"):
        return f"https:{href}"
    if href.startswith("/"):
        return f"{FA_BASE_URL}{href}"
    return href


def _artist_from_download_url(url: str) -> Optional[str]:
    marker = "/art/"
    idx = url.find(marker)
    if idx < 0:
        return None
    rest = url[idx + len(marker):]
    name = rest.split("/", 1)[0]
    return name or None


def _extract_artist(soup: BeautifulSoup, download_url: str) -> str:
    for selector in ARTIST_SELECTORS:
        el = soup.select_one(selector)
        if el is None:
            continue
        text = el.get_text().strip()
        if text:
            return text.replace(" ", "_").lower()

    from_url = _artist_from_download_url(download_url)
    if from_url:
        return from_url.replace(" ", "_").lower()
    return UNKNOWN_ARTIST


def parse_submission(html: str, *, submission_id: str) -> MediaDetail:
    """
    Submission page -> MediaDetail.

    Raises:
        ParseError: no download link, or no tag section at all.
    """
    soup = BeautifulSoup(html, "html.parser")

    link = soup.select_one("div.download > a")
    href = link.get("href") if link is not None else None
    if not href:
        raise ParseError(f"submission {submission_id}: no download link")
    download_url = _absolute_download_url(str(href))

    tag_section = soup.select_one("section.tags-row")
    if tag_section is None:
        raise ParseError(f"submission {submission_id}: no tag section")
    general = tuple(
        a.get_text().strip()
        for a in tag_section.select("span.tags a")
        if a.get_text().strip()
    )

    artist = _extract_artist(soup, download_url)

    rating_el = soup.select_one("div.rating span")
    rating_text = rating_el.get_text().strip().lower() if rating_el is not None else "general"
    rating = normalize_rating(rating_text) or RATING_SAFE

    posted = soup.select_one("span.popup_date")
    created_at = None
    if posted is not None:
        created_at = (posted.get("title") or posted.get_text() or "").strip() or None

    return MediaDetail(
        source_kind=SOURCE_KIND,
        source_id=submission_id,
        canonical_url=view_url(submission_id),
        download_url=download_url,
        ext=get_extension_from_url(download_url),
        rating=rating,
        created_at=created_at,
        tags=CategorizedTags(general=general, artist=(artist,)),
        primary_artist=artist,
    )
