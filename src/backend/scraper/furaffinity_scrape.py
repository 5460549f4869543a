from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.shared.errors import ConfigurationError, MediaFetchError, RemoteProtocolError

from ..net.http import DEFAULT_BROWSER_USER_AGENT, HttpClient
from ..net.throttle import Throttle
from .base import FailurePolicy, SourceAdapter
from .furaffinity_parser import SOURCE_KIND, favorites_url, parse_favorite_ids, parse_submission, view_url
from .models import Candidate, ListingPage, MediaDetail


DEFAULT_MAX_PAGES = 50

logger = logging.getLogger(__name__)


class FurAffinityScrapeAdapter(SourceAdapter):
    """
    Markup-scrape source for FurAffinity favorites (cookie session).

    Every request waits on the throttle first. All failures are per-candidate:
    a broken submission page never stops the run.
    """

    source_kind = SOURCE_KIND

    def __init__(
        self,
        *,
        cookie_a: str,
        cookie_b: str,
        throttle: Optional[Throttle] = None,
        http: Optional[HttpClient] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        if not (cookie_a or "").strip() or not (cookie_b or "").strip():
            raise ConfigurationError("FurAffinity cookies not set (need a + b)")
        cookie = f"a={cookie_a.strip()}; b={cookie_b.strip()}"
        self._http = http or HttpClient(user_agent=DEFAULT_BROWSER_USER_AGENT, headers={"Cookie": cookie})
        self._throttle = throttle or Throttle()
        self._max_pages = max(1, int(max_pages))

    async def _get_text(self, url: str) -> str:
        await self._throttle.wait_async()
        return await asyncio.to_thread(self._http.get_text, url)

    async def list_page(self, cursor: Optional[str]) -> ListingPage:
        page = int(cursor or 1)
        html = await self._get_text(favorites_url(page))
        ids = parse_favorite_ids(html)
        logger.info("furaffinity favorites page %d: %d submissions", page, len(ids))

        next_cursor = str(page + 1) if ids and page < self._max_pages else None
        return ListingPage(
            candidates=tuple(Candidate(source_kind=self.source_kind, source_id=sid) for sid in ids),
            next_cursor=next_cursor,
        )

    async def fetch_detail(self, candidate: Candidate) -> MediaDetail:
        html = await self._get_text(view_url(candidate.source_id))
        return parse_submission(html, submission_id=candidate.source_id)

    async def fetch_media(self, detail: MediaDetail) -> bytes:
        if not detail.download_url:
            raise MediaFetchError(f"submission {detail.source_id}: no download url")
        await self._throttle.wait_async()
        try:
            return await asyncio.to_thread(self._http.get_bytes, detail.download_url)
        except RemoteProtocolError as exc:
            raise MediaFetchError(f"Download failed: {exc}") from exc

    def detail_url(self, candidate: Candidate) -> str:
        return view_url(candidate.source_id)

    def failure_policy(self, exc: BaseException) -> FailurePolicy:
        return FailurePolicy.SKIP
