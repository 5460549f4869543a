from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.shared.errors import (
    ConfigurationError,
    MediaFetchError,
    ParseError,
    RemoteProtocolError,
    UnavailableMediaError,
)

from ..net.http import DEFAULT_API_USER_AGENT, HttpClient, basic_auth_header
from ..net.throttle import Throttle
from .base import FailurePolicy, SourceAdapter
from .e621_parser import E621_BASE_URL, SOURCE_KIND, extract_posts, parse_post, post_id_of, post_url
from .models import Candidate, ListingPage, MediaDetail


DEFAULT_PAGE_LIMIT = 320

logger = logging.getLogger(__name__)


class E621ApiAdapter(SourceAdapter):
    """
    Structured-API source backed by e621 `posts.json`.

    Listing and detail come from the same paginated query (`fav:<user>`), so
    `fetch_detail` normally makes no request. Any non-success answer from the
    API is fatal to the run; failures fetching a file from the CDN only skip
    that post.

    The same adapter serves as the trusted source for cross-source upgrades
    through `lookup_by_hash`, which works without credentials.
    """

    source_kind = SOURCE_KIND

    def __init__(
        self,
        *,
        username: Optional[str] = None,
        api_key: Optional[str] = None,
        throttle: Optional[Throttle] = None,
        http: Optional[HttpClient] = None,
        media_http: Optional[HttpClient] = None,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        base_url: str = E621_BASE_URL,
    ) -> None:
        self._username = (username or "").strip() or None
        headers = {}
        if self._username and api_key:
            headers["Authorization"] = basic_auth_header(self._username, api_key.strip())
        self._http = http or HttpClient(user_agent=DEFAULT_API_USER_AGENT, headers=headers)
        self._media_http = media_http or HttpClient(user_agent=DEFAULT_API_USER_AGENT)
        self._throttle = throttle or Throttle()
        self._page_limit = int(page_limit)
        self._base_url = base_url.rstrip("/")

    @property
    def username(self) -> Optional[str]:
        return self._username

    async def _get_json(self, url: str, params: dict) -> object:
        await self._throttle.wait_async()
        return await asyncio.to_thread(self._http.get_json, url, params=params)

    async def list_page(self, cursor: Optional[str]) -> ListingPage:
        if not self._username:
            raise ConfigurationError("e621 username not set")

        page = int(cursor or 1)
        raw = await self._get_json(
            f"{self._base_url}/posts.json",
            {
                "tags": f"fav:{self._username} order:id_desc",
                "limit": self._page_limit,
                "page": page,
            },
        )
        posts = extract_posts(raw)
        candidates = tuple(
            Candidate(source_kind=self.source_kind, source_id=str(post_id_of(p)), payload=p)
            for p in posts
        )
        logger.info("e621 favorites page %d: %d posts", page, len(candidates))
        return ListingPage(candidates=candidates, next_cursor=str(page + 1) if candidates else None)

    async def fetch_detail(self, candidate: Candidate) -> MediaDetail:
        if candidate.payload is not None:
            return parse_post(candidate.payload)

        raw = await self._get_json(f"{self._base_url}/posts/{candidate.source_id}.json", {})
        post = raw.get("post") if isinstance(raw, dict) else None
        if not isinstance(post, dict):
            raise ParseError(f"e621 post {candidate.source_id}: unexpected payload")
        return parse_post(post)

    async def fetch_media(self, detail: MediaDetail) -> bytes:
        if not detail.download_url:
            raise UnavailableMediaError(f"e621 post {detail.source_id} has no file url")

        await self._throttle.wait_async()
        try:
            return await asyncio.to_thread(self._media_http.get_bytes, detail.download_url)
        except RemoteProtocolError as exc:
            raise MediaFetchError(f"Download failed: {exc}") from exc

    async def lookup_by_hash(self, content_hash: str) -> Optional[MediaDetail]:
        """Return the post whose original file has this MD5, if e621 has one."""
        raw = await self._get_json(
            f"{self._base_url}/posts.json",
            {"tags": f"md5:{content_hash.lower()}", "limit": 1},
        )
        posts = extract_posts(raw)
        if not posts:
            return None
        return parse_post(posts[0])

    async def check_connection(self) -> None:
        """One authenticated query; raises RemoteProtocolError when e621 refuses it."""
        if not self._username:
            raise ConfigurationError("e621 username not set")
        await self._get_json(f"{self._base_url}/posts.json", {"tags": "order:id_desc", "limit": 1})

    def detail_url(self, candidate: Candidate) -> str:
        return post_url(candidate.source_id)

    def failure_policy(self, exc: BaseException) -> FailurePolicy:
        if isinstance(exc, (RemoteProtocolError, ConfigurationError)):
            return FailurePolicy.FATAL
        return FailurePolicy.SKIP
