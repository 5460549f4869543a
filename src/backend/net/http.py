"""
Blocking HTTP client for remote sources.

Has no retry loop: a failed request surfaces immediately as
RemoteProtocolError and the caller decides (via the adapter's failure policy)
whether that ends the run or skips one candidate.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from src.shared.errors import RemoteProtocolError


DEFAULT_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_API_USER_AGENT = "FavoritesArchiver/0.1.0 (local archiver)"
DEFAULT_TIMEOUT_S = 30.0

logger = logging.getLogger(__name__)


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class HttpClient:
    """
    Minimal urllib wrapper with fixed default headers.

    Args:
        user_agent: Sent with every request.
        headers: Extra default headers (e.g. Cookie, Authorization).
        timeout_s: Socket timeout per request.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_API_USER_AGENT,
        headers: Optional[Mapping[str, str]] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._headers = {"User-Agent": user_agent, "Accept": "*/*"}
        if headers:
            self._headers.update(headers)
        self._timeout_s = timeout_s

    def get_bytes(self, url: str, *, params: Optional[Mapping[str, Any]] = None) -> bytes:
        full_url = f"{url}?{urlencode(params)}" if params else url
        req = Request(full_url, headers=dict(self._headers))
        try:
            with urlopen(req, timeout=self._timeout_s) as resp:
                return resp.read()
        except HTTPError as exc:
            status = int(getattr(exc, "code", 0) or 0)
            raise RemoteProtocolError(
                f"HTTP {status} for {full_url}", status_code=status, url=full_url
            ) from exc
        except (URLError, OSError) as exc:
            raise RemoteProtocolError(f"request failed for {full_url}: {exc}", url=full_url) from exc

    def get_text(self, url: str, *, params: Optional[Mapping[str, Any]] = None) -> str:
        return self.get_bytes(url, params=params).decode("utf-8", errors="replace")

    def get_json(self, url: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        body = self.get_bytes(url, params=params)
        try:
            return json.loads(body)
        except ValueError as exc:
            logger.debug("non-JSON body from %s: %r", url, body[:200])
            raise RemoteProtocolError(f"invalid JSON from {url}", url=url) from exc
