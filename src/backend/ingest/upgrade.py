"""
Cross-source upgrade: replace a low-trust discovery with the trusted original.

Trust is one-way. Only candidates from a source other than the trusted one
are ever looked up, and a trusted item is never replaced by a low-trust copy.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from src.shared.errors import ParseError, RemoteProtocolError

from ..scraper.models import MediaDetail


logger = logging.getLogger(__name__)


class TrustedSource(Protocol):
    source_kind: str

    async def lookup_by_hash(self, content_hash: str) -> Optional[MediaDetail]:
        ...

    async def fetch_media(self, detail: MediaDetail) -> bytes:
        ...


class UpgradeMatcher:
    def __init__(self, trusted: TrustedSource, *, enabled: bool = True) -> None:
        self._trusted = trusted
        self._enabled = bool(enabled)

    def applies_to(self, source_kind: str) -> bool:
        return self._enabled and source_kind != self._trusted.source_kind

    async def find(self, content_hash: str) -> Optional[MediaDetail]:
        """
        Trusted post for this content hash, or None.

        A lookup that fails on the wire is treated as "no match": the
        candidate is then archived under its own source.
        """
        try:
            match = await self._trusted.lookup_by_hash(content_hash)
        except (RemoteProtocolError, ParseError) as exc:
            logger.warning("trusted lookup for %s failed: %s", content_hash, exc)
            return None

        if match is None or not match.download_url:
            return None
        return match

    async def fetch_canonical(self, detail: MediaDetail) -> bytes:
        return await self._trusted.fetch_media(detail)
