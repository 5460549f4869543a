from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from src.backend.fs.hashing import compute_bytes_hash
from src.backend.ingest.dedup import DedupResult
from src.backend.ingest.upgrade import UpgradeMatcher
from src.backend.ingest.writer import NewItem
from src.backend.library.services import LibraryRegistry, LibraryServices
from src.backend.net.throttle import Throttle
from src.backend.scraper.base import FailurePolicy, SourceAdapter
from src.backend.scraper.e621_api import E621ApiAdapter
from src.backend.scraper.e621_parser import parse_post_dto
from src.backend.scraper.furaffinity_scrape import FurAffinityScrapeAdapter
from src.backend.scraper.models import Candidate, MediaDetail
from src.backend.settings.models import GlobalSettings
from src.backend.settings.store import SettingsStore
from src.shared.errors import (
    ArchiverError,
    ConfigurationError,
    DuplicateItemError,
    MediaFetchError,
    UnavailableMediaError,
)


SYNC_KINDS: tuple[str, ...] = ("e621", "furaffinity")

REASON_MISSING_FILE_URL = "missing_file_url"
REASON_DOWNLOAD_FAILED = "download_failed"

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    SKIPPED_EXISTING = "skipped_existing"
    SKIPPED_BY_HASH = "skipped_by_hash"
    IMPORTED = "imported"
    UPGRADED = "upgraded"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass(frozen=True)
class CandidateResult:
    outcome: Outcome
    candidate: Candidate
    attempted: bool = False
    item_id: Optional[int] = None
    error: Optional[str] = None


class _Attempt:
    attempted = False


class FavoritesPipeline:
    """
    Per-candidate flow: identity check -> detail -> media -> hash check ->
    optional upgrade -> persist.

    Exceptions the adapter classifies as FATAL propagate to the caller; every
    other ArchiverError becomes a FAILED result so the run can continue.
    """

    def __init__(
        self,
        *,
        adapter: SourceAdapter,
        library: LibraryServices,
        matcher: Optional[UpgradeMatcher] = None,
    ) -> None:
        self.adapter = adapter
        self.library = library
        self._matcher = matcher

    async def process(self, candidate: Candidate, *, detail: Optional[MediaDetail] = None) -> CandidateResult:
        attempt = _Attempt()
        try:
            return await self._process(candidate, detail, attempt)
        except DuplicateItemError as exc:
            # Lost a race against another writer; the library already has it.
            outcome = Outcome.SKIPPED_BY_HASH if exc.by_hash else Outcome.SKIPPED_EXISTING
            return CandidateResult(outcome, candidate, attempted=attempt.attempted)
        except UnavailableMediaError as exc:
            await self._record_unavailable(candidate, REASON_MISSING_FILE_URL, detail)
            return CandidateResult(Outcome.UNAVAILABLE, candidate, error=str(exc))
        except ArchiverError as exc:
            if self.adapter.failure_policy(exc) is FailurePolicy.FATAL:
                raise
            logger.warning("%s#%s skipped: %s", candidate.source_kind, candidate.source_id, exc)
            return CandidateResult(Outcome.FAILED, candidate, attempted=attempt.attempted, error=str(exc))

    async def _process(
        self,
        candidate: Candidate,
        detail: Optional[MediaDetail],
        attempt: _Attempt,
    ) -> CandidateResult:
        dedup = self.library.dedup
        found = await asyncio.to_thread(dedup.check_identity, candidate.source_kind, candidate.source_id)
        if found is DedupResult.DUPLICATE_IDENTITY:
            return CandidateResult(Outcome.SKIPPED_EXISTING, candidate)

        if detail is None:
            detail = await self.adapter.fetch_detail(candidate)

        if detail.advertised_hash:
            found = await asyncio.to_thread(dedup.check_hash, detail.advertised_hash)
            if found is DedupResult.DUPLICATE_HASH:
                return CandidateResult(Outcome.SKIPPED_BY_HASH, candidate)

        if not detail.download_url:
            await self._record_unavailable(candidate, REASON_MISSING_FILE_URL, detail)
            return CandidateResult(Outcome.UNAVAILABLE, candidate)

        attempt.attempted = True
        try:
            content = await self.adapter.fetch_media(detail)
        except MediaFetchError:
            await self._record_unavailable(candidate, REASON_DOWNLOAD_FAILED, detail)
            raise

        content_hash = compute_bytes_hash(content)
        found = await asyncio.to_thread(dedup.check_hash, content_hash)
        if found is DedupResult.DUPLICATE_HASH:
            return CandidateResult(Outcome.SKIPPED_BY_HASH, candidate, attempted=True)

        if self._matcher is not None and self._matcher.applies_to(candidate.source_kind):
            trusted = await self._matcher.find(content_hash)
            if trusted is not None:
                return await self._persist_upgrade(candidate, trusted)

        item_id = await asyncio.to_thread(
            self.library.writer.persist,
            NewItem.from_detail(detail, content_hash),
            detail,
            content,
        )
        return CandidateResult(Outcome.IMPORTED, candidate, attempted=True, item_id=item_id)

    async def _persist_upgrade(self, candidate: Candidate, trusted: MediaDetail) -> CandidateResult:
        assert self._matcher is not None
        dedup = self.library.dedup

        found = await asyncio.to_thread(dedup.check_identity, trusted.source_kind, trusted.source_id)
        if found is DedupResult.DUPLICATE_IDENTITY:
            return CandidateResult(Outcome.SKIPPED_BY_HASH, candidate, attempted=True)

        content = await self._matcher.fetch_canonical(trusted)
        content_hash = compute_bytes_hash(content)
        found = await asyncio.to_thread(dedup.check_hash, content_hash)
        if found is DedupResult.DUPLICATE_HASH:
            return CandidateResult(Outcome.SKIPPED_BY_HASH, candidate, attempted=True)

        item_id = await asyncio.to_thread(
            self.library.writer.persist,
            NewItem.from_detail(trusted, content_hash),
            trusted,
            content,
            provenance_urls=[self.adapter.detail_url(candidate)],
        )
        logger.info(
            "upgraded %s#%s -> %s#%s",
            candidate.source_kind,
            candidate.source_id,
            trusted.source_kind,
            trusted.source_id,
        )
        return CandidateResult(Outcome.UPGRADED, candidate, attempted=True, item_id=item_id)

    async def _record_unavailable(
        self,
        candidate: Candidate,
        reason: str,
        detail: Optional[MediaDetail],
    ) -> None:
        sources: list[str] = []
        if detail is not None:
            sources = [detail.canonical_url, *detail.external_source_urls]
        try:
            await asyncio.to_thread(
                self.library.repo.upsert_unavailable,
                source=candidate.source_kind,
                source_id=candidate.source_id,
                reason=reason,
                sources=[s for s in sources if s],
            )
        except sqlite3.Error as exc:
            logger.warning(
                "could not record %s#%s as unavailable: %s",
                candidate.source_kind,
                candidate.source_id,
                exc,
            )


IMPORT_MESSAGES = {
    Outcome.IMPORTED: "Downloaded into library",
    Outcome.SKIPPED_EXISTING: "Already downloaded",
    Outcome.SKIPPED_BY_HASH: "Already downloaded (md5 match)",
    Outcome.UNAVAILABLE: "Post has no file url",
}


async def import_post(*, dto: Mapping[str, Any], pipeline: FavoritesPipeline) -> CandidateResult:
    """
    Import one structured-API post whose metadata the caller already has.

    Raises ParseError for a malformed DTO and re-raises whatever the adapter
    classifies as fatal.
    """
    detail = parse_post_dto(dto)
    candidate = Candidate(source_kind=detail.source_kind, source_id=detail.source_id)
    return await pipeline.process(candidate, detail=detail)


# ---------------------------------------------------------------------------
# Wiring: settings -> adapter + library services
# ---------------------------------------------------------------------------


def _require_library(settings: GlobalSettings, registry: LibraryRegistry) -> LibraryServices:
    if not settings.library_root:
        raise ConfigurationError("Library root not set")
    return registry.get(settings.library_root)


def build_trusted_adapter(settings: GlobalSettings) -> E621ApiAdapter:
    """e621 adapter used for hash lookups; works without credentials."""
    creds = settings.e621
    return E621ApiAdapter(
        username=creds.username if creds else None,
        api_key=creds.api_key if creds else None,
        throttle=Throttle(settings.get_throttle()),
        page_limit=settings.e621_page_limit,
    )


async def check_e621_connection(settings: GlobalSettings) -> None:
    """Raises ConfigurationError without credentials, RemoteProtocolError if e621 rejects them."""
    if not settings.e621_configured():
        raise ConfigurationError("e621 credentials not set (need username + api_key)")
    await build_trusted_adapter(settings).check_connection()


def build_pipeline(kind: str, settings: GlobalSettings, registry: LibraryRegistry) -> FavoritesPipeline:
    if kind == "e621":
        if not settings.e621 or not settings.e621.is_complete():
            raise ConfigurationError("e621 credentials not set (need username + api_key)")
        library = _require_library(settings, registry)
        return FavoritesPipeline(adapter=build_trusted_adapter(settings), library=library)

    if kind == "furaffinity":
        cookies = settings.furaffinity
        if not cookies or not cookies.is_complete():
            raise ConfigurationError("FurAffinity cookies not set (need a + b)")
        library = _require_library(settings, registry)
        adapter = FurAffinityScrapeAdapter(
            cookie_a=cookies.a,
            cookie_b=cookies.b,
            throttle=Throttle(settings.get_throttle()),
            max_pages=settings.fa_max_pages,
        )
        matcher = UpgradeMatcher(build_trusted_adapter(settings), enabled=settings.upgrade_enabled)
        return FavoritesPipeline(adapter=adapter, library=library, matcher=matcher)

    raise ValueError(f"unknown sync kind: {kind}")


def build_import_pipeline(settings: GlobalSettings, registry: LibraryRegistry) -> FavoritesPipeline:
    """Pipeline for single-post imports; needs a library but no credentials."""
    library = _require_library(settings, registry)
    return FavoritesPipeline(adapter=build_trusted_adapter(settings), library=library)


def create_pipeline_factory(
    *,
    kind: str,
    store: SettingsStore,
    registry: LibraryRegistry,
) -> Callable[[], FavoritesPipeline]:
    if kind not in SYNC_KINDS:
        raise ValueError(f"unknown sync kind: {kind}")

    def _factory() -> FavoritesPipeline:
        return build_pipeline(kind, store.load(), registry)

    return _factory
