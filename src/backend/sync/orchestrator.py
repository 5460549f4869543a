from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from src.backend.pipeline.favorites_runner import CandidateResult, FavoritesPipeline, Outcome
from src.backend.scraper.base import FailurePolicy
from src.shared.errors import ArchiverError, SyncAlreadyRunningError
from src.shared.task_status import SyncPhase

from .models import SyncSession
from .reporter import StatusReporter


PipelineFactory = Callable[[], FavoritesPipeline]

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Owns the single worker task of one sync kind.

    - start: validate configuration, reset the session, spawn the worker
    - status: snapshot copy, never blocks on the worker
    - cancel: cooperative; the worker checks the flag before each page and
      each candidate, in-flight requests and writes always complete
    """

    def __init__(self, *, kind: str, pipeline_factory: PipelineFactory, reporter: Optional[StatusReporter] = None) -> None:
        self._kind = kind
        self._pipeline_factory = pipeline_factory
        self._reporter = reporter or StatusReporter(kind=kind)
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def reporter(self) -> StatusReporter:
        return self._reporter

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    async def start(self, max_new_items: Optional[int] = None) -> SyncSession:
        if max_new_items is not None and max_new_items < 1:
            raise ValueError("max_new_items must be >= 1")
        if self._reporter.is_running():
            raise SyncAlreadyRunningError(f"{self._kind} sync already running")

        # Reads settings and opens the library; ConfigurationError propagates
        # and the run never starts.
        pipeline = await asyncio.to_thread(self._pipeline_factory)

        session = self._reporter.begin(max_new_items=max_new_items)
        logger.info("%s sync started (max_new_items=%s)", self._kind, max_new_items)
        self._task = asyncio.create_task(self._run_wrapper(pipeline), name=f"favsync-{self._kind}")
        return session

    def status(self) -> SyncSession:
        return self._reporter.snapshot()

    def cancel(self) -> SyncSession:
        session = self._reporter.request_cancel()
        if session.running:
            logger.info("%s sync cancel requested", self._kind)
        return session

    async def join(self) -> None:
        task = self._task
        if task is not None:
            await task

    # ---------------------------------------------------------------------
    # Worker
    # ---------------------------------------------------------------------

    async def _run_wrapper(self, pipeline: FavoritesPipeline) -> None:
        try:
            await self._run(pipeline)
        except asyncio.CancelledError:
            self._reporter.finish(SyncPhase.STOPPED, error="worker cancelled")
            raise
        except ArchiverError as exc:
            logger.warning("%s sync failed: %s", self._kind, exc)
            self._reporter.finish(SyncPhase.FAILED, error=str(exc))
        except Exception as exc:  # noqa: BLE001 - surface as last_error to the UI
            logger.exception("%s sync crashed", self._kind)
            self._reporter.finish(SyncPhase.FAILED, error=str(exc))
        else:
            phase = SyncPhase.STOPPED if self._reporter.snapshot().cancelled else SyncPhase.COMPLETED
            self._reporter.finish(phase)
        finally:
            # No-op unless an exception escaped every branch above.
            self._reporter.finish(SyncPhase.FAILED, error="worker exited unexpectedly")

        session = self._reporter.snapshot()
        logger.info(
            "%s sync %s: imported=%d upgraded=%d skipped=%d failed=%d",
            self._kind,
            session.phase.value,
            session.imported,
            session.upgraded,
            session.skipped_existing + session.skipped_by_hash,
            session.failed,
        )

    async def _run(self, pipeline: FavoritesPipeline) -> None:
        adapter = pipeline.adapter
        reporter = self._reporter
        cursor: Optional[str] = None
        page_no = 1

        while reporter.stop_reason() is None:
            reporter.set_message(f"Scanning page {page_no}...")
            try:
                page = await adapter.list_page(cursor)
            except ArchiverError as exc:
                if adapter.failure_policy(exc) is FailurePolicy.FATAL:
                    raise
                logger.warning("%s listing page %d failed, stopping pagination: %s", self._kind, page_no, exc)
                reporter.record_error(str(exc))
                return

            reporter.increment(scanned_pages=1)
            if not page.candidates:
                return

            for candidate in page.candidates:
                if reporter.stop_reason() is not None:
                    return
                reporter.increment(scanned_candidates=1)
                reporter.set_message(f"Processing {candidate.source_kind}#{candidate.source_id}")
                self._record(await pipeline.process(candidate))

            if page.next_cursor is None:
                return
            cursor = page.next_cursor
            page_no += 1

    def _record(self, result: CandidateResult) -> None:
        deltas = {"attempted": 1} if result.attempted else {}
        deltas[result.outcome.value] = deltas.get(result.outcome.value, 0) + 1
        self._reporter.increment(**deltas)
        if result.outcome is Outcome.FAILED and result.error:
            self._reporter.record_error(result.error)
