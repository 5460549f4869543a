from __future__ import annotations

from typing import Mapping, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.shared.errors import ConfigurationError, SyncAlreadyRunningError

from .orchestrator import SyncOrchestrator


class StartIn(BaseModel):
    max_new_items: Optional[int] = Field(default=None, ge=1)


class OkOut(BaseModel):
    ok: bool
    message: str


class StatusOut(BaseModel):
    kind: str
    phase: str
    running: bool
    cancelled: bool
    max_new_items: Optional[int] = None
    scanned_pages: int
    scanned_candidates: int
    skipped_existing: int
    skipped_by_hash: int
    attempted: int
    imported: int
    upgraded: int
    failed: int
    unavailable: int
    last_error: Optional[str] = None
    current_message: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    runtime_s: Optional[float] = None
    items_per_minute: Optional[float] = None


def create_sync_router(*, orchestrators: Mapping[str, SyncOrchestrator]) -> APIRouter:
    router = APIRouter(prefix="/api/sync", tags=["sync"])

    def _get(kind: str) -> SyncOrchestrator:
        orchestrator = orchestrators.get(kind)
        if orchestrator is None:
            raise HTTPException(status_code=404, detail=f"unknown sync kind: {kind}")
        return orchestrator

    @router.post("/{kind}/start", response_model=OkOut)
    async def start_sync(kind: str, body: Optional[StartIn] = None) -> OkOut:
        orchestrator = _get(kind)
        max_new_items = body.max_new_items if body else None
        try:
            await orchestrator.start(max_new_items)
        except SyncAlreadyRunningError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except (ConfigurationError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return OkOut(ok=True, message=f"{kind} sync started")

    @router.get("/{kind}/status", response_model=StatusOut)
    def sync_status(kind: str) -> StatusOut:
        return StatusOut(**_get(kind).status().to_public_dict())

    @router.post("/{kind}/cancel", response_model=OkOut)
    def cancel_sync(kind: str) -> OkOut:
        session = _get(kind).cancel()
        message = "Cancel requested" if session.running else "Not running"
        return OkOut(ok=True, message=message)

    return router
