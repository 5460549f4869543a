from __future__ import annotations

import asyncio
from typing import Callable, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from src.backend.pipeline.favorites_runner import IMPORT_MESSAGES, FavoritesPipeline, Outcome, import_post
from src.shared.errors import ArchiverError, ConfigurationError, ParseError

from .services import LibraryServices


class TagsIn(BaseModel):
    general: list[str] = Field(default_factory=list)
    species: list[str] = Field(default_factory=list)
    character: list[str] = Field(default_factory=list)
    artist: list[str] = Field(default_factory=list)
    meta: list[str] = Field(default_factory=list)
    lore: list[str] = Field(default_factory=list)
    copyright: list[str] = Field(default_factory=list)


class PostIn(BaseModel):
    id: int = Field(ge=1)
    file_url: Optional[str] = None
    file_ext: str = Field(min_length=1)
    file_md5: Optional[str] = None
    rating: Optional[str] = None
    fav_count: Optional[int] = None
    score_total: Optional[int] = None
    created_at: Optional[str] = None
    sources: list[str] = Field(default_factory=list)
    tags: TagsIn = Field(default_factory=TagsIn)


class OkOut(BaseModel):
    ok: bool
    message: str


class UnavailableOut(BaseModel):
    source: str
    source_id: str
    seen_at: str
    reason: str
    sources: list[str]


class StatsOut(BaseModel):
    items: int


def create_library_router(
    *,
    library_provider: Callable[[], LibraryServices],
    import_pipeline_provider: Callable[[], FavoritesPipeline],
) -> APIRouter:
    router = APIRouter(prefix="/api/library", tags=["library"])

    def _library() -> LibraryServices:
        try:
            return library_provider()
        except ConfigurationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @router.post("/posts", response_model=OkOut)
    async def import_library_post(body: PostIn) -> OkOut:
        try:
            pipeline = await asyncio.to_thread(import_pipeline_provider)
        except ConfigurationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        try:
            result = await import_post(dto=body.model_dump(), pipeline=pipeline)
        except ParseError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ArchiverError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        if result.outcome is Outcome.FAILED:
            raise HTTPException(status_code=502, detail=result.error or "import failed")
        if result.outcome is Outcome.UNAVAILABLE:
            return OkOut(ok=False, message=IMPORT_MESSAGES[Outcome.UNAVAILABLE])
        return OkOut(ok=True, message=IMPORT_MESSAGES[result.outcome])

    @router.get("/unavailable", response_model=list[UnavailableOut])
    async def list_unavailable(limit: int = Query(default=100, ge=1, le=1000)) -> list[UnavailableOut]:
        library = _library()
        rows = await asyncio.to_thread(library.repo.list_unavailable, limit)
        return [UnavailableOut(**r.to_public_dict()) for r in rows]

    @router.get("/stats", response_model=StatsOut)
    async def library_stats() -> StatsOut:
        library = _library()
        return StatsOut(items=await asyncio.to_thread(library.repo.count_items))

    return router
