from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.shared.errors import ArchiverError, ConfigurationError

from ..net.throttle import ThrottleConfig
from .models import (
    DEFAULT_E621_PAGE_LIMIT,
    DEFAULT_FA_MAX_PAGES,
    MAX_E621_PAGE_LIMIT,
    E621Credentials,
    FurAffinityCookies,
    GlobalSettings,
)
from .store import SettingsStore


class E621CredentialsIn(BaseModel):
    username: str = Field(min_length=1)
    api_key: str = Field(min_length=1)


class FurAffinityCookiesIn(BaseModel):
    a: str = Field(min_length=1)
    b: str = Field(min_length=1)


class ThrottleIn(BaseModel):
    min_interval_s: float = Field(ge=0.0, le=60.0, default=0.8)
    jitter_max_s: float = Field(ge=0.0, le=30.0, default=0.2)
    enabled: bool = True


class SettingsIn(BaseModel):
    """Partial update; omitted fields keep their current value."""
    library_root: Optional[str] = None
    throttle: Optional[ThrottleIn] = None
    fa_max_pages: Optional[int] = Field(default=None, ge=1, le=10_000)
    e621_page_limit: Optional[int] = Field(default=None, ge=1, le=MAX_E621_PAGE_LIMIT)
    upgrade_enabled: Optional[bool] = None


class CheckOut(BaseModel):
    ok: bool
    message: str


class E621StatusOut(BaseModel):
    configured: bool
    username: Optional[str] = None
    api_key_set: bool


class FurAffinityStatusOut(BaseModel):
    configured: bool
    a_set: bool
    b_set: bool


class ThrottleOut(BaseModel):
    min_interval_s: float
    jitter_max_s: float
    enabled: bool


class SettingsOut(BaseModel):
    library_root: Optional[str] = None
    e621: E621StatusOut
    furaffinity: FurAffinityStatusOut
    throttle: ThrottleOut
    fa_max_pages: int = DEFAULT_FA_MAX_PAGES
    e621_page_limit: int = DEFAULT_E621_PAGE_LIMIT
    upgrade_enabled: bool = True


def _public_settings(settings: GlobalSettings) -> SettingsOut:
    e621 = settings.e621
    fa = settings.furaffinity
    throttle = settings.get_throttle()

    return SettingsOut(
        library_root=settings.library_root,
        e621=E621StatusOut(
            configured=settings.e621_configured(),
            username=(e621.username or None) if e621 else None,
            api_key_set=bool(e621 and e621.api_key.strip()),
        ),
        furaffinity=FurAffinityStatusOut(
            configured=settings.furaffinity_configured(),
            a_set=bool(fa and fa.a.strip()),
            b_set=bool(fa and fa.b.strip()),
        ),
        throttle=ThrottleOut(
            min_interval_s=throttle.min_interval_s,
            jitter_max_s=throttle.jitter_max_s,
            enabled=throttle.enabled,
        ),
        fa_max_pages=settings.fa_max_pages,
        e621_page_limit=settings.e621_page_limit,
        upgrade_enabled=settings.upgrade_enabled,
    )


def _resolve_library_root(library_root: str, *, repo_root: Path) -> Path:
    raw = library_root.strip()
    if not raw:
        raise ValueError("Library root must not be empty")

    p = Path(raw).expanduser()
    if not p.is_absolute():
        p = repo_root / p
    return p.resolve()


def _ensure_dir_writable(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ValueError(f"Cannot create library root: {exc}") from exc

    if not path.is_dir():
        raise ValueError("Library root is not a directory")

    try:
        with tempfile.NamedTemporaryFile(prefix=".fav_write_test_", dir=str(path), delete=True):
            pass
    except PermissionError as exc:
        raise ValueError("Library root is not writable") from exc
    except OSError as exc:
        raise ValueError(f"Cannot write into library root: {exc}") from exc


ConnectionCheck = Callable[[], Awaitable[None]]


def create_settings_router(
    *,
    store: SettingsStore,
    repo_root: Path,
    e621_connection_check: Optional[ConnectionCheck] = None,
) -> APIRouter:
    router = APIRouter(prefix="/api/settings", tags=["settings"])

    @router.get("", response_model=SettingsOut)
    def get_settings() -> SettingsOut:
        return _public_settings(store.load())

    @router.put("", response_model=SettingsOut)
    def put_settings(body: SettingsIn) -> SettingsOut:
        library_root: Optional[str] = None
        if body.library_root is not None:
            try:
                root = _resolve_library_root(body.library_root, repo_root=repo_root)
                _ensure_dir_writable(root)
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            library_root = str(root)

        def mutate(settings: GlobalSettings) -> GlobalSettings:
            if library_root is not None:
                settings.library_root = library_root
            if body.throttle is not None:
                settings.throttle = ThrottleConfig(
                    min_interval_s=body.throttle.min_interval_s,
                    jitter_max_s=body.throttle.jitter_max_s,
                    enabled=body.throttle.enabled,
                )
            if body.fa_max_pages is not None:
                settings.fa_max_pages = body.fa_max_pages
            if body.e621_page_limit is not None:
                settings.e621_page_limit = body.e621_page_limit
            if body.upgrade_enabled is not None:
                settings.upgrade_enabled = body.upgrade_enabled
            return settings

        return _public_settings(store.update(mutator=mutate))

    @router.put("/e621-credentials", response_model=SettingsOut)
    def set_e621_credentials(body: E621CredentialsIn) -> SettingsOut:
        creds = E621Credentials(username=body.username.strip(), api_key=body.api_key.strip())

        def mutate(settings: GlobalSettings) -> GlobalSettings:
            settings.e621 = creds
            return settings

        return _public_settings(store.update(mutator=mutate))

    @router.delete("/e621-credentials", response_model=SettingsOut)
    def clear_e621_credentials() -> SettingsOut:
        return _public_settings(store.clear_credentials("e621"))

    if e621_connection_check is not None:

        @router.post("/e621-credentials/test", response_model=CheckOut)
        async def check_e621_credentials() -> CheckOut:
            try:
                await e621_connection_check()
            except ConfigurationError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            except ArchiverError as exc:
                raise HTTPException(status_code=502, detail=f"Test failed: {exc}") from exc
            return CheckOut(ok=True, message="Connected to e621 successfully")

    @router.put("/furaffinity-credentials", response_model=SettingsOut)
    def set_furaffinity_credentials(body: FurAffinityCookiesIn) -> SettingsOut:
        cookies = FurAffinityCookies(a=body.a.strip(), b=body.b.strip())

        def mutate(settings: GlobalSettings) -> GlobalSettings:
            settings.furaffinity = cookies
            return settings

        return _public_settings(store.update(mutator=mutate))

    @router.delete("/furaffinity-credentials", response_model=SettingsOut)
    def clear_furaffinity_credentials() -> SettingsOut:
        return _public_settings(store.clear_credentials("furaffinity"))

    return router
