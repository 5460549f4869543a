from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from src.shared.errors import ConfigurationError

from .library.api import create_library_router
from .library.services import LibraryRegistry, LibraryServices
from .pipeline.favorites_runner import (
    SYNC_KINDS,
    FavoritesPipeline,
    build_import_pipeline,
    check_e621_connection,
    create_pipeline_factory,
)
from .settings.api import create_settings_router
from .settings.store import SettingsStore
from .sync.api import create_sync_router
from .sync.orchestrator import SyncOrchestrator


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def create_app(*, data_dir: Optional[Path] = None, registry: Optional[LibraryRegistry] = None) -> FastAPI:
    repo_root = _repo_root()
    data_dir = Path(data_dir) if data_dir is not None else repo_root / "data"
    config_path = data_dir / "config.json"

    store = SettingsStore(path=config_path)
    registry = registry or LibraryRegistry()

    # One orchestrator per kind; the library itself is opened lazily per run
    # so the app starts before a library root is configured.
    orchestrators = {
        kind: SyncOrchestrator(
            kind=kind,
            pipeline_factory=create_pipeline_factory(kind=kind, store=store, registry=registry),
        )
        for kind in SYNC_KINDS
    }

    def _library() -> LibraryServices:
        settings = store.load()
        if not settings.library_root:
            raise ConfigurationError("Library root not set")
        return registry.get(settings.library_root)

    def _import_pipeline() -> FavoritesPipeline:
        return build_import_pipeline(store.load(), registry)

    async def _check_e621() -> None:
        await check_e621_connection(store.load())

    app = FastAPI(title="favorites-archiver-local")
    app.include_router(
        create_settings_router(store=store, repo_root=repo_root, e621_connection_check=_check_e621)
    )
    app.include_router(create_sync_router(orchestrators=orchestrators))
    app.include_router(
        create_library_router(library_provider=_library, import_pipeline_provider=_import_pipeline)
    )

    app.state.settings_store = store
    app.state.library_registry = registry
    app.state.orchestrators = orchestrators
    app.state.repo_root = repo_root
    return app


app = create_app()
