#!/usr/bin/env python3
"""
Run one favorites sync headlessly (no web server) and print the final status.

Credential sources (priority):
1) CLI flags: --e621-username / --e621-api-key / --fa-a / --fa-b
2) Environment: FAV_E621_USERNAME / FAV_E621_API_KEY / FAV_FA_A / FAV_FA_B
3) Settings file: data/config.json (written by the web UI)

Examples:
  python3 scripts/sync_once.py --kind e621 --max-new-items 20
  python3 scripts/sync_once.py --kind furaffinity --library-root ~/Favorites

Ctrl-C requests a cooperative cancel; the item in flight still completes.
Secrets are never printed; only whether they are set and their length.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.backend.library.services import LibraryRegistry  # noqa: E402
from src.backend.pipeline.favorites_runner import SYNC_KINDS, build_pipeline  # noqa: E402
from src.backend.settings.models import E621Credentials, FurAffinityCookies, GlobalSettings  # noqa: E402
from src.backend.settings.store import SettingsStore  # noqa: E402
from src.backend.sync.orchestrator import SyncOrchestrator  # noqa: E402
from src.shared.errors import ConfigurationError  # noqa: E402
from src.shared.task_status import SyncPhase  # noqa: E402


logger = logging.getLogger("sync_once")


def _safe(value: Optional[str]) -> dict[str, Any]:
    v = (value or "").strip()
    if not v:
        return {"set": False}
    return {"set": True, "len": len(v)}


def resolve_settings(args: argparse.Namespace) -> GlobalSettings:
    settings = SettingsStore(path=Path(args.config)).load()

    username = (args.e621_username or os.getenv("FAV_E621_USERNAME") or "").strip()
    api_key = (args.e621_api_key or os.getenv("FAV_E621_API_KEY") or "").strip()
    if username and api_key:
        settings.e621 = E621Credentials(username=username, api_key=api_key)

    fa_a = (args.fa_a or os.getenv("FAV_FA_A") or "").strip()
    fa_b = (args.fa_b or os.getenv("FAV_FA_B") or "").strip()
    if fa_a and fa_b:
        settings.furaffinity = FurAffinityCookies(a=fa_a, b=fa_b)

    if args.library_root:
        settings.library_root = str(Path(args.library_root).expanduser().resolve())
    if args.max_pages:
        settings.fa_max_pages = args.max_pages
    if args.no_upgrade:
        settings.upgrade_enabled = False
    return settings


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Sync e621 / FurAffinity favorites into the local library once.",
    )
    p.add_argument("--kind", required=True, choices=SYNC_KINDS, help="Which favorites to sync")
    p.add_argument("--max-new-items", type=int, default=None, help="Stop after this many download attempts")
    p.add_argument("--config", default=str(REPO_ROOT / "data" / "config.json"), help="Settings file path")
    p.add_argument("--library-root", default="", help="Overrides library_root from the settings file")
    p.add_argument("--max-pages", type=int, default=0, help="FurAffinity page cap (0 = settings value)")
    p.add_argument("--no-upgrade", action="store_true", help="Do not look FurAffinity items up on e621")

    p.add_argument("--e621-username", default="", help="Takes precedence over env/config")
    p.add_argument("--e621-api-key", default="", help="Takes precedence over env/config")
    p.add_argument("--fa-a", default="", help="FurAffinity cookie `a` (takes precedence over env/config)")
    p.add_argument("--fa-b", default="", help="FurAffinity cookie `b` (takes precedence over env/config)")

    p.add_argument("--poll-s", type=float, default=5.0, help="Progress log interval in seconds")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


async def run(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    logger.info(
        "credentials: e621 user=%s key=%s, furaffinity a=%s b=%s",
        _safe(settings.e621.username if settings.e621 else None),
        _safe(settings.e621.api_key if settings.e621 else None),
        _safe(settings.furaffinity.a if settings.furaffinity else None),
        _safe(settings.furaffinity.b if settings.furaffinity else None),
    )

    registry = LibraryRegistry()
    orchestrator = SyncOrchestrator(
        kind=args.kind,
        pipeline_factory=lambda: build_pipeline(args.kind, settings, registry),
    )

    try:
        await orchestrator.start(args.max_new_items)
    except (ConfigurationError, ValueError) as exc:
        print(f"cannot start: {exc}", file=sys.stderr)
        return 2

    worker = asyncio.ensure_future(orchestrator.join())
    try:
        while not worker.done():
            await asyncio.wait({worker}, timeout=max(0.5, args.poll_s))
            s = orchestrator.status()
            logger.info(
                "%s | pages=%d seen=%d imported=%d upgraded=%d skipped=%d failed=%d",
                s.phase.value,
                s.scanned_pages,
                s.scanned_candidates,
                s.imported,
                s.upgraded,
                s.skipped_existing + s.skipped_by_hash,
                s.failed,
            )
    except asyncio.CancelledError:
        orchestrator.cancel()
        await worker
        raise

    session = orchestrator.status()
    print(json.dumps(session.to_public_dict(), ensure_ascii=False, indent=2))
    return 1 if session.phase is SyncPhase.FAILED else 0


def main() -> int:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
