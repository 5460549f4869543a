from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..net.throttle import ThrottleConfig


DEFAULT_FA_MAX_PAGES = 50
DEFAULT_E621_PAGE_LIMIT = 320
MAX_E621_PAGE_LIMIT = 320


@dataclass(frozen=True)
class E621Credentials:
    username: str
    api_key: str

    def is_complete(self) -> bool:
        return bool(self.username.strip()) and bool(self.api_key.strip())

    def to_persist_dict(self) -> dict[str, Any]:
        return {"username": self.username, "api_key": self.api_key}

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "E621Credentials":
        return cls(
            username=str(data.get("username", "") or ""),
            api_key=str(data.get("api_key", "") or ""),
        )


@dataclass(frozen=True)
class FurAffinityCookies:
    """The `a` and `b` session cookies of a logged-in FurAffinity browser."""
    a: str
    b: str

    def is_complete(self) -> bool:
        return bool(self.a.strip()) and bool(self.b.strip())

    def to_persist_dict(self) -> dict[str, Any]:
        return {"a": self.a, "b": self.b}

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "FurAffinityCookies":
        return cls(a=str(data.get("a", "") or ""), b=str(data.get("b", "") or ""))


def _bounded_int(value: Any, default: int, *, lo: int, hi: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    if n < lo or n > hi:
        return default
    return n


@dataclass
class GlobalSettings:
    library_root: Optional[str] = None
    e621: Optional[E621Credentials] = None
    furaffinity: Optional[FurAffinityCookies] = None
    throttle: Optional[ThrottleConfig] = None
    fa_max_pages: int = DEFAULT_FA_MAX_PAGES
    e621_page_limit: int = DEFAULT_E621_PAGE_LIMIT
    upgrade_enabled: bool = True

    def e621_configured(self) -> bool:
        return self.e621 is not None and self.e621.is_complete()

    def furaffinity_configured(self) -> bool:
        return self.furaffinity is not None and self.furaffinity.is_complete()

    def get_throttle(self) -> ThrottleConfig:
        """Get throttle config, using defaults if not set."""
        return self.throttle or ThrottleConfig()

    def to_persist_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": 1,
            "library_root": self.library_root,
            "fa_max_pages": self.fa_max_pages,
            "e621_page_limit": self.e621_page_limit,
            "upgrade_enabled": self.upgrade_enabled,
        }
        if self.e621 is not None:
            data["e621"] = self.e621.to_persist_dict()
        if self.furaffinity is not None:
            data["furaffinity"] = self.furaffinity.to_persist_dict()
        if self.throttle is not None:
            data["throttle"] = self.throttle.to_persist_dict()
        return data

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "GlobalSettings":
        raw_root = data.get("library_root")
        library_root = str(raw_root).strip() if isinstance(raw_root, str) and raw_root.strip() else None

        raw_e621 = data.get("e621")
        e621 = E621Credentials.from_persist_dict(raw_e621) if isinstance(raw_e621, dict) else None

        raw_fa = data.get("furaffinity")
        furaffinity = FurAffinityCookies.from_persist_dict(raw_fa) if isinstance(raw_fa, dict) else None

        raw_throttle = data.get("throttle")
        throttle = None
        if isinstance(raw_throttle, dict):
            throttle = ThrottleConfig.from_persist_dict(raw_throttle)

        upgrade_enabled = data.get("upgrade_enabled", True)
        if not isinstance(upgrade_enabled, bool):
            upgrade_enabled = True

        return cls(
            library_root=library_root,
            e621=e621,
            furaffinity=furaffinity,
            throttle=throttle,
            fa_max_pages=_bounded_int(data.get("fa_max_pages"), DEFAULT_FA_MAX_PAGES, lo=1, hi=10_000),
            e621_page_limit=_bounded_int(
                data.get("e621_page_limit"),
                DEFAULT_E621_PAGE_LIMIT,
                lo=1,
                hi=MAX_E621_PAGE_LIMIT,
            ),
            upgrade_enabled=upgrade_enabled,
        )
