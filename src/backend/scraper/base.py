"""
Source adapter interface.

Each remote site is one SourceAdapter implementation. Besides the three
fetch capabilities, an adapter owns its failure policy: the orchestrator
asks the adapter whether an exception ends the run or only skips the
candidate that raised it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from .models import Candidate, ListingPage, MediaDetail


class FailurePolicy(str, Enum):
    FATAL = "fatal"  # stop the run, surface as last_error
    SKIP = "skip"    # count as failed, continue with the next candidate


class SourceAdapter(ABC):
    source_kind: str = ""

    @abstractmethod
    async def list_page(self, cursor: Optional[str]) -> ListingPage:
        """Fetch one listing page; `cursor=None` means the first page."""

    @abstractmethod
    async def fetch_detail(self, candidate: Candidate) -> MediaDetail:
        ...

    @abstractmethod
    async def fetch_media(self, detail: MediaDetail) -> bytes:
        ...

    @abstractmethod
    def detail_url(self, candidate: Candidate) -> str:
        """Human-facing URL of the candidate on its own site."""

    def failure_policy(self, exc: BaseException) -> FailurePolicy:
        return FailurePolicy.SKIP
