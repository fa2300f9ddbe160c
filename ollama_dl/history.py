"""
Tracking of repeated searches within one interactive session.

Re-running a query that just succeeded is pointless, so the caller skips it.
Re-running one that just failed is a retry, and its error message says so.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .identifier import ModelIdentifier

RETRY_PREFIX = "Retry Attempt: "


class SearchOutcome(str, Enum):
    NEW = "new"
    ALREADY_SUCCEEDED = "already_succeeded"
    RETRY = "retry"


class SearchHistory:
    """Remembers the last identifier searched and whether it worked."""

    def __init__(self) -> None:
        self._last: Optional[ModelIdentifier] = None
        self._last_ok = False

    @property
    def last(self) -> Optional[ModelIdentifier]:
        return self._last

    def check(self, ident: ModelIdentifier) -> SearchOutcome:
        if self._last is None or ident != self._last:
            return SearchOutcome.NEW
        return SearchOutcome.ALREADY_SUCCEEDED if self._last_ok else SearchOutcome.RETRY

    def record(self, ident: ModelIdentifier, ok: bool) -> None:
        self._last = ident
        self._last_ok = ok

    @staticmethod
    def decorate(message: str, outcome: SearchOutcome) -> str:
        if outcome is SearchOutcome.RETRY:
            return f"{RETRY_PREFIX}{message}"
        return message
