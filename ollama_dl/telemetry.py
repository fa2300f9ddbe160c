"""
Optional usage telemetry: a page-view counter and a log of searched names.

Both operations are fire-and-forget. ``NullTelemetry`` is the default and
does nothing; ``RedisTelemetry`` writes to Redis when a URL is configured.
Callers go through ``record_safely`` so a broken store never fails a request.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

import redis.asyncio as redis

from .config import QUERIES_KEY, REDIS_URL, VIEWS_KEY

logger = logging.getLogger(__name__)


class Telemetry(Protocol):
    configured: bool

    async def record_page_load(self) -> None: ...

    async def record_query(self, text: str) -> None: ...

    async def aclose(self) -> None: ...


class NullTelemetry:
    """Telemetry that records nothing; used when no Redis URL is configured."""

    configured = False

    async def record_page_load(self) -> None:
        return None

    async def record_query(self, text: str) -> None:
        return None

    async def aclose(self) -> None:
        return None


class RedisTelemetry:
    """Counts views with INCR and keeps queries in a list with LPUSH."""

    configured = True

    def __init__(
        self,
        url: Optional[str] = None,
        client: Any = None,
        views_key: str = VIEWS_KEY,
        queries_key: str = QUERIES_KEY,
    ) -> None:
        if client is None and not url:
            raise ValueError("RedisTelemetry needs either a url or a client")
        self._url = url
        self._client = client
        self.views_key = views_key
        self.queries_key = queries_key

    def _redis(self) -> Any:
        if self._client is None:
            self._client = redis.from_url(self._url, encoding="utf-8", decode_responses=True)
        return self._client

    async def record_page_load(self) -> None:
        await self._redis().incr(self.views_key)

    async def record_query(self, text: str) -> None:
        await self._redis().lpush(self.queries_key, text)

    async def aclose(self) -> None:
        """Close the Redis connection pool, if one was opened."""
        if self._client is None:
            return
        await self._client.aclose()
        if self._url:
            # Reopened lazily on the next call.
            self._client = None


def build_telemetry(url: Optional[str] = REDIS_URL) -> Telemetry:
    if url:
        logger.info("Telemetry enabled (redis)")
        return RedisTelemetry(url=url)
    return NullTelemetry()


async def record_safely(action: Callable[[], Awaitable[None]]) -> bool:
    """Run a telemetry call, swallowing and logging any failure."""
    try:
        await action()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Telemetry call failed: %s", exc)
        return False
    return True
