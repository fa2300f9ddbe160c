"""
Configuration helpers for the downloader service.

Everything is read once from environment variables at import time. Components
take these values as keyword defaults, so callers (and tests) can pass their
own instead of touching the environment.
"""

from __future__ import annotations

import os
from typing import Optional

# Host serving the `/v2/<namespace>/<model>/...` registry API.
REGISTRY_HOST: str = os.environ.get("OLLAMA_DL_REGISTRY_HOST", "registry.ollama.ai")

# Host of the human-facing model page (`https://ollama.com/library/gemma2`).
MODEL_PAGE_HOST: str = os.environ.get("OLLAMA_DL_MODEL_PAGE_HOST", "ollama.com")

# Root shown in the "place the files here" hints. Not checked on disk.
MODELS_ROOT: str = os.environ.get("OLLAMA_DL_MODELS_ROOT", "$OLLAMA_MODELS")


def _optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else None


# Outbound timeout in seconds. Unset means "whatever httpx defaults to".
HTTP_TIMEOUT: Optional[float] = _optional_float("OLLAMA_DL_HTTP_TIMEOUT")

USER_AGENT: str = os.environ.get("OLLAMA_DL_USER_AGENT", "ollama-dl/0.1.0")

# Telemetry is only enabled when a Redis URL is configured.
REDIS_URL: Optional[str] = os.environ.get("OLLAMA_DL_REDIS_URL") or None
VIEWS_KEY: str = os.environ.get("OLLAMA_DL_VIEWS_KEY", "views")
QUERIES_KEY: str = os.environ.get("OLLAMA_DL_QUERIES_KEY", "queries")

LOG_LEVEL: str = os.environ.get("OLLAMA_DL_LOG_LEVEL", "INFO").upper()
