"""
Pydantic schemas used by the FastAPI app.

The error envelope keeps the camelCase ``originalMessage`` key the web
front end reads.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import OllamaDLError

URL_REQUIRED_MESSAGE = "URL is required and must be a string"
URL_SCHEME_MESSAGE = "URL must use http or https"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ErrorEnvelope(BaseModel):
    """
    Body returned for every failed request.

    - error: user-facing message
    - status: HTTP status, mirrored in the response
    - timestamp: when the error was produced
    - originalMessage: raw underlying message, when there is one
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str
    status: int
    timestamp: str = Field(default_factory=utc_timestamp)
    original_message: Optional[str] = Field(default=None, alias="originalMessage")

    @classmethod
    def from_error(cls, exc: OllamaDLError) -> "ErrorEnvelope":
        return cls(
            error=exc.message,
            status=exc.status,
            original_message=exc.original_message or None,
        )

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProxyRequest(BaseModel):
    """Request payload for POST /api/proxy."""

    url: str

    @field_validator("url", mode="before")
    @classmethod
    def _must_be_string(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(URL_REQUIRED_MESSAGE)
        return value.strip()

    @field_validator("url")
    @classmethod
    def _must_be_http(cls, value: str) -> str:
        if urlparse(value).scheme.lower() not in ("http", "https"):
            raise ValueError(URL_SCHEME_MESSAGE)
        return value


class SaveQueryRequest(BaseModel):
    """Request payload for POST /api/save-query."""

    query: str


class TelemetryResponse(BaseModel):
    """Outcome of a telemetry call; ``message`` says why it was skipped or failed."""

    success: bool
    message: Optional[str] = None


class BlobLinkModel(BaseModel):
    """One downloadable blob in a resolve response."""

    kind: str
    media_type: str
    digest: str
    size: int
    url: str
    filename: str


class IdentifierModel(BaseModel):
    """Parsed model name as (namespace, model, tag)."""

    namespace: str
    model: str
    tag: str


class ResolveResponse(BaseModel):
    """Everything needed to download a model by hand."""

    identifier: IdentifierModel
    manifest_url: str
    model_page_url: str
    manifest_folder_hint: str
    blobs_folder_hint: str
    blobs: List[BlobLinkModel]
    manifest: Any


class HealthResponse(BaseModel):
    """Simple health check response."""

    status: str
