"""
FastAPI app for the Ollama direct download service.

Endpoints:
- GET /health
- POST /api/proxy
- GET /api/resolve
- POST /api/page-load
- POST /api/save-query
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from functools import partial

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from .config import LOG_LEVEL
from .errors import OllamaDLError, RelayError, ValidationError
from .identifier import parse_model_input
from .manifest import blob_links
from .relay import ManifestRelay
from .schemas import (
    URL_REQUIRED_MESSAGE,
    BlobLinkModel,
    ErrorEnvelope,
    HealthResponse,
    IdentifierModel,
    ProxyRequest,
    ResolveResponse,
    SaveQueryRequest,
    TelemetryResponse,
)
from .telemetry import Telemetry, build_telemetry, record_safely
from .urls import blobs_folder_hint, manifest_folder_hint, manifest_url, model_page_url

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Release the Redis pool, if telemetry opened one.
    telemetry: Telemetry = app.state.telemetry
    await telemetry.aclose()


app = FastAPI(
    title="Ollama Direct Downloader",
    version="0.1.0",
    description="Direct download links for Ollama models, straight from the registry.",
    lifespan=lifespan,
)

# Permissive CORS for dev; tighten this later if needed.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach the relay and telemetry to app state for reuse.
app.state.relay = ManifestRelay()
app.state.telemetry = build_telemetry()


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def error_response(exc: OllamaDLError) -> JSONResponse:
    envelope = ErrorEnvelope.from_error(exc)
    return JSONResponse(envelope.to_body(), status_code=envelope.status)


@app.exception_handler(OllamaDLError)
async def handle_ollama_dl_error(request: Request, exc: OllamaDLError) -> JSONResponse:
    logger.info("%s %s failed (%s): %s", request.method, request.url.path, exc.status, exc.message)
    return error_response(exc)


def _request_error_message(exc: PydanticValidationError) -> str:
    for err in exc.errors():
        cause = (err.get("ctx") or {}).get("error")
        if cause is not None:
            return str(cause)
    return URL_REQUIRED_MESSAGE


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Simple health-check endpoint."""
    return HealthResponse(status="ok")


@app.post("/api/proxy")
async def proxy(request: Request) -> JSONResponse:
    """
    Fetch a registry manifest on behalf of the browser.

    Expects ``{"url": "<manifest url>"}`` and answers with the registry's
    JSON verbatim, or with an ``ErrorEnvelope``.
    """
    try:
        payload = await request.json()
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc

    try:
        req = ProxyRequest.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(_request_error_message(exc)) from exc

    relay: ManifestRelay = app.state.relay
    data = await relay.fetch(req.url)
    return JSONResponse(data)


@app.get("/api/resolve", response_model=ResolveResponse)
async def resolve(background_tasks: BackgroundTasks, model: str = Query("")):
    """
    Parse a model name, fetch its manifest and list every blob to download.

    Once the name parses, the raw query is logged through telemetry after the
    response is sent, whether or not the fetch succeeds.
    """
    ident = parse_model_input(model)

    telemetry: Telemetry = app.state.telemetry
    if telemetry.configured:
        background_tasks.add_task(record_safely, partial(telemetry.record_query, model))

    relay: ManifestRelay = app.state.relay
    try:
        manifest = await relay.fetch(manifest_url(ident))
    except RelayError as exc:
        response = error_response(exc)
        response.background = background_tasks
        return response

    return ResolveResponse(
        identifier=IdentifierModel(**asdict(ident)),
        manifest_url=manifest_url(ident),
        model_page_url=model_page_url(ident),
        manifest_folder_hint=manifest_folder_hint(ident),
        blobs_folder_hint=blobs_folder_hint(),
        blobs=[BlobLinkModel(**asdict(link)) for link in blob_links(ident, manifest)],
        manifest=manifest,
    )


@app.post("/api/page-load", response_model=TelemetryResponse, response_model_exclude_none=True)
async def page_load() -> TelemetryResponse:
    """Count a page view. Never fails the caller."""
    telemetry: Telemetry = app.state.telemetry
    if not telemetry.configured:
        return TelemetryResponse(success=False, message="Redis not configured")
    if await record_safely(telemetry.record_page_load):
        return TelemetryResponse(success=True)
    return TelemetryResponse(success=False, message="Redis error")


@app.post("/api/save-query", response_model=TelemetryResponse, response_model_exclude_none=True)
async def save_query(req: SaveQueryRequest) -> TelemetryResponse:
    """Append a searched model name to the query log. Never fails the caller."""
    telemetry: Telemetry = app.state.telemetry
    if not telemetry.configured:
        return TelemetryResponse(success=False, message="Redis not configured")
    if await record_safely(partial(telemetry.record_query, req.query)):
        return TelemetryResponse(success=True)
    return TelemetryResponse(success=False, message="Redis error")


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    """
    Convenience entrypoint if you want to run via:

        python -m ollama_dl.main

    or via the `ollama-dl-server` console_script defined in pyproject.toml.
    """
    import uvicorn

    configure_logging()
    uvicorn.run(
        "ollama_dl.main:app",
        host=host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
