"""
Manifest fetch relay.

``ManifestRelay.fetch`` performs exactly one GET against a registry manifest
URL and either returns the parsed JSON body or raises one of the
``RelayError`` subclasses with a user-facing message. Nothing is retried.

The user-facing message comes from ``friendly_message``: an ordered list of
rules, first match wins. Several rules overlap (a body can mention both
``MANIFEST_UNKNOWN`` and ``404``), so the order matters.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Type

import httpx

from .config import HTTP_TIMEOUT, USER_AGENT
from .errors import FormatError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = "Invalid response format: Expected JSON but received non-JSON data"
GENERIC_MESSAGE = "An error occurred while fetching data from the external API"

# Raw bodies and messages longer than these are not shown to users.
MAX_RAW_DETAIL = 200
MAX_PASSTHROUGH = 100


@dataclass(frozen=True)
class FriendlyRule:
    """A user message and the substrings or exception types that select it."""

    message: str
    needles: Tuple[str, ...] = ()
    exc_types: Tuple[Type[BaseException], ...] = ()

    def matches(self, text: str, exc: Optional[BaseException] = None) -> bool:
        if exc is not None and self.exc_types and isinstance(exc, self.exc_types):
            return True
        return any(needle in text for needle in self.needles)


FRIENDLY_RULES: Tuple[FriendlyRule, ...] = (
    FriendlyRule(
        "Model not found: The specified model or tag does not exist in registry",
        needles=("MANIFEST_UNKNOWN",),
    ),
    FriendlyRule(
        "Model not found: The specified model or tag does not exist",
        needles=("404", "Not Found"),
    ),
    FriendlyRule(
        "Server error: The Ollama registry is experiencing issues",
        needles=("500",),
    ),
    FriendlyRule(
        "Too many requests: Please wait and try again later",
        needles=("429", "Too Many Requests"),
    ),
    FriendlyRule(
        "Network error: Unable to connect to the server. "
        "Please check your connection and try again.",
        needles=("Failed to fetch", "NetworkError"),
        exc_types=(
            httpx.ReadError,
            httpx.WriteError,
            httpx.CloseError,
            httpx.ProtocolError,
            httpx.ProxyError,
        ),
    ),
    FriendlyRule(
        "Request timeout: The server took too long to respond. Please try again later.",
        needles=("timeout", "timed out"),
        exc_types=(httpx.TimeoutException,),
    ),
    FriendlyRule(
        "Connection error: Unable to reach the server. "
        "The server may be down or experiencing issues.",
        needles=("ENOTFOUND", "ECONNREFUSED", "Connection refused", "Name or service not known"),
        exc_types=(httpx.ConnectError,),
    ),
    FriendlyRule(INVALID_FORMAT_MESSAGE, needles=("Invalid response format",)),
)


def match_rule(text: str, exc: Optional[BaseException] = None) -> Optional[FriendlyRule]:
    for rule in FRIENDLY_RULES:
        if rule.matches(text, exc):
            return rule
    return None


def friendly_message(
    text: str,
    exc: Optional[BaseException] = None,
    fallback: Optional[str] = None,
) -> str:
    """
    Map a raw error description to the sentence shown to users.

    ``fallback`` is what gets passed through when no rule matches (defaults
    to ``text``); it is replaced by a generic sentence when too long.
    """
    rule = match_rule(text, exc)
    if rule is not None:
        return rule.message

    candidate = text if fallback is None else fallback
    return candidate if len(candidate) < MAX_PASSTHROUGH else GENERIC_MESSAGE


def extract_error_detail(payload: Any, raw_text: str) -> str:
    """
    Pull a readable detail out of an error body.

    Registry errors look like
    ``{"errors": [{"code": "MANIFEST_UNKNOWN", "message": "manifest unknown"}]}``
    and take priority over flat ``{"error": ...}`` / ``{"message": ...}``.
    """
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            code = errors[0].get("code")
            message = errors[0].get("message")
            if code and message:
                return f"{code}: {message}"
            if message:
                return str(message)
            if code:
                return f"Error code: {code}"

        for key in ("error", "message"):
            value = payload.get(key)
            if value and isinstance(value, str):
                return value

    text = raw_text.strip()
    return text if len(text) < MAX_RAW_DETAIL else ""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def decode_json(text: str) -> Any:
    """Strict JSON decoding: ``NaN``, ``Infinity`` and ``-Infinity`` are rejected."""
    return json.loads(text, parse_constant=_reject_constant)


def upstream_error(status: int, status_text: str, body: str) -> UpstreamError:
    """Build the error for a non-2xx registry response."""
    try:
        payload = decode_json(body)
    except ValueError:
        payload = None
    detail = extract_error_detail(payload, body)

    if detail:
        composed = f"Failed to fetch data: {status_text} - {detail}"
    else:
        composed = f"Failed to fetch data: {status_text}"

    # Classify on the status and detail only; the "Failed to fetch" prefix
    # would otherwise read as a network error.
    classified = f"{status} {status_text} - {detail}"
    return UpstreamError(
        friendly_message(classified, fallback=composed),
        status=status,
        status_text=status_text,
        detail=detail,
        original_message=composed,
    )


def transport_error(exc: Exception) -> TransportError:
    text = str(exc) or type(exc).__name__
    status = 400 if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)) else 500
    return TransportError(friendly_message(text, exc), status=status, original_message=text)


class ManifestRelay:
    """Fetches registry manifests over httpx, one request per call."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = HTTP_TIMEOUT,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._transport = transport
        self._timeout = timeout
        self._user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict = {
            "headers": {"User-Agent": self._user_agent},
            "follow_redirects": True,
        }
        # httpx treats timeout=None as "no timeout"; leave its default alone.
        if self._timeout is not None:
            kwargs["timeout"] = httpx.Timeout(self._timeout)
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def fetch(self, url: str) -> Any:
        """
        GET ``url`` and return the decoded JSON body.

        Raises:
            TransportError: the request never got a response.
            UpstreamError: the registry answered with a non-2xx status.
            FormatError: the registry answered 2xx with a non-JSON body.
        """
        logger.info("Fetching URL: %s", url)
        try:
            async with self._client() as client:
                response = await client.get(url)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            logger.error("Error fetching %s: %s", url, exc)
            raise transport_error(exc) from exc

        logger.info("Response status: %s %s", response.status_code, response.reason_phrase)

        if not response.is_success:
            err = upstream_error(response.status_code, response.reason_phrase, response.text)
            logger.warning("Upstream error for %s: %s", url, err.original_message)
            raise err

        try:
            return decode_json(response.text)
        except ValueError as exc:
            logger.error("Response from %s is not valid JSON: %s", url, exc)
            raise FormatError(
                INVALID_FORMAT_MESSAGE, status=500, original_message=str(exc)
            ) from exc
