"""
Error taxonomy shared by the parser, the relay and the HTTP layer.

Every error carries the HTTP status it should surface with and, where one
exists, the raw underlying message for diagnostic display.
"""

from __future__ import annotations

from typing import Optional


class OllamaDLError(Exception):
    """Base class for all errors raised by this package."""

    status: int = 500

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        original_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.original_message = original_message


class ValidationError(OllamaDLError):
    """Malformed model identifier or request payload. Never hits the network."""

    status = 400


class RelayError(OllamaDLError):
    """Base for failures of the outbound manifest fetch."""


class TransportError(RelayError):
    """DNS failure, refused connection, timeout or similar."""


class UpstreamError(RelayError):
    """The registry answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status: int,
        status_text: str,
        detail: str = "",
        original_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, status=status, original_message=original_message)
        self.status_text = status_text
        self.detail = detail


class FormatError(RelayError):
    """The registry answered 2xx but the body is not JSON."""
