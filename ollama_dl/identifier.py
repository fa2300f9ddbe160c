"""
Parsing of free-form model names into registry identifiers.

Accepted inputs:

- ``gemma2``                      -> library/gemma2:latest
- ``gemma2:2b``                   -> library/gemma2:2b
- ``huihui_ai/qwen3-abliterated`` -> huihui_ai/qwen3-abliterated:latest
- ``ollama pull gemma2:2b`` / ``ollama run gemma2:2b``
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ValidationError

DEFAULT_NAMESPACE = "library"
DEFAULT_TAG = "latest"

_VALID_CHARS = re.compile(r"^[A-Za-z0-9_.\-]+$")
_COMMAND_PREFIX = re.compile(r"^ollama\s+(pull|run)(?:\s+(.*))?$", re.DOTALL)
_TAG_SEPARATOR = re.compile(r"\s*:\s*")
_NAMESPACE_SEPARATOR = re.compile(r"[\\/]")

FORMAT_HINT = (
    'Use the format "model:tag", "model:latest" if unsure, '
    'or "ollama pull/run model[:tag]"'
)
NAMESPACE_HINT = 'User namespace must be in format "namespace/model"'


@dataclass(frozen=True)
class ModelIdentifier:
    """A model reference split into namespace, model and tag."""

    namespace: str
    model: str
    tag: str = DEFAULT_TAG

    @property
    def path_id(self) -> str:
        """``<namespace>/<model>``, the repository part of registry paths."""
        return f"{self.namespace}/{self.model}"

    @property
    def reference(self) -> str:
        return f"{self.path_id}:{self.tag}"

    def __str__(self) -> str:
        return self.reference


def validate_part(value: str, label: str) -> str:
    """Check a single namespace/model/tag segment, returning it unchanged."""
    if not value:
        raise ValidationError(f"{label} cannot be empty")
    if not _VALID_CHARS.match(value):
        raise ValidationError(f"{label} can only contain letters, numbers, _, -, and .")
    return value


def strip_command_prefix(text: str) -> str:
    """Drop a leading ``ollama pull`` / ``ollama run`` if there is one."""
    match = _COMMAND_PREFIX.match(text)
    if match is None:
        return text

    rest = (match.group(2) or "").strip()
    if not rest:
        raise ValidationError(f"Model name is required after 'ollama {match.group(1)}'")
    return rest


def parse_model_input(raw: str) -> ModelIdentifier:
    """
    Turn user input into a validated ``ModelIdentifier``.

    Raises ``ValidationError`` with a human-readable message on any malformed
    input. Nothing is coerced: case is preserved and extra separators are
    rejected rather than dropped.
    """
    text = (raw or "").strip()
    if not text:
        raise ValidationError("Model name is required")

    text = strip_command_prefix(text)

    pieces = _TAG_SEPARATOR.split(text)
    if len(pieces) > 2:
        raise ValidationError(FORMAT_HINT)
    name = pieces[0].strip()
    tag = pieces[1].strip() if len(pieces) == 2 else DEFAULT_TAG

    path = _NAMESPACE_SEPARATOR.split(name)
    if len(path) == 1:
        namespace, model = DEFAULT_NAMESPACE, name
    elif len(path) == 2 and path[0] and path[1]:
        namespace, model = path
    else:
        raise ValidationError(NAMESPACE_HINT)

    return ModelIdentifier(
        namespace=validate_part(namespace, "Namespace"),
        model=validate_part(model, "Model name"),
        tag=validate_part(tag, "Tag"),
    )
