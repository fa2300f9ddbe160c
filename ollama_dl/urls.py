"""
Registry URL construction.

Pure string functions over a validated ``ModelIdentifier``; no I/O and no
validation. Layout follows the registry v2 API:

    https://registry.ollama.ai/v2/<namespace>/<model>/manifests/<tag>
    https://registry.ollama.ai/v2/<namespace>/<model>/blobs/sha256:<hex>
"""

from __future__ import annotations

from .config import MODEL_PAGE_HOST, MODELS_ROOT, REGISTRY_HOST
from .identifier import ModelIdentifier


def registry_base_url(ident: ModelIdentifier, registry_host: str = REGISTRY_HOST) -> str:
    return f"https://{registry_host}/v2/{ident.path_id}/"


def manifest_url(ident: ModelIdentifier, registry_host: str = REGISTRY_HOST) -> str:
    return f"{registry_base_url(ident, registry_host)}manifests/{ident.tag}"


def blob_url(
    ident: ModelIdentifier, digest: str, registry_host: str = REGISTRY_HOST
) -> str:
    """URL of a single blob; ``digest`` is expected as ``sha256:<hex>``."""
    return f"{registry_base_url(ident, registry_host)}blobs/{digest}"


def model_page_url(ident: ModelIdentifier, page_host: str = MODEL_PAGE_HOST) -> str:
    return f"https://{page_host}/{ident.path_id}"


def manifest_folder_hint(
    ident: ModelIdentifier,
    root: str = MODELS_ROOT,
    registry_host: str = REGISTRY_HOST,
    sep: str = "\\",
) -> str:
    """
    Where Ollama keeps the manifest for this model, e.g.
    ``$OLLAMA_MODELS\\manifests\\registry.ollama.ai\\library\\gemma2``.

    Informational only; the downloaded manifest goes into this folder under
    the tag name.
    """
    return sep.join([root, "manifests", registry_host, ident.namespace, ident.model])


def blobs_folder_hint(root: str = MODELS_ROOT, sep: str = "\\") -> str:
    return sep.join([root, "blobs"])


def digest_to_filename(digest: str) -> str:
    """``sha256:<hex>`` -> ``sha256-<hex>``, the name Ollama stores blobs under."""
    return digest.replace(":", "-", 1)
