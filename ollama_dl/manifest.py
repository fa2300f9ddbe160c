"""
Turning a relayed registry manifest into direct download links.

A manifest looks like::

    {
      "schemaVersion": 2,
      "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
      "config": {"mediaType": "...container.image.v1+json", "digest": "sha256:...", "size": 487},
      "layers": [
        {"mediaType": "application/vnd.ollama.image.model", "digest": "sha256:...", "size": 1629509152},
        ...
      ]
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .config import REGISTRY_HOST
from .identifier import ModelIdentifier
from .urls import blob_url, digest_to_filename

LAYER_KINDS: Dict[str, str] = {
    "application/vnd.ollama.image.model": "model",
    "application/vnd.ollama.image.template": "template",
    "application/vnd.ollama.image.license": "license",
    "application/vnd.ollama.image.params": "params",
    "application/vnd.ollama.image.system": "system",
    "application/vnd.ollama.image.projector": "projector",
    "application/vnd.ollama.image.adapter": "adapter",
    "application/vnd.docker.container.image.v1+json": "config",
}


@dataclass
class BlobLink:
    """A manifest layer or config blob with its direct download URL."""

    kind: str
    media_type: str
    digest: str
    size: int
    url: str
    filename: str


def _blob_link(ident: ModelIdentifier, entry: Dict[str, Any], registry_host: str) -> BlobLink:
    media_type = str(entry.get("mediaType", ""))
    digest = str(entry["digest"])
    return BlobLink(
        kind=LAYER_KINDS.get(media_type, media_type or "unknown"),
        media_type=media_type,
        digest=digest,
        size=int(entry.get("size") or 0),
        url=blob_url(ident, digest, registry_host),
        filename=digest_to_filename(digest),
    )


def blob_links(
    ident: ModelIdentifier, manifest: Any, registry_host: str = REGISTRY_HOST
) -> List[BlobLink]:
    """
    Layers in manifest order, then the config blob.

    Entries without a digest are skipped; anything that is not a manifest
    object yields an empty list.
    """
    if not isinstance(manifest, dict):
        return []

    entries: List[Dict[str, Any]] = []
    layers = manifest.get("layers")
    if isinstance(layers, list):
        entries.extend(layer for layer in layers if isinstance(layer, dict))
    config = manifest.get("config")
    if isinstance(config, dict):
        entries.append(config)

    return [_blob_link(ident, entry, registry_host) for entry in entries if entry.get("digest")]


def human_size(size: float, decimal_places: int = 1) -> str:
    """Converts bytes into a human-readable string."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024:
            return f"{size:.{decimal_places}f} {unit}"
        size /= 1024
    return f"{size:.{decimal_places}f} PB"
