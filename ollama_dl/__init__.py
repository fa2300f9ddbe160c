"""
Top-level package for the Ollama direct download service.

Turns a model name such as ``gemma2:2b`` into direct registry URLs for its
manifest and blobs. Exposed as a FastAPI app (see `main.py`) and a CLI
(see `cli.py`).
"""

from .identifier import ModelIdentifier, parse_model_input

__all__ = ["ModelIdentifier", "parse_model_input"]
