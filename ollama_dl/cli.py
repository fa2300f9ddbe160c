"""Command-line front end: print direct download links for a model."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .errors import RelayError, ValidationError
from .history import SearchHistory, SearchOutcome
from .identifier import ModelIdentifier, parse_model_input
from .main import configure_logging, run
from .manifest import blob_links, human_size
from .relay import ManifestRelay
from .urls import blobs_folder_hint, manifest_folder_hint, manifest_url, model_page_url

app = typer.Typer(no_args_is_help=True, help="Direct download links for Ollama models.")

_console = Console(emoji=False, highlight=False)

EXIT_FETCH_FAILED = 1
EXIT_BAD_NAME = 2


def build_relay() -> ManifestRelay:
    return ManifestRelay()


def fetch_manifest(ident: ModelIdentifier, relay: ManifestRelay) -> Any:
    return asyncio.run(relay.fetch(manifest_url(ident)))


def build_blobs_table(ident: ModelIdentifier, manifest: Any) -> Table:
    table = Table(title=f"Blobs for {ident}")
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("Size", style="white", justify="right")
    table.add_column("File name", style="green")
    table.add_column("URL", style="magenta", overflow="fold")
    for link in blob_links(ident, manifest):
        table.add_row(link.kind, human_size(link.size), link.filename, link.url)
    return table


def print_links(ident: ModelIdentifier, manifest: Any) -> None:
    _console.print(f"Model page: {model_page_url(ident)}", soft_wrap=True, highlight=False)
    _console.print(f"Manifest:   {manifest_url(ident)}", soft_wrap=True, highlight=False)
    _console.print(build_blobs_table(ident, manifest))
    _console.print(
        f"Save the manifest as '{ident.tag}' in {manifest_folder_hint(ident)}",
        soft_wrap=True,
        highlight=False,
        markup=False,
    )
    _console.print(
        f"Save the blobs under their file names in {blobs_folder_hint()}",
        soft_wrap=True,
        highlight=False,
        markup=False,
    )


def print_relay_error(message: str, exc: RelayError) -> None:
    _console.print(message, style="bold red", soft_wrap=True, markup=False)
    if exc.original_message:
        _console.print(
            f"Original error details: {exc.original_message}",
            style="red",
            soft_wrap=True,
            markup=False,
        )


@app.command()
def links(
    model: str = typer.Argument(..., help="Model name, e.g. gemma2:2b or 'ollama pull gemma2:2b'."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw manifest instead."),
) -> None:
    """Resolve MODEL and print its manifest and blob download URLs."""
    configure_logging("WARNING")
    try:
        ident = parse_model_input(model)
    except ValidationError as exc:
        _console.print(exc.message, style="bold red", markup=False)
        raise typer.Exit(code=EXIT_BAD_NAME)

    try:
        manifest = fetch_manifest(ident, build_relay())
    except RelayError as exc:
        print_relay_error(exc.message, exc)
        raise typer.Exit(code=EXIT_FETCH_FAILED)

    if as_json:
        typer.echo(json.dumps(manifest, indent=2))
        return
    print_links(ident, manifest)


@app.command()
def shell() -> None:
    """Ask for model names repeatedly; an empty line or 'exit' quits."""
    configure_logging("WARNING")
    relay = build_relay()
    history = SearchHistory()

    while True:
        try:
            raw = Prompt.ask("Model", default="", show_default=False, console=_console)
        except (EOFError, KeyboardInterrupt):
            break
        raw = raw.strip()
        if not raw or raw.lower() in ("exit", "quit"):
            break

        try:
            ident = parse_model_input(raw)
        except ValidationError as exc:
            _console.print(exc.message, style="bold red", markup=False)
            continue

        outcome = history.check(ident)
        if outcome is SearchOutcome.ALREADY_SUCCEEDED:
            _console.print("You have already searched for this model successfully", style="blue")
            continue
        if outcome is SearchOutcome.RETRY:
            _console.print("Retrying the same model that failed previously", style="yellow")

        try:
            manifest = fetch_manifest(ident, relay)
        except RelayError as exc:
            history.record(ident, ok=False)
            print_relay_error(history.decorate(exc.message, outcome), exc)
            continue

        history.record(ident, ok=True)
        print_links(ident, manifest)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: int = typer.Option(8080, help="Port to listen on."),
) -> None:
    """Run the HTTP API with uvicorn."""
    run(host=host, port=port)


if __name__ == "__main__":
    app()
