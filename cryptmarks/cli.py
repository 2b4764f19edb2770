"""
CLI interface for the encrypted bookmark store.

Usage:
    cryptmarks init --backend plain
    cryptmarks add https://example.com -d "Example" -t "web, demo"
    cryptmarks list --tag web
    cryptmarks select --tag web
"""

import json
import os
from pathlib import Path
from typing import Optional, Sequence

import typer
from typing_extensions import Annotated

from .api import Bookmarks
from .config import DEFAULT_BACKEND, StoreConfig, get_config_dir, load_config, save_config
from .errors import CryptmarksError
from .logging_config import configure_quiet_mode, enable_debug_mode
from .types import Bookmark


# Set CRYPTMARKS_VERBOSE=1 to enable debug mode via environment
if os.environ.get("CRYPTMARKS_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"cryptmarks {version('cryptmarks')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="cryptmarks",
    help="Encrypted bookmark store.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="CRYPTMARKS_HOME",
        help="Path to the store directory (default: ~/.cryptmarks/)",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Encrypted bookmark store."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

TagOption = Annotated[
    Optional[str],
    typer.Option(
        "--tag", "-t",
        help="Only bookmarks with this tag"
    )
]

DescriptionOption = Annotated[
    Optional[str],
    typer.Option(
        "--description", "-d",
        help="Description text"
    )
]

TagsOption = Annotated[
    Optional[str],
    typer.Option(
        "--tags", "-t",
        help="Tags, separated by commas or spaces"
    )
]


def _store_dir() -> Path:
    override = _get_store_override()
    return override.expanduser() if override is not None else get_config_dir()


def _get_bookmarks() -> Bookmarks:
    """Open the store, turning configuration problems into a clean exit."""
    try:
        return Bookmarks(_store_dir())
    except CryptmarksError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _fail(e: Exception) -> None:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(1)


def _format_bookmark(b: Bookmark) -> str:
    line = b.url
    if b.description:
        line += f"  {b.description}"
    if b.tags:
        line += f"  [{', '.join(b.tags)}]"
    return line


def _format_bookmarks(bookmarks: Sequence[Bookmark], as_json: bool = False) -> str:
    if as_json:
        return json.dumps([b.to_dict() for b in bookmarks], ensure_ascii=False, indent=2)
    if not bookmarks:
        return "No bookmarks."
    return "\n".join(_format_bookmark(b) for b in bookmarks)


def _prompt_choice(candidates: Sequence[Bookmark]) -> Bookmark:
    """Numbered menu on stderr, so stdout carries only the chosen URL."""
    if len(candidates) == 1:
        return candidates[0]
    for i, b in enumerate(candidates, start=1):
        typer.echo(f"{i:3d}. {_format_bookmark(b)}", err=True)
    while True:
        n = typer.prompt("Select", type=int, err=True)
        if 1 <= n <= len(candidates):
            return candidates[n - 1]
        typer.echo(f"Enter a number from 1 to {len(candidates)}", err=True)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def init(
    backend: Annotated[Optional[str], typer.Option(
        "--backend", "-b",
        help="Storage backend: 'encrypted', 'plain' or a custom backend name"
    )] = None,
    recipient: Annotated[Optional[str], typer.Option(
        "--recipient", "-r",
        help="gpg identity to encrypt to (default: symmetric passphrase)"
    )] = None,
):
    """Write the store configuration and create an empty bookmarks file."""
    store_dir = _store_dir()
    try:
        if (store_dir / "cryptmarks.toml").exists():
            config = load_config(store_dir)
        else:
            config = StoreConfig(path=store_dir, backend=backend or DEFAULT_BACKEND)
        if backend:
            config.backend = backend
        if recipient:
            config.recipient = recipient
        with Bookmarks(config=config) as bm:
            save_config(config)
            created = bm.initialize()
    except CryptmarksError as e:
        _fail(e)
    if created:
        typer.echo(f"Created {config.data_path}")
    else:
        typer.echo("Store already initialized.")


@app.command()
def add(
    url: Annotated[str, typer.Argument(help="Bookmark URL (http or https)")],
    description: DescriptionOption = None,
    tags: TagsOption = None,
):
    """Add a bookmark."""
    with _get_bookmarks() as bm:
        try:
            b = bm.add(url, description, tags)
        except CryptmarksError as e:
            _fail(e)
        if _get_json_output():
            typer.echo(json.dumps(b.to_dict(), ensure_ascii=False))
        else:
            typer.echo(f"Added {b.url}")


@app.command()
def delete(
    url: Annotated[str, typer.Argument(help="URL of the bookmark to delete")],
):
    """Delete a bookmark."""
    with _get_bookmarks() as bm:
        try:
            removed = bm.delete(url)
        except CryptmarksError as e:
            _fail(e)
    if removed:
        typer.echo(f"Deleted {url}")
    else:
        typer.echo(f"Not found: {url}", err=True)


@app.command()
def edit(
    url: Annotated[str, typer.Argument(help="URL of the bookmark to edit")],
    description: DescriptionOption = None,
    tags: TagsOption = None,
):
    """Replace a bookmark's description and tags.

    Options left out are cleared.
    """
    with _get_bookmarks() as bm:
        try:
            b = bm.edit(url, description, tags)
        except CryptmarksError as e:
            _fail(e)
        if _get_json_output():
            typer.echo(json.dumps(b.to_dict(), ensure_ascii=False))
        else:
            typer.echo(f"Updated {b.url}")


@app.command("list")
def list_bookmarks(
    tag: TagOption = None,
):
    """List bookmarks in store order."""
    with _get_bookmarks() as bm:
        try:
            results = bm.list(tag)
        except CryptmarksError as e:
            _fail(e)
    typer.echo(_format_bookmarks(results, as_json=_get_json_output()))


@app.command()
def select(
    tag: TagOption = None,
):
    """Choose a bookmark and print its URL."""
    with _get_bookmarks() as bm:
        try:
            url = bm.select_one(tag, chooser=_prompt_choice)
        except CryptmarksError as e:
            _fail(e)
    typer.echo(url)


@app.command()
def tags():
    """List all tags in use."""
    with _get_bookmarks() as bm:
        try:
            values = bm.list_tags()
        except CryptmarksError as e:
            _fail(e)
    if _get_json_output():
        typer.echo(json.dumps(values))
    elif not values:
        typer.echo("No tags found.")
    else:
        for v in values:
            typer.echo(v)


@app.command()
def reload():
    """Re-read the bookmarks file, reporting how many records it holds."""
    with _get_bookmarks() as bm:
        try:
            records = bm.reload()
        except CryptmarksError as e:
            _fail(e)
        dropped = bm.cache.dropped
    typer.echo(f"{len(records)} bookmarks")
    if dropped:
        typer.echo(f"Warning: {dropped} invalid records ignored", err=True)


@app.command("clear-cache")
def clear_cache():
    """Drop decrypted bookmarks from memory."""
    with _get_bookmarks() as bm:
        bm.clear_cache()
    typer.echo("Cache cleared.")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="cryptmarks CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
