"""
CLI interface for notion-util.

Usage:
    notion-util book "query"
    notion-util read "exact-ish title"
    notion-util newdraft "Title - first paragraph"
    notion-util memo "a passing thought"
    notion-util today "appended to today's note"
"""

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from typing_extensions import Annotated

from .api import Notebook
from .client import NotionClient
from .config import BOOK, DRAFT, PEOPLE, Config, get_config_path, load_or_default_config, save_config
from .errors import log_exception
from .logging_config import configure_quiet_mode, enable_debug_mode
from .types import QueryResult

T = TypeVar("T")

# Listings show at most this many of the most recent results
MAX_LISTED = 20

# "Title - content"; content is optional
_DRAFT_PATTERN = re.compile(r"^\s*([^-]+?)\s*(?:-\s*(.*))?$", re.DOTALL)


# Configure quiet mode by default (suppress verbose library output)
# Set NOTION_UTIL_VERBOSE=1 to enable debug mode via environment
if os.environ.get("NOTION_UTIL_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"notion-util {version('notion-util')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_config_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _config_callback(value: Optional[Path]):
    global _config_override
    _config_override = value


app = typer.Typer(
    name="notion-util",
    help="Search, stamp and append to a Notion workspace.",
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
    config: Annotated[Optional[Path], typer.Option(
        "--config", "-c",
        envvar="NOTION_UTIL_CONFIG",
        help="Path to the config file",
        callback=_config_callback,
        is_eager=True,
    )] = None,
):
    """Search, stamp and append to a Notion workspace."""


# -----------------------------------------------------------------------------
# Plumbing
# -----------------------------------------------------------------------------


def _get_notebook() -> Notebook:
    """Build a Notebook from the config file and environment."""
    config = load_or_default_config(_config_override)
    log_dir = get_config_path().parent if config.path is None else config.path.parent
    client = NotionClient(config.token(), api_url=config.api_url)
    return Notebook(client, config, log_dir=log_dir)


def _run(command: str, action: Callable[[Notebook], Awaitable[T]]) -> T:
    """Run ``action`` against a fresh Notebook, reporting any error and exiting 1."""

    async def runner() -> T:
        notebook = _get_notebook()
        try:
            return await action(notebook)
        finally:
            await notebook.close()

    try:
        return asyncio.run(runner())
    except Exception as e:
        log_exception(e, command)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def slice_results(lines: list[str], limit: int = MAX_LISTED) -> list[str]:
    """At most ``limit`` lines: the most recent ones, the last line noting how many were left out."""
    if len(lines) <= limit:
        return list(lines)
    if limit <= 1:
        return [f"... and {len(lines)} more"] if limit else []
    shown = lines[-(limit - 1):]
    return shown + [f"... and {len(lines) - len(shown)} more"]


def _dumps(data) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


def _result_dict(r: QueryResult, notebook: Notebook) -> dict:
    return {
        "id": r.id,
        "title": r.title,
        "url": notebook.page_url(r.id),
        "date": None if r.date_value == "undefined" else json.loads(r.date_value),
    }


def _format_results(results: list[QueryResult], notebook: Notebook) -> str:
    if _json_output:
        return _dumps([_result_dict(r, notebook) for r in results])
    return "\n".join(slice_results([
        f"• {r.title}  {notebook.page_url(r.id)}" for r in results
    ]))


def _list(command: str, kind: str, search_term: str, nothing: str) -> None:
    async def action(nb: Notebook) -> str:
        results = await nb.query(kind, search_term)
        if not results and not _json_output:
            return f"{nothing}: {search_term}"
        return _format_results(results, nb)

    typer.echo(_run(command, action))


def _stamp(command: str, kind: str, search_term: str, nothing: str, label: str) -> None:
    async def action(nb: Notebook) -> str:
        results = await nb.query(kind, search_term)
        if not results:
            if _json_output:
                return _dumps({"status": "not_found", "search": search_term})
            return f"{nothing}: {search_term}"
        if len(results) > 1:
            if _json_output:
                return _dumps({
                    "status": "ambiguous",
                    "search": search_term,
                    "candidates": [_result_dict(r, nb) for r in results],
                })
            titles = slice_results([r.title for r in results])
            return "Which one? " + ", ".join(titles)
        match = results[0]
        stamp = nb.update_read_at if kind == BOOK else nb.update_met_at
        day = await stamp(match.id)
        if _json_output:
            return _dumps({
                "status": "stamped",
                "id": match.id,
                "title": match.title,
                "url": nb.page_url(match.id),
                "date": day,
            })
        return f"{match.title} ({nb.page_url(match.id)}): {label} {day}"

    typer.echo(_run(command, action))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

SearchArgument = Annotated[str, typer.Argument(help="Substring of the title (case-sensitive)")]


@app.command()
def book(search_term: SearchArgument = ""):
    """List books whose title contains SEARCH_TERM."""
    _list("book", BOOK, search_term, "No such book")


@app.command()
def read(search_term: SearchArgument):
    """Mark a book as read today."""
    _stamp("read", BOOK, search_term, "No such book", "read at")


@app.command()
def draft(search_term: SearchArgument = ""):
    """List drafts whose title contains SEARCH_TERM."""
    _list("draft", DRAFT, search_term, "No such draft")


@app.command()
def newdraft(
    text: Annotated[str, typer.Argument(help='"Title - first paragraph" (paragraph optional)')],
):
    """Create a new draft."""
    match = _DRAFT_PATTERN.match(text)
    if not match or not match.group(1).strip():
        typer.echo('Error: expected "Title - content"', err=True)
        raise typer.Exit(1)
    title = match.group(1).strip()
    content = (match.group(2) or "").strip() or None

    async def action(nb: Notebook) -> str:
        draft_id = await nb.create_draft(title, content)
        if _json_output:
            return _dumps({"id": draft_id, "title": title, "url": nb.page_url(draft_id)})
        return f"Created {title}: {nb.page_url(draft_id)}"

    typer.echo(_run("newdraft", action))


@app.command()
def people(search_term: SearchArgument = ""):
    """List people whose name contains SEARCH_TERM."""
    _list("people", PEOPLE, search_term, "No such person")


@app.command()
def met(search_term: SearchArgument):
    """Mark a person as met today."""
    _stamp("met", PEOPLE, search_term, "No such person", "met at")


@app.command()
def memo(text: Annotated[str, typer.Argument(help="Memo text")]):
    """Append a timestamped bullet to the memo page."""

    async def action(nb: Notebook) -> str:
        page_id = await nb.memo(text)
        if _json_output:
            return _dumps({"id": page_id, "url": nb.page_url(page_id)})
        return f"Added to memo: {nb.page_url(page_id)}"

    typer.echo(_run("memo", action))


@app.command()
def today(
    text: Annotated[Optional[str], typer.Argument(help="Text to append to today's note")] = None,
):
    """Show today's note, or append TEXT to it (creating the note if needed)."""

    async def action(nb: Notebook) -> str:
        if text:
            page_id = await nb.append_today(text)
            if _json_output:
                return _dumps({"date": nb.today(), "id": page_id, "url": nb.page_url(page_id)})
            return f"Added to {nb.today()}: {nb.page_url(page_id)}"
        page_id = await nb.ensure_today_id()
        if _json_output:
            return _dumps({"date": nb.today(), "id": page_id, "url": nb.page_url(page_id)})
        return f"{nb.today()}: {nb.page_url(page_id)}"

    typer.echo(_run("today", action))


@app.command()
def init(
    force: Annotated[bool, typer.Option("--force", "-f", help="Overwrite an existing file")] = False,
):
    """Write the default configuration file."""
    path = _config_override or get_config_path()
    if path.exists() and not force:
        typer.echo(f"Config already exists: {path} (use --force to overwrite)", err=True)
        raise typer.Exit(1)
    save_config(Config(), path)
    typer.echo(f"Wrote {path}")


def main():
    app()


if __name__ == "__main__":
    main()
