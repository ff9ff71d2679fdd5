"""
Command-line client for the Daily Journal service.

Every command talks to the server when it is reachable and falls back to the
local journal in the user's data directory when it is not.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .errors import JournalError, NotFoundError, TransportError
from .local import DEFAULT_HOME, STORAGE_FILENAME, LocalEntryStore, LocalStorage
from .merger import export_document, export_filename, import_document
from .models import Entry, EntryCreate, EntryUpdate
from .remote import DEFAULT_BASE_URL, RemoteEntryStore
from .selector import StoreSelector
from .store import DEFAULT_DB_PATH

app = typer.Typer(help="Daily Journal CLI tools")

UrlOption = Annotated[
    str,
    typer.Option(
        "--url", "-u", envvar="DAILY_JOURNAL_URL", help="Base URL of the journal server"
    ),
]
HomeOption = Annotated[
    Path,
    typer.Option(
        "--home", envvar="DAILY_JOURNAL_HOME", help="Directory of the offline journal"
    ),
]

MOOD_LABELS = {1: "awful", 2: "bad", 3: "okay", 4: "good", 5: "great"}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Write, browse and back up journal entries."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )


# MARK: - Commands


@app.command()
def show(
    date: str = typer.Argument(..., help="Entry date, YYYY-MM-DD"),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show the entry for a date."""

    async def _show() -> None:
        selector = _selector(base_url, home)
        try:
            entry = await selector.get_by_date(date)
        except NotFoundError:
            print(f"No entry for {date}")
            return
        finally:
            _report_status(selector)

        if json_output:
            print(json.dumps(entry.to_json(), indent=2))
        else:
            print(_format_entry(entry))

    _run_with_error_handling(_show(), base_url)


@app.command()
def month(
    year: int = typer.Argument(..., help="Four-digit year"),
    month: int = typer.Argument(..., help="Month number, 1-12"),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
) -> None:
    """List the dates that have entries in a month."""

    async def _month() -> None:
        selector = _selector(base_url, home)
        rows = await selector.refresh(year, month)
        _report_status(selector)

        if not rows:
            print("No entries this month")
        for row in sorted(rows, key=lambda row: row.date):
            print(f"{row.date}  {_format_mood(row.mood)}")

    _run_with_error_handling(_month(), base_url)


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to look for in titles and contents"),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
) -> None:
    """Search entries, newest first."""

    async def _search() -> None:
        selector = _selector(base_url, home)
        rows = await selector.search(query)
        _report_status(selector)

        if not rows:
            print("No matches")
        for row in rows:
            print(f"{row.date}  {row.title or '(No title)'}")
            if row.snippet:
                print(f"    {row.snippet}")

    _run_with_error_handling(_search(), base_url)


@app.command()
def save(
    date: str = typer.Argument(..., help="Entry date, YYYY-MM-DD"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Entry title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="Entry text"),
    mood: Optional[int] = typer.Option(None, "--mood", "-m", help="Mood, 1-5"),
    tags: Optional[list[str]] = typer.Option(
        None, "--tag", help="Tag, may be repeated"
    ),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
) -> None:
    """Save the entry for a date, updating it if one already exists."""
    fields: dict[str, Any] = {
        "title": title.strip() if title is not None else None,
        "content": content.strip() if content is not None else None,
        "mood": mood,
        "tags": [tag.strip() for tag in tags if tag.strip()] if tags else None,
    }
    fields = {name: value for name, value in fields.items() if value is not None}

    async def _save() -> None:
        selector = _selector(base_url, home)
        try:
            existing = await selector.get_by_date(date)
        except NotFoundError:
            entry_id = await selector.create(EntryCreate(date=date, **fields))
            print(f"Created entry {entry_id} for {date}")
        else:
            await selector.update(existing.id, EntryUpdate.model_validate(fields))
            print(f"Updated entry {existing.id} for {date}")
        _report_status(selector)

    _run_with_error_handling(_save(), base_url)


@app.command()
def delete(
    date: str = typer.Argument(..., help="Entry date, YYYY-MM-DD"),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete the entry for a date."""
    if not yes:
        typer.confirm(f"Delete the entry for {date}?", abort=True)

    async def _delete() -> None:
        selector = _selector(base_url, home)
        entry = await selector.get_by_date(date)
        await selector.delete(entry.id)
        _report_status(selector)
        print(f"Deleted entry for {date}")

    _run_with_error_handling(_delete(), base_url)


@app.command()
def export(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Destination file (default: dated file name)"
    ),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
) -> None:
    """Export every entry to a JSON document."""

    async def _export() -> None:
        selector = _selector(base_url, home)
        document = await export_document(selector)
        _report_status(selector)

        path = output or Path(export_filename())
        path.write_text(json.dumps(document.to_json(), indent=2), encoding="utf-8")
        print(f"Exported {len(document.entries)} entries to {path}")

    _run_with_error_handling(_export(), base_url)


@app.command("import")
def import_(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export file"),
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
) -> None:
    """Import a JSON document produced by export."""

    async def _import() -> None:
        payload = json.loads(path.read_text(encoding="utf-8"))
        selector = _selector(base_url, home)
        count = await import_document(selector, payload)
        _report_status(selector)
        print(f"Imported {count} entries")

    _run_with_error_handling(_import(), base_url)


@app.command()
def sync(
    base_url: UrlOption = DEFAULT_BASE_URL,
    home: HomeOption = DEFAULT_HOME,
) -> None:
    """Copy entries written while offline into the server journal."""

    async def _sync() -> None:
        selector = _selector(base_url, home)
        count = await selector.backfill()
        print(f"Copied {count} local entries to {base_url}")

    _run_with_error_handling(_sync(), base_url)


@app.command()
def serve(
    port: int = typer.Option(3000, "--port", "-p", envvar="PORT", help="Port to bind"),
    db: Path = typer.Option(
        Path(DEFAULT_DB_PATH), "--db", envvar="JOURNAL_DB", help="Journal JSON file"
    ),
) -> None:
    """Run the journal HTTP server."""
    import uvicorn

    from .server import create_app
    from .store import JsonFileEntryStore

    uvicorn.run(create_app(JsonFileEntryStore(db)), host="0.0.0.0", port=port)


# MARK: - Private Helpers


def _selector(base_url: str, home: Path) -> StoreSelector:
    local = LocalEntryStore(LocalStorage(home / STORAGE_FILENAME))
    return StoreSelector(RemoteEntryStore(base_url), local)


def _report_status(selector: StoreSelector) -> None:
    if not selector.available:
        print(f"[{selector.status}] server unreachable, using the local journal")


def _format_mood(mood: int | None) -> str:
    if mood is None:
        return "-"
    return MOOD_LABELS.get(mood, str(mood))


def _format_entry(entry: Entry) -> str:
    lines = [f"{entry.date}  {entry.title or '(No title)'}"]
    lines.append(f"Mood: {_format_mood(entry.mood)}")
    if entry.tags:
        lines.append(f"Tags: {', '.join(entry.tags)}")
    if entry.content:
        lines.append("")
        lines.append(entry.content)
    return "\n".join(lines)


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except TransportError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except JournalError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: Not a JSON document - {e}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
