"""
FastAPI server for the Daily Journal service.

This module implements the HTTP API over a JSON-file entry store: lookups by
date, month summaries for the calendar, search, create-or-replace, update,
delete, and whole-journal export and import.
"""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Body, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware

from .errors import NotFoundError, StorageError, ValidationError
from .merger import export_document, export_filename, import_document
from .models import (
    Entry,
    EntryCreate,
    EntryUpdate,
    MonthSummary,
    SearchResult,
)
from .store import DEFAULT_DB_PATH, EntryStore, JsonFileEntryStore

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000


def _storage_failure(e: StorageError) -> HTTPException:
    logger.error("Storage failure: %s", e)
    return HTTPException(status_code=500, detail="Failed to access journal storage")


def create_app(entry_store: EntryStore) -> FastAPI:
    """
    Create a FastAPI application with the given entry store.

    Args:
        entry_store: The EntryStore instance to use for the application

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        logger.info("Daily Journal API starting")
        yield

    app = FastAPI(
        title="Daily Journal",
        description="Calendar journal with JSON file storage",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api = APIRouter(prefix="/api")

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "daily-journal"}

    @api.get("/entries")
    async def get_entry(date: str | None = Query(None)) -> Entry:
        """Get the entry for a single date."""
        try:
            return await entry_store.get_by_date(date)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Not found")
        except StorageError as e:
            raise _storage_failure(e)

    @api.get("/entries/by-month")
    async def entries_by_month(
        year: int = Query(...), month: int = Query(...)
    ) -> list[MonthSummary]:
        """Get summaries for the calendar dots of one month."""
        try:
            return await entry_store.list_by_month(year, month)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            raise _storage_failure(e)

    @api.get("/entries/search")
    async def search_entries(q: str = Query("")) -> list[SearchResult]:
        """Search titles and contents, newest date first."""
        try:
            return await entry_store.search(q)
        except StorageError as e:
            raise _storage_failure(e)

    @api.post("/entries", status_code=201)
    async def create_entry(draft: EntryCreate) -> dict[str, str]:
        """
        Create the entry for a date, replacing any existing entry on that date.

        Returns:
            The id of the new entry
        """
        try:
            entry_id = await entry_store.create(draft)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            raise _storage_failure(e)
        return {"id": entry_id}

    @api.put("/entries/{entry_id}")
    async def update_entry(entry_id: str, changes: EntryUpdate) -> dict[str, Any]:
        """Merge the given fields into an existing entry."""
        try:
            entry = await entry_store.update(entry_id, changes)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Not found")
        except StorageError as e:
            raise _storage_failure(e)
        return {"ok": True, "entry": entry.to_json()}

    @api.delete("/entries/{entry_id}")
    async def delete_entry(entry_id: str) -> dict[str, bool]:
        """Delete an entry by id."""
        try:
            await entry_store.delete(entry_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Not found")
        except StorageError as e:
            raise _storage_failure(e)
        return {"ok": True}

    @api.get("/export")
    async def export_entries(response: Response) -> dict[str, Any]:
        """Download every entry as an attachment, newest date first."""
        try:
            document = await export_document(entry_store)
        except StorageError as e:
            raise _storage_failure(e)
        response.headers["Content-Disposition"] = (
            f"attachment; filename={export_filename()}"
        )
        return document.to_json()

    @api.post("/import")
    async def import_entries(payload: Any = Body(None)) -> dict[str, Any]:
        """
        Merge an exported document into the store, keyed by entry id.

        Returns:
            The number of entries processed
        """
        try:
            count = await import_document(entry_store, payload)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            raise _storage_failure(e)
        return {"ok": True, "count": count}

    app.include_router(api)
    return app


app = create_app(JsonFileEntryStore(os.environ.get("JOURNAL_DB", DEFAULT_DB_PATH)))


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    uvicorn.run(
        "daily_journal.server:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", DEFAULT_PORT)),
        log_level="info",
    )


if __name__ == "__main__":
    main()
