"""
Entry storage implementations for the Daily Journal service.

This module defines the store contract shared by every backend and the
list-backed implementation used by both the server-side JSON file store and the
device-local fallback store. Entries are kept as a single flat list and queried
by linear scan, which is plenty at personal-journal scale.
"""

import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from .errors import NotFoundError, StorageError, ValidationError
from .models import (
    Entry,
    EntryCreate,
    EntryUpdate,
    ExportDocument,
    MonthSummary,
    SearchResult,
    utcnow,
    validate_date,
)

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "journal.json"
SEARCH_LIMIT = 100
SNIPPET_LENGTH = 200


def month_prefix(year: int, month: int) -> str:
    """Return the ``YYYY-MM-`` prefix shared by every date in the month."""
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ValidationError("Invalid year or month")
    return f"{year:04d}-{month:02d}-"


def sort_by_date_desc(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


class EntryStore(ABC):
    """
    The capability set every journal backend provides.

    Implementations raise ``ValidationError`` for malformed input,
    ``NotFoundError`` for unknown ids or dates, and ``TransportError`` or
    ``StorageError`` when the backing medium fails.
    """

    @abstractmethod
    async def get_by_date(self, date: str) -> Entry:
        """Return the entry for date, or raise NotFoundError."""

    @abstractmethod
    async def list_by_month(self, year: int, month: int) -> list[MonthSummary]:
        """Return summaries for every entry dated in the given month."""

    @abstractmethod
    async def search(self, query: str) -> list[SearchResult]:
        """Return entries whose title or content contains query."""

    @abstractmethod
    async def create(self, draft: EntryCreate) -> str:
        """Create or replace the entry for draft.date and return its new id."""

    @abstractmethod
    async def update(self, entry_id: str, changes: EntryUpdate) -> Entry:
        """Merge changes into an existing entry and return it."""

    @abstractmethod
    async def delete(self, entry_id: str) -> None:
        """Remove an entry by id."""

    @abstractmethod
    async def export_all(self) -> list[Entry]:
        """Return every entry, newest date first."""

    @abstractmethod
    async def put_many(self, entries: list[Entry]) -> int:
        """Insert or replace complete entries keyed by id, return the count."""

    def new_id(self) -> str:
        """Mint an identifier for an entry that has none."""
        return uuid.uuid4().hex


class ListEntryStore(EntryStore):
    """
    Store logic over a flat list of entries.

    Subclasses only decide how the list is loaded and saved, and may override
    ``new_id``. ``_load`` must return a fresh list so a failed save never leaves a
    half-applied mutation behind.
    """

    @abstractmethod
    def _load(self) -> list[Entry]: ...

    @abstractmethod
    def _save(self, entries: list[Entry]) -> None: ...

    async def get_by_date(self, date: str) -> Entry:
        validate_date(date)
        for entry in self._load():
            if entry.date == date:
                return entry
        raise NotFoundError(f"No entry for {date}")

    async def list_by_month(self, year: int, month: int) -> list[MonthSummary]:
        prefix = month_prefix(year, month)
        return [
            MonthSummary(id=entry.id, date=entry.date, mood=entry.mood)
            for entry in self._load()
            if entry.date.startswith(prefix)
        ]

    async def search(self, query: str) -> list[SearchResult]:
        needle = query.strip().lower()
        if not needle:
            return []

        hits = [
            entry
            for entry in self._load()
            if needle in entry.title.lower() or needle in entry.content.lower()
        ]
        return [
            SearchResult(
                id=entry.id,
                date=entry.date,
                title=entry.title,
                snippet=entry.content[:SNIPPET_LENGTH],
                mood=entry.mood,
            )
            for entry in sort_by_date_desc(hits)[:SEARCH_LIMIT]
        ]

    async def create(self, draft: EntryCreate) -> str:
        date = validate_date(draft.date)
        now = utcnow()
        entry = Entry(
            id=self.new_id(),
            date=date,
            title=draft.title,
            content=draft.content,
            mood=draft.mood,
            tags=list(draft.tags),
            created_at=now,
            updated_at=now,
        )

        # One entry per date: the new entry replaces any existing one
        entries = [existing for existing in self._load() if existing.date != date]
        entries.append(entry)
        self._save(entries)
        return entry.id

    async def update(self, entry_id: str, changes: EntryUpdate) -> Entry:
        entries = self._load()
        for index, entry in enumerate(entries):
            if entry.id == entry_id:
                break
        else:
            raise NotFoundError(f"No entry with id {entry_id}")

        updated = entry.model_copy(
            update={
                **changes.changes(),
                "updated_at": max(utcnow(), entry.updated_at),
            }
        )
        entries[index] = updated
        self._save(entries)
        return updated

    async def delete(self, entry_id: str) -> None:
        entries = self._load()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            raise NotFoundError(f"No entry with id {entry_id}")
        self._save(remaining)

    async def export_all(self) -> list[Entry]:
        return sort_by_date_desc(self._load())

    async def put_many(self, entries: list[Entry]) -> int:
        current = self._load()
        positions = {entry.id: index for index, entry in enumerate(current)}
        for entry in entries:
            index = positions.get(entry.id)
            if index is None:
                positions[entry.id] = len(current)
                current.append(entry)
            else:
                current[index] = entry
        self._save(current)
        return len(entries)


class JsonFileEntryStore(ListEntryStore):
    """
    Server-side store persisting ``{"entries": [...]}`` to a JSON file.

    The file is read once on first use and the list is kept in memory. Every
    mutation rewrites the whole file through a temporary file and a rename.
    A missing file is an empty store.
    """

    def __init__(self, path: str | Path = DEFAULT_DB_PATH) -> None:
        self.path = Path(path)
        self._entries: list[Entry] | None = None

    def _load(self) -> list[Entry]:
        if self._entries is None:
            self._entries = self._read()
        return list(self._entries)

    def _read(self) -> list[Entry]:
        if not self.path.exists():
            return []

        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            entries = [Entry.model_validate(item) for item in data.get("entries", [])]
        except (OSError, ValueError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e

        logger.debug("Loaded %d entries from %s", len(entries), self.path)
        return entries

    def _save(self, entries: list[Entry]) -> None:
        document = ExportDocument(entries=entries).to_json()
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

        self._entries = entries
        logger.debug("Wrote %d entries to %s", len(entries), self.path)
