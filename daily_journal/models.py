"""
Shared data models for the Daily Journal service.

This module defines the entry model and the projections returned by the
stores, used across every layer of the application (stores, API, CLI).
Field names are serialized in camelCase to match the persisted JSON documents.
"""

import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from .errors import ValidationError

DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"

_DATE_RE = re.compile(DATE_PATTERN)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def validate_date(value: object) -> str:
    """Return value if it is a zero-padded YYYY-MM-DD string, else raise."""
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        raise ValidationError("Invalid or missing date (YYYY-MM-DD)")
    return value


class Entry(BaseModel):
    """A single journal entry. At most one exists per date via create."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque identifier, immutable once assigned")
    date: str = Field(..., pattern=DATE_PATTERN, description="Entry date, YYYY-MM-DD")
    title: str = Field("", description="Entry title")
    content: str = Field("", description="Entry body")
    mood: int | None = Field(None, description="Mood rating, if any")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class EntryCreate(BaseModel):
    """Payload for create-or-replace requests. The date is checked by the store."""

    date: str | None = Field(None, description="Entry date, YYYY-MM-DD")
    title: str = ""
    content: str = ""
    mood: int | None = None
    tags: list[str] = Field(default_factory=list)


class EntryUpdate(BaseModel):
    """Payload for updates. Only fields explicitly set are merged."""

    title: str = ""
    content: str = ""
    mood: int | None = None
    tags: list[str] = Field(default_factory=list)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class MonthSummary(BaseModel):
    """Calendar-dot projection of an entry."""

    id: str
    date: str
    mood: int | None = None


class SearchResult(BaseModel):
    """Search hit with a truncated content snippet."""

    id: str
    date: str
    title: str
    snippet: str
    mood: int | None = None


class ExportDocument(BaseModel):
    """Portable snapshot of a whole store."""

    entries: list[Entry] = Field(default_factory=list)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
