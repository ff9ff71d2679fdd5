"""
Export and import of whole journals as portable JSON documents.

An export is ``{"entries": [...]}`` sorted newest date first. Importing merges a
document into a store keyed by entry id: entries carrying a known id replace the
stored one, the rest are appended with an id minted by the store. Import does not
de-duplicate by date, so a migrated journal may hold several entries per day.
"""

from collections.abc import Callable, Mapping
from datetime import date as Date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import Entry, ExportDocument, utcnow, validate_date
from .store import EntryStore


def export_filename(day: Date | None = None) -> str:
    day = day or Date.today()
    return f"journal-export-{day.isoformat()}.json"


async def export_document(store: EntryStore) -> ExportDocument:
    return ExportDocument(entries=await store.export_all())


def normalize_entry(item: Any, new_id: Callable[[], str]) -> Entry:
    """Fill in the defaults an imported entry may be missing; new_id mints ids."""
    if not isinstance(item, Mapping):
        raise ValidationError("Each imported entry must be an object")
    validate_date(item.get("date"))

    tags = item.get("tags")
    try:
        return Entry.model_validate(
            {
                "id": item.get("id") or new_id(),
                "date": item["date"],
                "title": item.get("title") or "",
                "content": item.get("content") or "",
                "mood": item.get("mood"),
                "tags": tags if isinstance(tags, list) else [],
                "createdAt": item.get("createdAt") or utcnow(),
                "updatedAt": utcnow(),
            }
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid entry for {item['date']}: {e}") from e


async def import_document(store: EntryStore, payload: Any) -> int:
    """
    Merge an exported document into store.

    The whole document is validated before anything is written.

    Returns:
        The number of entries processed, not the number of distinct dates
    """
    if not isinstance(payload, Mapping) or not isinstance(payload.get("entries"), list):
        raise ValidationError("Invalid payload")

    entries = [normalize_entry(item, store.new_id) for item in payload["entries"]]
    if not entries:
        return 0
    return await store.put_many(entries)
