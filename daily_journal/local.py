"""
Device-local fallback storage for the Daily Journal client.

``LocalStorage`` is a small string key/value file kept in the user's data
directory, playing the role browser ``localStorage`` plays for a web client.
``LocalEntryStore`` keeps the whole entry list as one JSON array under a single
key and implements the same store contract as the server, so the selector can
swap between them without callers noticing.
"""

import json
import logging
import os
import secrets
import time
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .errors import StorageError
from .models import Entry
from .store import ListEntryStore

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".daily_journal"
STORAGE_FILENAME = "local_storage.json"
ENTRIES_KEY = "dj_entries_v1"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def local_id() -> str:
    """Millisecond timestamp in base 36 followed by a random base-36 suffix."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(11))
    return to_base36(int(time.time() * 1000)) + suffix


def default_home() -> Path:
    return Path(os.environ.get("DAILY_JOURNAL_HOME", DEFAULT_HOME))


class LocalStorage:
    """A persistent mapping of string keys to string values in one JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def _write(self, items: dict[str, str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def _read(self) -> dict[str, str]:
        try:
            with self.path.open(encoding="utf-8") as f:
                items = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable local storage %s: %s", self.path, e)
            return {}
        if not isinstance(items, dict):
            return {}
        return {key: value for key, value in items.items() if isinstance(value, str)}


class LocalEntryStore(ListEntryStore):
    """
    Offline entry store backed by ``LocalStorage``.

    The list is re-read on every operation. A corrupt or non-list value is
    treated as an empty journal so the client keeps working offline; failing
    to write raises ``StorageError``.
    """

    def __init__(self, storage: LocalStorage | None = None) -> None:
        self.storage = storage or LocalStorage(default_home() / STORAGE_FILENAME)

    def _load(self) -> list[Entry]:
        raw = self.storage.get_item(ENTRIES_KEY)
        if not raw:
            return []

        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning("Local entry list is not valid JSON, starting empty")
            return []
        if not isinstance(items, list):
            return []

        entries = []
        for item in items:
            try:
                entries.append(Entry.model_validate(item))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed local entry: %s", e)
        return entries

    def _save(self, entries: list[Entry]) -> None:
        payload = json.dumps([entry.to_json() for entry in entries], ensure_ascii=False)
        self.storage.set_item(ENTRIES_KEY, payload)

    def new_id(self) -> str:
        return local_id()
