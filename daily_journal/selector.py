"""
Routing between the remote entry store and the local fallback store.

The selector owns the availability flag. The month listing, issued on every
calendar render, doubles as the liveness probe and always tries the remote
first; every other call uses the remote while it is believed reachable and
transparently retries against the local store when it is not.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .errors import TransportError
from .models import Entry, EntryCreate, EntryUpdate, MonthSummary, SearchResult
from .store import EntryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreSelector(EntryStore):
    """
    Forwards each store operation to whichever store is reachable.

    Validation and not-found errors from the chosen store propagate unchanged.
    Transport errors from the remote flip ``available`` to False and the call
    is retried locally. Entries written while offline stay in the local store
    until ``backfill`` is called explicitly.
    """

    def __init__(self, remote: EntryStore, local: EntryStore) -> None:
        self.remote = remote
        self.local = local
        self.available = True

    @property
    def status(self) -> str:
        return "Connected" if self.available else "Offline"

    async def _route(self, operation: Callable[[EntryStore], Awaitable[T]]) -> T:
        if self.available:
            try:
                return await operation(self.remote)
            except TransportError as e:
                self._mark_unavailable(e)
        return await operation(self.local)

    def _mark_unavailable(self, error: TransportError) -> None:
        if self.available:
            logger.warning("Remote store unavailable, using local store: %s", error)
        self.available = False

    async def refresh(self, year: int, month: int) -> list[MonthSummary]:
        """Probe the remote with a month listing and update availability."""
        try:
            rows = await self.remote.list_by_month(year, month)
        except TransportError as e:
            self._mark_unavailable(e)
            return await self.local.list_by_month(year, month)

        if not self.available:
            logger.info("Remote store reachable again")
        self.available = True
        return rows

    async def list_by_month(self, year: int, month: int) -> list[MonthSummary]:
        return await self.refresh(year, month)

    async def get_by_date(self, date: str) -> Entry:
        return await self._route(lambda store: store.get_by_date(date))

    async def search(self, query: str) -> list[SearchResult]:
        return await self._route(lambda store: store.search(query))

    async def create(self, draft: EntryCreate) -> str:
        return await self._route(lambda store: store.create(draft))

    async def update(self, entry_id: str, changes: EntryUpdate) -> Entry:
        return await self._route(lambda store: store.update(entry_id, changes))

    async def delete(self, entry_id: str) -> None:
        await self._route(lambda store: store.delete(entry_id))

    async def export_all(self) -> list[Entry]:
        return await self._route(lambda store: store.export_all())

    async def put_many(self, entries: list[Entry]) -> int:
        return await self._route(lambda store: store.put_many(entries))

    def new_id(self) -> str:
        return (self.remote if self.available else self.local).new_id()

    async def backfill(self) -> int:
        """
        Copy locally stored entries into the remote store, keyed by date.

        For each local entry the remote rows on the same date are compared by
        ``updatedAt``: when the local entry is newer it replaces them, otherwise
        the remote keeps its row. Running this twice copies nothing the second
        time. Local entries are kept. Raises ``TransportError`` when the remote
        is still unreachable.

        Returns:
            The number of local entries copied
        """
        entries = await self.local.export_all()
        if not entries:
            return 0

        try:
            remote_by_date: dict[str, list[Entry]] = {}
            for entry in await self.remote.export_all():
                remote_by_date.setdefault(entry.date, []).append(entry)

            newer = []
            stale_ids = []
            for entry in entries:
                existing = remote_by_date.get(entry.date, [])
                if any(row.updated_at >= entry.updated_at for row in existing):
                    continue
                newer.append(entry)
                stale_ids.extend(row.id for row in existing if row.id != entry.id)

            for entry_id in stale_ids:
                await self.remote.delete(entry_id)
            count = await self.remote.put_many(newer) if newer else 0
        except TransportError as e:
            self._mark_unavailable(e)
            raise

        self.available = True
        logger.info("Backfilled %d local entries into the remote store", count)
        return count
