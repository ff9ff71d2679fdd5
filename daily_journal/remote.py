"""
HTTP-backed entry store talking to the Daily Journal server.

Every call opens a short-lived ``httpx.AsyncClient``. Connection failures and
unexpected responses are raised as ``TransportError`` so the selector can fall
back to the local store; validation and not-found answers from the server are
raised as the matching journal errors.
"""

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from .errors import NotFoundError, TransportError, ValidationError
from .models import (
    Entry,
    EntryCreate,
    EntryUpdate,
    ExportDocument,
    MonthSummary,
    SearchResult,
)
from .store import EntryStore

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = 5.0


def _field(result: Any, key: str, path: str) -> Any:
    try:
        return result[key]
    except (KeyError, TypeError, IndexError) as e:
        raise TransportError(f"Unexpected response from {path}: missing {key!r}") from e


def _detail(response: httpx.Response) -> str:
    try:
        return str(response.json()["detail"])
    except (ValueError, KeyError, TypeError):
        return response.text or f"HTTP {response.status_code}"


class RemoteEntryStore(EntryStore):
    """Entry store that forwards each operation to the HTTP API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout

    async def _request(
        self, method: str, path: str, *, expect_not_found: bool = False, **kwargs: Any
    ) -> Any:
        """
        Perform one API call and decode its JSON body.

        A 404 only means "no such entry" on routes that address an entry;
        anywhere else it means the API is not being served at this URL.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, transport=self.transport, timeout=self.timeout
            ) as client:
                response = await client.request(method, f"/api{path}", **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"Could not reach {self.base_url}: {e}") from e

        status = response.status_code
        if status in (400, 422):
            raise ValidationError(_detail(response))
        if status == 404 and expect_not_found:
            raise NotFoundError(_detail(response))
        if response.is_error:
            raise TransportError(f"HTTP {status} from {method} {path}")

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {method} {path}") from e

    async def get_by_date(self, date: str) -> Entry:
        data = await self._request(
            "GET", "/entries", params={"date": date}, expect_not_found=True
        )
        return Entry.model_validate(data)

    async def list_by_month(self, year: int, month: int) -> list[MonthSummary]:
        rows = await self._request(
            "GET", "/entries/by-month", params={"year": year, "month": month}
        )
        return [MonthSummary.model_validate(row) for row in rows]

    async def search(self, query: str) -> list[SearchResult]:
        rows = await self._request("GET", "/entries/search", params={"q": query})
        return [SearchResult.model_validate(row) for row in rows]

    async def create(self, draft: EntryCreate) -> str:
        result = await self._request("POST", "/entries", json=draft.model_dump())
        return _field(result, "id", "/entries")

    async def update(self, entry_id: str, changes: EntryUpdate) -> Entry:
        result = await self._request(
            "PUT",
            f"/entries/{entry_id}",
            json=changes.changes(),
            expect_not_found=True,
        )
        try:
            return Entry.model_validate(_field(result, "entry", "/entries"))
        except PydanticValidationError as e:
            raise TransportError(f"Unexpected entry from /entries: {e}") from e

    async def delete(self, entry_id: str) -> None:
        await self._request("DELETE", f"/entries/{entry_id}", expect_not_found=True)

    async def export_all(self) -> list[Entry]:
        data = await self._request("GET", "/export")
        return ExportDocument.model_validate(data).entries

    async def put_many(self, entries: list[Entry]) -> int:
        document = ExportDocument(entries=entries)
        result = await self._request("POST", "/import", json=document.to_json())
        return _field(result, "count", "/import")
