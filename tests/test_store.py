"""
Tests for the JsonFileEntryStore implementation.

These tests verify the core entry operations: create-or-replace by date,
updates by id, month listings, search and persistence to the JSON file.
"""

import json
import tempfile
from pathlib import Path

import pytest

from daily_journal.errors import NotFoundError, StorageError, ValidationError
from daily_journal.models import Entry, EntryCreate, EntryUpdate, utcnow
from daily_journal.store import JsonFileEntryStore, month_prefix


class TestJsonFileEntryStore:
    """Test suite for JsonFileEntryStore functionality."""

    def setup_method(self):
        """Set up a fresh store in an empty directory for each test."""
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "journal.json"
        self.store = JsonFileEntryStore(self.path)

    def teardown_method(self):
        self.tmpdir.cleanup()

    async def test_create_and_get_by_date(self):
        """Test the trip scenario: create, look up by date, see it in the month."""
        entry_id = await self.store.create(
            EntryCreate(
                date="2024-03-15",
                title="Trip",
                content="Went hiking",
                mood=4,
                tags=["travel", "outdoors"],
            )
        )
        assert entry_id

        entry = await self.store.get_by_date("2024-03-15")
        assert entry.id == entry_id
        assert entry.title == "Trip"
        assert entry.content == "Went hiking"
        assert entry.mood == 4
        assert entry.tags == ["travel", "outdoors"]
        assert entry.created_at == entry.updated_at

        rows = await self.store.list_by_month(2024, 3)
        assert [(row.id, row.date, row.mood) for row in rows] == [
            (entry_id, "2024-03-15", 4)
        ]

    async def test_create_defaults(self):
        """Test that optional fields default to empty values."""
        await self.store.create(EntryCreate(date="2024-03-16"))

        entry = await self.store.get_by_date("2024-03-16")
        assert entry.title == ""
        assert entry.content == ""
        assert entry.mood is None
        assert entry.tags == []

    async def test_create_replaces_entry_for_same_date(self):
        """Test that a second create for a date leaves only the second entry."""
        first_id = await self.store.create(EntryCreate(date="2024-03-15", content="one"))
        second_id = await self.store.create(
            EntryCreate(date="2024-03-15", content="two")
        )

        assert first_id != second_id
        entry = await self.store.get_by_date("2024-03-15")
        assert entry.id == second_id
        assert entry.content == "two"
        assert len(await self.store.export_all()) == 1

    @pytest.mark.parametrize("date", [None, "", "15-03-2024", "2024-3-15", "2024/03/15"])
    async def test_create_rejects_malformed_date(self, date):
        """Test that missing or malformed dates fail and nothing is persisted."""
        with pytest.raises(ValidationError):
            await self.store.create(EntryCreate(date=date, title="Nope"))

        assert await self.store.export_all() == []
        assert not self.path.exists()

    async def test_get_by_date_missing(self):
        with pytest.raises(NotFoundError):
            await self.store.get_by_date("2024-01-01")

    async def test_update_preserves_identity(self):
        """Test that update merges fields but never touches id, date or createdAt."""
        entry_id = await self.store.create(
            EntryCreate(date="2024-05-01", title="Old", content="Body", mood=2)
        )
        before = await self.store.get_by_date("2024-05-01")

        updated = await self.store.update(entry_id, EntryUpdate(title="New", mood=5))

        assert updated.id == before.id
        assert updated.date == before.date
        assert updated.created_at == before.created_at
        assert updated.updated_at >= before.updated_at
        assert updated.title == "New"
        assert updated.mood == 5
        # Fields not sent are kept
        assert updated.content == "Body"

        stored = await self.store.get_by_date("2024-05-01")
        assert stored == updated

    async def test_update_can_clear_mood(self):
        entry_id = await self.store.create(EntryCreate(date="2024-05-01", mood=3))

        updated = await self.store.update(entry_id, EntryUpdate(mood=None))

        assert updated.mood is None

    async def test_update_unknown_id(self):
        with pytest.raises(NotFoundError):
            await self.store.update("missing", EntryUpdate(title="x"))

    async def test_delete(self):
        entry_id = await self.store.create(EntryCreate(date="2024-05-01"))

        await self.store.delete(entry_id)

        with pytest.raises(NotFoundError):
            await self.store.get_by_date("2024-05-01")

    async def test_delete_unknown_id_leaves_store_unchanged(self):
        await self.store.create(EntryCreate(date="2024-05-01"))

        with pytest.raises(NotFoundError):
            await self.store.delete("missing")

        assert len(await self.store.export_all()) == 1

    async def test_list_by_month_is_disjoint_across_year_boundary(self):
        """Test that December and the following January never overlap."""
        for date in ["2023-11-30", "2023-12-01", "2023-12-31", "2024-01-01", "2024-02-01"]:
            await self.store.create(EntryCreate(date=date))

        december = {row.date for row in await self.store.list_by_month(2023, 12)}
        january = {row.date for row in await self.store.list_by_month(2024, 1)}

        assert december == {"2023-12-01", "2023-12-31"}
        assert january == {"2024-01-01"}

    @pytest.mark.parametrize("year, month", [(2024, 0), (2024, 13), (0, 1), (10000, 1)])
    async def test_list_by_month_rejects_invalid_month(self, year, month):
        with pytest.raises(ValidationError):
            await self.store.list_by_month(year, month)

    def test_month_prefix_is_zero_padded(self):
        assert month_prefix(2024, 3) == "2024-03-"
        assert month_prefix(999, 11) == "0999-11-"

    async def test_search(self):
        """Test that search matches title or content, ignoring case, newest first."""
        await self.store.create(EntryCreate(date="2024-01-10", title="Morning RUN"))
        await self.store.create(EntryCreate(date="2024-02-10", content="a long run home"))
        await self.store.create(EntryCreate(date="2024-03-10", title="Rest day"))

        rows = await self.store.search("run")

        assert [row.date for row in rows] == ["2024-02-10", "2024-01-10"]
        assert rows[0].snippet == "a long run home"
        assert rows[1].title == "Morning RUN"

    async def test_search_truncates_snippet_and_caps_results(self):
        """Test the 200 character snippet and the 100 result cap."""
        entries = [
            Entry(
                id=f"id-{day}",
                date=f"2023-{1 + day // 28:02d}-{1 + day % 28:02d}",
                content="x" * 300,
                created_at=utcnow(),
                updated_at=utcnow(),
            )
            for day in range(120)
        ]
        await self.store.put_many(entries)

        rows = await self.store.search("X")

        assert len(rows) == 100
        assert all(len(row.snippet) == 200 for row in rows)
        dates = [row.date for row in rows]
        assert dates == sorted(dates, reverse=True)

    async def test_search_blank_query(self):
        await self.store.create(EntryCreate(date="2024-01-10", title="Anything"))

        assert await self.store.search("   ") == []

    async def test_export_all_sorted_newest_first(self):
        for date in ["2024-01-02", "2024-03-01", "2023-12-31"]:
            await self.store.create(EntryCreate(date=date))

        dates = [entry.date for entry in await self.store.export_all()]

        assert dates == ["2024-03-01", "2024-01-02", "2023-12-31"]

    async def test_persists_between_instances(self):
        """Test that a new store over the same file sees earlier writes."""
        entry_id = await self.store.create(EntryCreate(date="2024-03-15", title="Trip"))

        document = json.loads(self.path.read_text(encoding="utf-8"))
        assert document["entries"][0]["id"] == entry_id
        assert "createdAt" in document["entries"][0]

        reopened = JsonFileEntryStore(self.path)
        entry = await reopened.get_by_date("2024-03-15")
        assert entry.title == "Trip"

    async def test_corrupt_file_raises_storage_error(self):
        self.path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await JsonFileEntryStore(self.path).export_all()
