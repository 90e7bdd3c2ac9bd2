"""
Tests for GlobalLibraryManager.

Tests cover:
- Creating items (ids, counts, name trimming, blank names)
- Listing by kind, most recent first
- Fetching and deleting, including NotFoundError
- Importing library items into characters with normal merge semantics
- Independence of library items and character collections
"""

from datetime import datetime, timedelta, timezone

import pytest

from lorevault.context import EngineContext
from lorevault.errors import NotFoundError, ValidationError
from lorevault.models import AssetKind, GlobalLibraryItem, StoredBundle
from lorevault.validator import validate

from factories import lore, script

pytestmark = pytest.mark.anyio


def lore_bundle(*ids: str):
    return validate([lore(entry_id) for entry_id in ids], AssetKind.LORE)


class TestCreate:
    """Library item creation."""

    async def test_create_returns_metadata(self, context: EngineContext) -> None:
        item = await context.library.create(lore_bundle("a", "b"), "Kingdom", "Castles", "Aria")
        assert len(item.id) == 12
        assert item.name == "Kingdom"
        assert item.description == "Castles"
        assert item.kind is AssetKind.LORE
        assert item.item_count == 2
        assert item.source_character_name == "Aria"
        assert item.created_at.tzinfo is not None

    async def test_name_is_trimmed(self, context: EngineContext) -> None:
        item = await context.library.create(lore_bundle("a"), "  Kingdom  ")
        assert item.name == "Kingdom"
        assert item.description == ""
        assert item.source_character_name is None

    async def test_blank_name_rejected(self, context: EngineContext) -> None:
        with pytest.raises(ValidationError):
            await context.library.create(lore_bundle("a"), "   ")
        assert await context.library.list(AssetKind.LORE) == []

    async def test_ids_are_unique(self, context: EngineContext) -> None:
        first = await context.library.create(lore_bundle("a"), "One")
        second = await context.library.create(lore_bundle("a"), "Two")
        assert first.id != second.id

    async def test_id_length_configurable(self) -> None:
        async with EngineContext.in_memory() as ctx:
            ctx.library.id_length = 20
            item = await ctx.library.create(lore_bundle("a"), "Long")
        assert len(item.id) == 20

    async def test_empty_bundle_allowed(self, context: EngineContext) -> None:
        item = await context.library.create(validate([], AssetKind.SCRIPT), "Nothing")
        assert item.item_count == 0
        assert item.kind is AssetKind.SCRIPT


class TestList:
    """Listing library items."""

    async def test_filters_by_kind(self, context: EngineContext) -> None:
        await context.library.create(lore_bundle("a"), "Lore")
        await context.library.create(validate([script("s")], AssetKind.SCRIPT), "Scripts")
        lore_items = await context.library.list(AssetKind.LORE)
        script_items = await context.library.list("script")
        assert [item.name for item in lore_items] == ["Lore"]
        assert [item.name for item in script_items] == ["Scripts"]

    async def test_most_recent_first_ties_by_id(self, context: EngineContext) -> None:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for item_id, offset in (("bbb", 0), ("ccc", 2), ("aaa", 0), ("ddd", 1)):
            item = GlobalLibraryItem(
                id=item_id, name=item_id, kind=AssetKind.LORE, item_count=0,
                created_at=base + timedelta(days=offset),
            )
            await context.library_store.put(StoredBundle(item=item))
        listed = await context.library.list(AssetKind.LORE)
        assert [item.id for item in listed] == ["ccc", "ddd", "aaa", "bbb"]

    async def test_empty_library(self, context: EngineContext) -> None:
        assert await context.library.list(AssetKind.SCRIPT) == []


class TestGetAndDelete:
    """Fetching and deleting items."""

    async def test_get_returns_metadata(self, context: EngineContext) -> None:
        created = await context.library.create(lore_bundle("a"), "Kingdom")
        fetched = await context.library.get(created.id)
        assert fetched == created

    async def test_get_unknown_raises(self, context: EngineContext) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await context.library.get("missing")
        assert exc_info.value.item_id == "missing"
        assert str(exc_info.value) == "Library item 'missing' not found"

    async def test_delete_removes_item(self, context: EngineContext) -> None:
        created = await context.library.create(lore_bundle("a"), "Kingdom")
        assert await context.library.delete(created.id) is True
        assert await context.library.list(AssetKind.LORE) == []
        with pytest.raises(NotFoundError):
            await context.library.get(created.id)

    async def test_delete_unknown_raises(self, context: EngineContext) -> None:
        with pytest.raises(NotFoundError):
            await context.library.delete("missing")


class TestImportFromGlobal:
    """Importing library items into a character."""

    async def test_round_trip_to_another_character(self, context: EngineContext) -> None:
        await context.importer.import_single([lore("a"), lore("b")], "char-1", AssetKind.LORE)
        bundle = validate([lore("a"), lore("b")], AssetKind.LORE)
        item = await context.library.create(bundle, "Shared")

        result = await context.library.import_from_global(item.id, "char-2")

        assert result.success is True
        assert result.imported_count == 2
        assert result.skipped_count == 0
        assert result.message == "Imported 2 entries from 'Shared'"
        assert result.successful_files is None
        source = await context.character_store.get("char-1", AssetKind.LORE)
        target = await context.character_store.get("char-2", AssetKind.LORE)
        assert [e.identity for e in target] == [e.identity for e in source]

    async def test_reimport_skips_everything(self, context: EngineContext) -> None:
        item = await context.library.create(lore_bundle("a", "b"), "Shared")
        await context.library.import_from_global(item.id, "char-1")
        again = await context.library.import_from_global(item.id, "char-1")
        assert again.imported_count == 0
        assert again.skipped_count == 2

    async def test_existing_entries_kept_and_appended(self, context: EngineContext) -> None:
        await context.importer.import_single([lore("z"), lore("a")], "char-1", AssetKind.LORE)
        item = await context.library.create(lore_bundle("a", "b"), "Shared")
        result = await context.library.import_from_global(item.id, "char-1")
        assert result.imported_count == 1
        assert result.skipped_count == 1
        collection = await context.character_store.get("char-1", AssetKind.LORE)
        assert [e.id for e in collection] == ["z", "a", "b"]

    async def test_uses_item_kind(self, context: EngineContext) -> None:
        item = await context.library.create(validate([script("s1")], AssetKind.SCRIPT), "Regex")
        await context.library.import_from_global(item.id, "char-1")
        assert len(await context.character_store.get("char-1", AssetKind.SCRIPT)) == 1
        assert await context.character_store.get("char-1", AssetKind.LORE) == []

    async def test_unknown_item_raises(self, context: EngineContext) -> None:
        with pytest.raises(NotFoundError):
            await context.library.import_from_global("missing", "char-1")

    async def test_delete_does_not_touch_characters(self, context: EngineContext) -> None:
        item = await context.library.create(lore_bundle("a", "b"), "Shared")
        await context.library.import_from_global(item.id, "char-1")
        await context.library.delete(item.id)
        collection = await context.character_store.get("char-1", AssetKind.LORE)
        assert [e.id for e in collection] == ["a", "b"]

    async def test_library_copy_is_independent(self, context: EngineContext) -> None:
        bundle = lore_bundle("a")
        item = await context.library.create(bundle, "Shared")
        bundle.entries[0].content = "changed after create"
        await context.library.import_from_global(item.id, "char-1")
        collection = await context.character_store.get("char-1", AssetKind.LORE)
        assert collection[0].content == "Some lore"
