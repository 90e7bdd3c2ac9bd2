"""
Global library of named, reusable bundles.

Library items live independently of any character. Importing an item into a
character copies its entries through the normal merge step, so deleting an
item later never touches characters that already imported from it.
"""

import logging

from shortuuid import random as shortuuid_random

from .errors import NotFoundError, ValidationError
from .merge import merge
from .models import AssetBundle, AssetKind, GlobalLibraryItem, ImportResult, StoredBundle
from .stores import CharacterCollectionStore, LibraryStore

logger = logging.getLogger("lorevault")

DEFAULT_ID_LENGTH = 12


class GlobalLibraryManager:
    """Creates, lists, imports from and deletes global library items.

    Attributes:
        library_store: Persistence for library records.
        character_store: Persistence for character collections (import target).
        id_length: Length of generated item ids.
    """

    def __init__(
        self,
        library_store: LibraryStore,
        character_store: CharacterCollectionStore,
        *,
        id_length: int = DEFAULT_ID_LENGTH,
    ) -> None:
        self.library_store = library_store
        self.character_store = character_store
        self.id_length = id_length

    async def create(
        self,
        bundle: AssetBundle,
        name: str,
        description: str | None = None,
        source_character_name: str | None = None,
    ) -> GlobalLibraryItem:
        """Store a bundle in the library under a new id.

        Args:
            bundle: Validated bundle to store (copied).
            name: Display name; must not be blank.
            description: Optional description.
            source_character_name: Name of the character the bundle came from.

        Returns:
            The created GlobalLibraryItem.

        Raises:
            ValidationError: If ``name`` is empty after trimming.
        """
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("Library item name must not be empty")

        item = GlobalLibraryItem(
            id=shortuuid_random(length=self.id_length),
            name=clean_name,
            description=(description or "").strip(),
            kind=bundle.kind,
            item_count=len(bundle.entries),
            source_character_name=source_character_name or None,
        )
        record = StoredBundle(
            item=item,
            entries=[entry.model_copy(deep=True) for entry in bundle.entries],
        )
        await self.library_store.put(record)
        logger.info(f"📚 Created library item '{item.name}' ({item.id}, {item.item_count} {item.kind.value} entries)")
        return item

    async def list(self, kind: AssetKind | str) -> list[GlobalLibraryItem]:
        """List library items of one kind, most recent first (ties by id)."""
        kind = AssetKind(kind)
        items = [item for item in await self.library_store.list_items() if item.kind is kind]
        items.sort(key=lambda item: item.id)
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items

    async def get(self, item_id: str) -> GlobalLibraryItem:
        """Return the metadata of one library item.

        Raises:
            NotFoundError: If the item does not exist.
        """
        return (await self._load(item_id)).item

    async def import_from_global(self, item_id: str, target_character_id: str) -> ImportResult:
        """Merge a library item's entries into a character's collection.

        Returns:
            Single-source ImportResult (no file lists).

        Raises:
            NotFoundError: If the item does not exist.
        """
        record = await self._load(item_id)
        bundle = record.to_bundle()

        existing = await self.character_store.get(target_character_id, bundle.kind)
        outcome = merge(existing, bundle)
        await self.character_store.set(target_character_id, bundle.kind, outcome.updated)

        logger.info(
            f"📥 Imported library item {item_id} into {target_character_id}: "
            f"{outcome.imported_count} imported, {outcome.skipped_count} skipped"
        )
        return ImportResult(
            success=True,
            message=f"Imported {outcome.imported_count} entries from '{record.item.name}'",
            imported_count=outcome.imported_count,
            skipped_count=outcome.skipped_count,
            errors=outcome.per_entry_errors,
        )

    async def delete(self, item_id: str) -> bool:
        """Delete a library item and its stored bundle.

        Raises:
            NotFoundError: If the item does not exist.
        """
        if not await self.library_store.delete(item_id):
            raise NotFoundError(item_id)
        logger.info(f"🗑️ Deleted library item {item_id}")
        return True

    async def _load(self, item_id: str) -> StoredBundle:
        record = await self.library_store.get(item_id)
        if record is None:
            raise NotFoundError(item_id)
        return record
