"""
Persistence collaborators for character collections and the global library.

The engine depends only on the two protocols defined here. Two reference
implementations are provided for each:

- In-memory stores, used by tests and embedding callers.
- JSON-file stores under a storage directory::

    lorevault_data/
    ├── characters/<character_id>/<kind>.json   # one entry list per kind
    └── library/<item_id>.json                  # one StoredBundle per item

File writes are atomic (temp file, then replace). Store failures surface as
PersistenceError.
"""

import logging
import re
from pathlib import Path
from typing import Protocol

import anyio
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import PersistenceError, ValidationError
from .models import AssetEntry, AssetKind, GlobalLibraryItem, StoredBundle

logger = logging.getLogger("lorevault")

SAFE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")

_entry_list_adapter = TypeAdapter(list[AssetEntry])


def check_safe_id(value: str, what: str) -> str:
    """Ensure an id can be used as a file name.

    Raises:
        ValidationError: If the id is empty or contains path characters.
    """
    if not value or not SAFE_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid {what} '{value}': use letters, digits, '.', '_' or '-'")
    return value


class CharacterCollectionStore(Protocol):
    """Owns persistence of each character's entry collections."""

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def get(self, character_id: str, kind: AssetKind) -> list[AssetEntry]:
        """Return the character's collection for ``kind`` (empty if none)."""
        ...

    async def set(self, character_id: str, kind: AssetKind, collection: list[AssetEntry]) -> None:
        """Replace the character's collection for ``kind``."""
        ...


class LibraryStore(Protocol):
    """Key-value persistence for library records, keyed by item id."""

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def put(self, record: StoredBundle) -> None: ...

    async def get(self, item_id: str) -> StoredBundle | None: ...

    async def delete(self, item_id: str) -> bool:
        """Remove a record; return False if it did not exist."""
        ...

    async def list_items(self) -> list[GlobalLibraryItem]: ...


# ---------------------------------------------------------------------- #
# In-memory implementations
# ---------------------------------------------------------------------- #


class InMemoryCharacterStore:
    """Dict-backed character store. Returns and keeps deep copies."""

    def __init__(self) -> None:
        self._collections: dict[tuple[str, AssetKind], list[AssetEntry]] = {}

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get(self, character_id: str, kind: AssetKind) -> list[AssetEntry]:
        stored = self._collections.get((character_id, AssetKind(kind)), [])
        return [entry.model_copy(deep=True) for entry in stored]

    async def set(self, character_id: str, kind: AssetKind, collection: list[AssetEntry]) -> None:
        self._collections[(character_id, AssetKind(kind))] = [
            entry.model_copy(deep=True) for entry in collection
        ]


class InMemoryLibraryStore:
    """Dict-backed library store."""

    def __init__(self) -> None:
        self._records: dict[str, StoredBundle] = {}

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def put(self, record: StoredBundle) -> None:
        self._records[record.item.id] = record.model_copy(deep=True)

    async def get(self, item_id: str) -> StoredBundle | None:
        record = self._records.get(item_id)
        return record.model_copy(deep=True) if record is not None else None

    async def delete(self, item_id: str) -> bool:
        return self._records.pop(item_id, None) is not None

    async def list_items(self) -> list[GlobalLibraryItem]:
        return [record.item.model_copy() for record in self._records.values()]


# ---------------------------------------------------------------------- #
# JSON file implementations
# ---------------------------------------------------------------------- #


async def _write_atomic(path: anyio.Path, text: str) -> None:
    # Temp file in the same dir, then rename
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        await temp_path.write_text(text, encoding="utf-8")
        await temp_path.replace(path)
    except Exception:
        await temp_path.unlink(missing_ok=True)
        raise


class JsonCharacterStore:
    """Stores each character collection as a JSON array on disk."""

    def __init__(self, root: str | Path) -> None:
        self.characters_dir = anyio.Path(Path(root) / "characters")

    async def open(self) -> None:
        try:
            await self.characters_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create {self.characters_dir}: {e}") from e
        logger.debug(f"📂 Character store ready at {self.characters_dir}")

    async def close(self) -> None:
        pass

    def _file(self, character_id: str, kind: AssetKind) -> anyio.Path:
        check_safe_id(character_id, "character id")
        return self.characters_dir / character_id / f"{AssetKind(kind).value}.json"

    async def get(self, character_id: str, kind: AssetKind) -> list[AssetEntry]:
        path = self._file(character_id, kind)
        try:
            if not await path.exists():
                return []
            raw = await path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e

        try:
            return _entry_list_adapter.validate_json(raw)
        except PydanticValidationError as e:
            raise PersistenceError(f"Corrupt collection file {path}: {e}") from e

    async def set(self, character_id: str, kind: AssetKind, collection: list[AssetEntry]) -> None:
        path = self._file(character_id, kind)
        payload = _entry_list_adapter.dump_json(collection, by_alias=True, indent=2)
        try:
            await path.parent.mkdir(parents=True, exist_ok=True)
            await _write_atomic(path, payload.decode("utf-8"))
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e
        logger.debug(f"💾 Saved {len(collection)} entries to {path}")


class JsonLibraryStore:
    """Stores each library record (metadata + bundle) as one JSON file."""

    def __init__(self, root: str | Path) -> None:
        self.library_dir = anyio.Path(Path(root) / "library")

    async def open(self) -> None:
        try:
            await self.library_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create {self.library_dir}: {e}") from e
        logger.debug(f"📚 Library store ready at {self.library_dir}")

    async def close(self) -> None:
        pass

    def _file(self, item_id: str) -> anyio.Path:
        check_safe_id(item_id, "library item id")
        return self.library_dir / f"{item_id}.json"

    async def _load(self, path: anyio.Path) -> StoredBundle:
        try:
            raw = await path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e
        try:
            return StoredBundle.model_validate_json(raw)
        except PydanticValidationError as e:
            raise PersistenceError(f"Corrupt library file {path}: {e}") from e

    async def put(self, record: StoredBundle) -> None:
        path = self._file(record.item.id)
        try:
            await _write_atomic(path, record.model_dump_json(by_alias=True, indent=2))
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e
        logger.debug(f"💾 Saved library item {record.item.id} to {path}")

    async def get(self, item_id: str) -> StoredBundle | None:
        path = self._file(item_id)
        try:
            if not await path.exists():
                return None
        except OSError as e:
            raise PersistenceError(f"Cannot access {path}: {e}") from e
        return await self._load(path)

    async def delete(self, item_id: str) -> bool:
        path = self._file(item_id)
        try:
            if not await path.exists():
                return False
            await path.unlink()
        except OSError as e:
            raise PersistenceError(f"Cannot delete {path}: {e}") from e
        return True

    async def list_items(self) -> list[GlobalLibraryItem]:
        items: list[GlobalLibraryItem] = []
        try:
            paths = [path async for path in self.library_dir.glob("*.json")]
        except OSError as e:
            raise PersistenceError(f"Cannot list {self.library_dir}: {e}") from e
        for path in paths:
            items.append((await self._load(path)).item)
        return items
