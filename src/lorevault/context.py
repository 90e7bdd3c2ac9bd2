"""
Engine context: the explicitly constructed set of stores and services.

Callers build one EngineContext, open it, pass it to every operation, and
close it when done. Nothing in the engine reaches for module-level state.
"""

import logging
from types import TracebackType

from .config import LorevaultConfig
from .library import DEFAULT_ID_LENGTH, GlobalLibraryManager
from .orchestrator import BatchImporter
from .stores import (
    CharacterCollectionStore,
    InMemoryCharacterStore,
    InMemoryLibraryStore,
    JsonCharacterStore,
    JsonLibraryStore,
    LibraryStore,
)

logger = logging.getLogger("lorevault")


class EngineContext:
    """Holds the collaborators shared by all engine operations.

    Attributes:
        character_store: Persistence for character collections.
        library_store: Persistence for library records.
        library: Global library manager.
        importer: Batch import orchestrator.
    """

    def __init__(
        self,
        character_store: CharacterCollectionStore,
        library_store: LibraryStore,
        *,
        library_id_length: int = DEFAULT_ID_LENGTH,
    ) -> None:
        self.character_store = character_store
        self.library_store = library_store
        self.library = GlobalLibraryManager(
            library_store, character_store, id_length=library_id_length
        )
        self.importer = BatchImporter(character_store, self.library)
        self._is_open = False

    @classmethod
    def in_memory(cls) -> "EngineContext":
        """Context backed by in-memory stores."""
        return cls(InMemoryCharacterStore(), InMemoryLibraryStore())

    @classmethod
    def from_config(cls, config: LorevaultConfig) -> "EngineContext":
        """Context backed by JSON-file stores under ``config.storage_dir``."""
        root = config.storage_dir.resolve()
        return cls(
            JsonCharacterStore(root),
            JsonLibraryStore(root),
            library_id_length=config.library_id_length,
        )

    @property
    def is_open(self) -> bool:
        return self._is_open

    def ensure_open(self) -> None:
        if not self.is_open:
            raise RuntimeError("EngineContext is not open; call open() or use 'async with'")

    async def open(self) -> None:
        """Open the underlying stores. Idempotent."""
        if self._is_open:
            return
        await self.character_store.open()
        await self.library_store.open()
        self._is_open = True
        logger.debug("✅ Engine context opened")

    async def close(self) -> None:
        """Close the underlying stores. Idempotent."""
        if not self._is_open:
            return
        self._is_open = False
        await self.library_store.close()
        await self.character_store.close()
        logger.debug("Engine context closed")

    async def __aenter__(self) -> "EngineContext":
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
