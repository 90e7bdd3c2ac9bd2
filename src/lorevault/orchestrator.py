"""
Batch import orchestration.

Drives validation and merging across one or more sources, strictly one after
another, and aggregates a single ImportResult. A failing source is recorded in
the report and never aborts the batch; sources that already merged stay merged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from .errors import LorevaultError, SchemaError
from .library import GlobalLibraryManager
from .merge import merge
from .models import AssetBundle, AssetKind, GlobalLibraryItem, ImportOptions, ImportResult
from .stores import CharacterCollectionStore
from .validator import validate

logger = logging.getLogger("lorevault")


@dataclass
class ImportSource:
    """One unit of batch input.

    Attributes:
        label: Name used in the report (typically the file name).
        payload: Raw payload, used when no loader is given.
        loader: Optional coroutine function producing the payload (e.g. a file read).
    """

    label: str
    payload: Any = None
    loader: Callable[[], Awaitable[Any]] | None = None

    async def load(self) -> Any:
        if self.loader is not None:
            return await self.loader()
        return self.payload


@dataclass
class _Tally:
    """Running totals for one batch."""

    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    successful: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    promotable: list[tuple[str, AssetBundle]] = field(default_factory=list)
    library_items: list[GlobalLibraryItem] = field(default_factory=list)


def default_library_name(label: str) -> str:
    """Derive a library item name from a source label (``lore.json`` -> ``lore``)."""
    name = label.strip()
    if name.lower().endswith(".json"):
        name = name[: -len(".json")]
    return name


class BatchImporter:
    """Imports sources into one character's collection and reports the outcome.

    Attributes:
        character_store: Persistence for character collections.
        library: Library manager used when promoting successful sources.
    """

    def __init__(self, character_store: CharacterCollectionStore, library: GlobalLibraryManager) -> None:
        self.character_store = character_store
        self.library = library

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def import_batch(
        self,
        sources: Sequence[ImportSource | Any],
        target_character_id: str,
        kind: AssetKind | str,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        """Import several sources, isolating failures per source.

        Args:
            sources: Ordered sources. Bare payloads are labelled ``source-<n>``.
            target_character_id: Character whose collection receives the entries.
            kind: Asset kind of every source.
            options: Promotion switches.

        Returns:
            ImportResult with ``successful_files`` and ``failed_files``.
            ``success`` is True iff at least one source succeeded.
        """
        normalized = [
            source if isinstance(source, ImportSource) else ImportSource(label=f"source-{index}", payload=source)
            for index, source in enumerate(sources, start=1)
        ]
        tally = await self._run(normalized, target_character_id, AssetKind(kind), options or ImportOptions())

        message = (
            f"Processed {len(normalized)} sources: "
            f"{len(tally.successful)} successful, {len(tally.failed)} failed"
        )
        logger.info(f"📥 {message} for {target_character_id}")
        return ImportResult(
            success=bool(tally.successful),
            message=message,
            imported_count=tally.imported,
            skipped_count=tally.skipped,
            errors=tally.errors,
            successful_files=tally.successful,
            failed_files=tally.failed,
            library_items=tally.library_items,
        )

    async def import_single(
        self,
        payload: Any,
        target_character_id: str,
        kind: AssetKind | str,
        options: ImportOptions | None = None,
        *,
        label: str = "payload",
    ) -> ImportResult:
        """Import one bundle. Failures are reported in the result, not raised."""
        tally = await self._run(
            [ImportSource(label=label, payload=payload)],
            target_character_id,
            AssetKind(kind),
            options or ImportOptions(),
        )

        if tally.successful:
            message = f"Imported {tally.imported} entries ({tally.skipped} skipped)"
        else:
            reason = tally.errors[0] if tally.errors else "unknown error"
            message = f"Import failed: {reason}"
        return ImportResult(
            success=bool(tally.successful),
            message=message,
            imported_count=tally.imported,
            skipped_count=tally.skipped,
            errors=tally.errors,
            library_items=tally.library_items,
        )

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _run(
        self,
        sources: list[ImportSource],
        target_character_id: str,
        kind: AssetKind,
        options: ImportOptions,
    ) -> _Tally:
        tally = _Tally()
        for source in sources:
            await self._process_source(source, target_character_id, kind, tally)

        if options.promote_to_global and tally.promotable:
            await self._promote(tally, options)
        return tally

    async def _process_source(
        self,
        source: ImportSource,
        target_character_id: str,
        kind: AssetKind,
        tally: _Tally,
    ) -> None:
        """Validate, merge and persist one source; record the outcome in ``tally``."""
        label = source.label
        try:
            payload = await source.load()
            bundle = validate(payload, kind, source_label=label)
            existing = await self.character_store.get(target_character_id, kind)
            outcome = merge(existing, bundle)
            await self.character_store.set(target_character_id, kind, outcome.updated)
        except SchemaError as e:
            tally.failed.append(label)
            tally.errors.extend(f"{label}: {issue}" for issue in e.issues)
            logger.warning(f"⚠️ {label}: schema validation failed ({len(e.issues)} issue(s))")
            return
        except LorevaultError as e:
            tally.failed.append(label)
            tally.errors.append(f"{label}: {e}")
            logger.warning(f"⚠️ {label}: {type(e).__name__}: {e}")
            return
        except Exception as e:
            tally.failed.append(label)
            tally.errors.append(f"{label}: Unexpected error - {e}")
            logger.exception(f"Unexpected error importing {label}")
            return

        tally.successful.append(label)
        tally.imported += outcome.imported_count
        tally.skipped += outcome.skipped_count
        tally.errors.extend(f"{label}: {error}" for error in outcome.per_entry_errors)
        tally.promotable.append((label, bundle))
        logger.debug(
            f"{label}: {outcome.imported_count} imported, {outcome.skipped_count} skipped"
        )

    async def _promote(self, tally: _Tally, options: ImportOptions) -> None:
        """Create one library item per successful source."""
        base_name = (options.global_name or "").strip()
        several = len(tally.promotable) > 1

        for label, bundle in tally.promotable:
            if base_name and several:
                name = f"{base_name} ({default_library_name(label)})"
            else:
                name = base_name or default_library_name(label)
            try:
                item = await self.library.create(
                    bundle,
                    name,
                    options.global_description,
                    options.source_character_name,
                )
            except LorevaultError as e:
                tally.errors.append(f"{label}: could not save to library - {e}")
                logger.warning(f"⚠️ {label}: library promotion failed: {e}")
                continue
            tally.library_items.append(item)
