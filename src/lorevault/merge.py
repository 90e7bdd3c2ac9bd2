"""
Append-only merge of an incoming bundle into a character's entry collection.

Collision handling follows the compendium "skip" conflict mode: an incoming
entry whose identity key already exists (in the collection, or earlier in the
same bundle) is skipped, never overwritten. Skips are an expected outcome and
only show up in the skip count.
"""

import logging
from typing import Sequence

from .models import AssetBundle, AssetEntry, MergeOutcome

logger = logging.getLogger("lorevault")


def merge(existing: Sequence[AssetEntry], incoming: AssetBundle) -> MergeOutcome:
    """Merge ``incoming`` into ``existing`` without mutating either.

    Pre-existing entries keep their positions; newly imported entries are
    appended in bundle order. The first occurrence of an identity key wins.
    Entries of the wrong kind only reach this point in bundles built with
    ``AssetBundle.model_construct``; they are reported in
    ``per_entry_errors`` and left out.

    Args:
        existing: The character's current collection.
        incoming: Validated bundle to merge.

    Returns:
        MergeOutcome with the new collection value and per-entry counts. The
        caller is responsible for persisting ``updated``.
    """
    updated: list[AssetEntry] = [entry.model_copy(deep=True) for entry in existing]
    seen: set[str] = {entry.identity for entry in updated}

    imported = 0
    skipped = 0
    errors: list[str] = []

    for index, entry in enumerate(incoming.entries):
        if entry.kind != incoming.kind.value:
            errors.append(
                f"entry #{index}: {entry.kind!r} entry cannot be merged into a "
                f"{incoming.kind.value!r} collection"
            )
            continue

        if entry.identity in seen:
            skipped += 1
            logger.debug(f"Skipping duplicate entry #{index} ({entry.identity})")
            continue

        seen.add(entry.identity)
        updated.append(entry.model_copy(deep=True))
        imported += 1

    return MergeOutcome(
        updated=updated,
        imported_count=imported,
        skipped_count=skipped,
        per_entry_errors=errors,
    )
