"""
Data models for lore entries, transformation scripts, bundles and reports.

Key classes:
- LoreEntry / TransformScript: the two importable asset kinds.
- AssetBundle: an ordered sequence of entries of one kind.
- GlobalLibraryItem / StoredBundle: library metadata and its persisted payload.
- ImportOptions: per-batch switches (promotion to the library).
- MergeOutcome: the result of one merge pass.
- ImportResult: the transient report handed to the presentation layer.

Every model serialises with camelCase keys (``importedCount``,
``sourceCharacterName``) and accepts both camelCase and snake_case on input.
"""

import hashlib
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "AssetKind",
    "WireModel",
    "LoreEntry",
    "TransformScript",
    "AssetEntry",
    "AssetBundle",
    "GlobalLibraryItem",
    "StoredBundle",
    "ImportOptions",
    "MergeOutcome",
    "ImportResult",
]


class AssetKind(str, Enum):
    """The two asset kinds handled by the engine."""

    LORE = "lore"
    SCRIPT = "script"


class WireModel(BaseModel):
    """Base model with camelCase wire aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _fingerprint(kind: AssetKind, material: dict[str, Any]) -> str:
    digest = hashlib.sha256(
        json.dumps(material, ensure_ascii=False, sort_keys=True).encode("utf-8")
    ).hexdigest()
    return f"{kind.value}:sha256:{digest}"


class LoreEntry(WireModel):
    """A single world book (lore) entry.

    The identity key is derived from ``id`` when one is supplied, otherwise
    from a fingerprint of the trigger terms and body content.
    """

    kind: Literal["lore"] = "lore"
    id: str | None = Field(default=None, description="Explicit identity supplied by the payload")
    identity: str = Field(default="", description="Deduplication key, computed when empty")
    keys: list[str] = Field(description="Trigger terms")
    secondary_keys: list[str] = Field(default_factory=list)
    content: str = Field(description="Body text injected when triggered")
    comment: str = Field(default="", description="Entry title / memo")
    enabled: bool = True
    constant: bool = False
    order: int = Field(default=100, description="Insertion order")
    priority: int = 0
    position: int | str | None = None
    depth: int | None = None
    extra: dict[str, Any] = Field(default_factory=dict, description="Unrecognised payload fields")

    @model_validator(mode="after")
    def _fill_identity(self) -> "LoreEntry":
        if not self.identity:
            self.identity = self.identity_key()
        return self

    def identity_key(self) -> str:
        """Compute the deduplication key for this entry."""
        if self.id:
            return f"{AssetKind.LORE.value}:id:{self.id}"
        return _fingerprint(
            AssetKind.LORE,
            {
                "keys": sorted(k.strip().casefold() for k in self.keys),
                "content": self.content.strip(),
            },
        )


class TransformScript(WireModel):
    """A text transformation (regex) script."""

    kind: Literal["script"] = "script"
    id: str | None = None
    identity: str = ""
    script_name: str = ""
    find_regex: str = Field(description="Pattern to search for")
    replace_string: str = Field(description="Replacement text (may be empty)")
    trim_strings: list[str] = Field(default_factory=list)
    placement: list[int] = Field(default_factory=list, description="Scope/target flags")
    markdown_only: bool = False
    prompt_only: bool = False
    run_on_edit: bool = False
    substitute_regex: int = 0
    enabled: bool = True
    order: int = 0
    min_depth: int | None = None
    max_depth: int | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _fill_identity(self) -> "TransformScript":
        if not self.identity:
            self.identity = self.identity_key()
        return self

    def identity_key(self) -> str:
        """Compute the deduplication key for this script."""
        if self.id:
            return f"{AssetKind.SCRIPT.value}:id:{self.id}"
        return _fingerprint(
            AssetKind.SCRIPT,
            {"pattern": self.find_regex, "replacement": self.replace_string},
        )


AssetEntry = Annotated[Union[LoreEntry, TransformScript], Field(discriminator="kind")]


class AssetBundle(WireModel):
    """An ordered collection of entries of one asset kind."""

    kind: AssetKind
    entries: list[AssetEntry] = Field(default_factory=list)
    name: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _check_kind(self) -> "AssetBundle":
        for index, entry in enumerate(self.entries):
            if entry.kind != self.kind.value:
                raise ValueError(
                    f"entry #{index} is a {entry.kind!r} entry in a {self.kind.value!r} bundle"
                )
        return self

    def __len__(self) -> int:
        return len(self.entries)


class GlobalLibraryItem(WireModel):
    """Metadata for a named, reusable bundle in the global library."""

    id: str
    name: str
    description: str = ""
    kind: AssetKind
    item_count: int = Field(ge=0)
    source_character_name: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StoredBundle(WireModel):
    """A library item together with its bundle content, as persisted."""

    item: GlobalLibraryItem
    entries: list[AssetEntry] = Field(default_factory=list)

    def to_bundle(self) -> AssetBundle:
        return AssetBundle(
            kind=self.item.kind,
            entries=[entry.model_copy(deep=True) for entry in self.entries],
            name=self.item.name,
            description=self.item.description,
        )


class ImportOptions(WireModel):
    """Optional switches for a batch import. All default off."""

    promote_to_global: bool = False
    global_name: str | None = None
    global_description: str = ""
    source_character_name: str | None = None


class MergeOutcome(WireModel):
    """Result of merging an incoming bundle into an existing collection."""

    updated: list[AssetEntry]
    imported_count: int = 0
    skipped_count: int = 0
    per_entry_errors: list[str] = Field(default_factory=list)


class ImportResult(WireModel):
    """Report for one import operation. Never persisted."""

    success: bool
    message: str
    imported_count: int = 0
    skipped_count: int = 0
    errors: list[str] = Field(default_factory=list)
    successful_files: list[str] | None = None
    failed_files: list[str] | None = None
    library_items: list[GlobalLibraryItem] = Field(default_factory=list)

    def summary(self) -> str:
        """Human-readable one-line summary."""
        detail = f"{self.imported_count} imported, {self.skipped_count} skipped"
        if self.errors:
            detail += f", {len(self.errors)} error(s)"
        return f"{self.message} ({detail})"
