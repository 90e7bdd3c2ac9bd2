"""
Schema validation for raw lore and script payloads.

Turns untrusted input (JSON text, bytes, or already-decoded data) into a typed
AssetBundle. Accepts the common export shapes:

- Lore: a bare list of entries, ``{"entries": [...]}``, a world book export with
  ``entries`` keyed by uid, or a character card carrying ``data.character_book``.
- Scripts: a bare list, ``{"scripts": [...]}`` / ``{"regex_scripts": [...]}``,
  or a single exported script object.

Malformed text raises ParseError; well-formed data with the wrong shape or
missing fields raises SchemaError listing every problem found.
"""

import json
import logging
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ParseError, SchemaError
from .models import AssetBundle, AssetKind, LoreEntry, TransformScript

logger = logging.getLogger("lorevault")

# Canonical field -> accepted payload spellings, first match wins
LORE_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "keys": ("keys", "key", "keywords"),
    "secondary_keys": ("secondary_keys", "secondaryKeys", "keysecondary"),
    "content": ("content",),
    "comment": ("comment", "name"),
    "constant": ("constant",),
    "order": ("order", "insertion_order", "insertionOrder"),
    "priority": ("priority",),
    "position": ("position",),
    "depth": ("depth",),
}
LORE_REQUIRED = ("keys", "content")

SCRIPT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "script_name": ("scriptName", "script_name", "name"),
    "find_regex": ("findRegex", "find_regex", "pattern"),
    "replace_string": ("replaceString", "replace_string", "replacement"),
    "trim_strings": ("trimStrings", "trim_strings"),
    "placement": ("placement",),
    "markdown_only": ("markdownOnly", "markdown_only"),
    "prompt_only": ("promptOnly", "prompt_only"),
    "run_on_edit": ("runOnEdit", "run_on_edit"),
    "substitute_regex": ("substituteRegex", "substitute_regex"),
    "order": ("order",),
    "min_depth": ("minDepth", "min_depth"),
    "max_depth": ("maxDepth", "max_depth"),
}
SCRIPT_REQUIRED = ("find_regex", "replace_string")

# Spellings of the on/off switch; the second form is inverted
ENABLED_ALIASES = {
    AssetKind.LORE: ("enabled", "disable"),
    AssetKind.SCRIPT: ("enabled", "disabled"),
}

_bool_adapter = TypeAdapter(bool)


def decode_payload(payload: Any) -> Any:
    """Decode JSON text or bytes; pass already-decoded data through.

    Raises:
        ParseError: If the payload is not well-formed JSON.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(f"Payload is not valid UTF-8: {e}") from e
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON: {e}") from e
    return payload


def _entries_from_container(container: Any) -> list[Any] | None:
    """Return the entry list of an ``entries`` container (list or uid-keyed map)."""
    if isinstance(container, list):
        return container
    if isinstance(container, dict):
        return list(container.values())
    return None


def extract_entries(data: Any, kind: AssetKind) -> list[Any]:
    """Locate the raw entry sequence inside decoded data.

    Raises:
        SchemaError: If the data matches none of the accepted container shapes.
    """
    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        if kind is AssetKind.LORE:
            if "entries" in data:
                entries = _entries_from_container(data["entries"])
                if entries is not None:
                    return entries
            card_data = data.get("data")
            book = card_data.get("character_book") if isinstance(card_data, dict) else None
            book = book or data.get("character_book")
            if isinstance(book, dict):
                entries = _entries_from_container(book.get("entries", []))
                if entries is not None:
                    return entries
        else:
            for container_key in ("scripts", "regex_scripts", "regexScripts"):
                if isinstance(data.get(container_key), list):
                    return data[container_key]
            if any(alias in data for alias in SCRIPT_FIELD_ALIASES["find_regex"]):
                return [data]

    noun = "lore entries" if kind is AssetKind.LORE else "transformation scripts"
    raise SchemaError([f"expected a list of {noun}, got {type(data).__name__}"])


def _pick(raw: dict[str, Any], aliases: dict[str, tuple[str, ...]]) -> tuple[dict[str, Any], set[str]]:
    """Map payload spellings onto canonical names; return the mapping and consumed keys."""
    picked: dict[str, Any] = {}
    consumed: set[str] = set()
    for field_name, spellings in aliases.items():
        for spelling in spellings:
            if spelling in raw:
                consumed.add(spelling)
                if field_name not in picked:
                    picked[field_name] = raw[spelling]
    return picked, consumed


def normalize_entry(raw: dict[str, Any], kind: AssetKind) -> tuple[dict[str, Any], list[str]]:
    """Normalize one raw entry dict into canonical model fields.

    Returns:
        Tuple of (canonical field dict, list of missing required fields).
    """
    aliases = LORE_FIELD_ALIASES if kind is AssetKind.LORE else SCRIPT_FIELD_ALIASES
    required = LORE_REQUIRED if kind is AssetKind.LORE else SCRIPT_REQUIRED

    fields, consumed = _pick(raw, aliases)
    missing = [name for name in required if fields.get(name) is None]

    on_key, off_key = ENABLED_ALIASES[kind]
    if on_key in raw:
        fields["enabled"] = raw[on_key]
        consumed.add(on_key)
    elif off_key in raw:
        consumed.add(off_key)
        try:
            fields["enabled"] = not _bool_adapter.validate_python(raw[off_key])
        except PydanticValidationError:
            # Left as-is so model validation reports it against ``enabled``
            fields["enabled"] = raw[off_key]

    # Numeric ids are per-book counters (like world book uids), not identities
    if isinstance(fields.get("id"), (int, float)):
        del fields["id"]
        consumed.discard("id")
    elif fields.get("id") is not None:
        fields["id"] = str(fields["id"])
    if kind is AssetKind.LORE:
        for list_field in ("keys", "secondary_keys"):
            if isinstance(fields.get(list_field), str):
                fields[list_field] = [fields[list_field]]
    elif isinstance(fields.get("substitute_regex"), bool):
        fields["substitute_regex"] = int(fields["substitute_regex"])

    # Any stale identity in the payload is recomputed, not trusted
    consumed.update({"identity", "kind"})
    fields["extra"] = {k: v for k, v in raw.items() if k not in consumed}
    return fields, missing


def validate(payload: Any, kind: AssetKind | str, *, source_label: str | None = None) -> AssetBundle:
    """Parse a raw payload into a typed bundle of one asset kind.

    Pure function of its input: no store is touched.

    Args:
        payload: JSON text, UTF-8 bytes, or decoded JSON data.
        kind: Asset kind the payload is declared to contain.
        source_label: Optional label used only for debug logging.

    Returns:
        AssetBundle with entries in payload order. An empty sequence yields
        an empty bundle.

    Raises:
        ParseError: If the payload is not well-formed JSON.
        SchemaError: If the payload shape or any entry is invalid.
    """
    kind = AssetKind(kind)
    data = decode_payload(payload)
    raw_entries = extract_entries(data, kind)
    model = LoreEntry if kind is AssetKind.LORE else TransformScript

    issues: list[str] = []
    entries = []
    for index, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            issues.append(f"entry #{index}: expected an object, got {type(raw).__name__}")
            continue

        fields, missing = normalize_entry(raw, kind)
        if missing:
            issues.append(f"entry #{index}: missing required field(s): {', '.join(missing)}")
            continue

        try:
            entries.append(model.model_validate(fields))
        except PydanticValidationError as e:
            for err in e.errors():
                loc = ".".join(str(part) for part in err["loc"]) or "entry"
                issues.append(f"entry #{index}: {loc}: {err['msg']}")

    if issues:
        raise SchemaError(issues)

    logger.debug(f"Validated {len(entries)} {kind.value} entries from {source_label or 'payload'}")
    return AssetBundle(kind=kind, entries=entries)
