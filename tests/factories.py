"""
Raw payload builders shared by the test modules.
"""

from typing import Any


def lore(entry_id: str | None = None, keys: list[str] | None = None, content: str = "Some lore", **extra: Any) -> dict[str, Any]:
    """Build a raw lore entry dict as it appears in an exported world book."""
    data: dict[str, Any] = {"key": keys if keys is not None else ["dragon"], "content": content}
    if entry_id is not None:
        data["id"] = entry_id
    data.update(extra)
    return data


def script(entry_id: str | None = None, pattern: str = r"\bfoo\b", replacement: str = "bar", **extra: Any) -> dict[str, Any]:
    """Build a raw regex script dict as exported by a chat frontend."""
    data: dict[str, Any] = {"scriptName": "Rename", "findRegex": pattern, "replaceString": replacement}
    if entry_id is not None:
        data["id"] = entry_id
    data.update(extra)
    return data
