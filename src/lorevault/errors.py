"""
Exception taxonomy for the import, merge and library engine.

Per-source errors (ParseError, SchemaError, PersistenceError) are caught by the
batch importer and turned into report lines. Per-operation errors
(NotFoundError, ValidationError) propagate to the caller.
"""


class LorevaultError(Exception):
    """Base class for every error raised by the engine."""


class ParseError(LorevaultError):
    """Raised when a payload is not well-formed data at all (e.g. broken JSON)."""


class SchemaError(LorevaultError):
    """Raised when a payload parses but does not have the shape of its asset kind.

    Attributes:
        issues: One message per offending entry/field, in payload order.
    """

    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        if len(self.issues) == 1:
            message = self.issues[0]
        else:
            message = f"{len(self.issues)} schema problems: " + "; ".join(self.issues)
        super().__init__(message)


class NotFoundError(LorevaultError):
    """Raised when a referenced library item does not exist.

    Attributes:
        item_id: The id that was looked up.
    """

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Library item '{item_id}' not found")


class ValidationError(LorevaultError):
    """Raised for invalid caller-supplied metadata, such as a blank library name."""


class PersistenceError(LorevaultError):
    """Raised when an external store fails to read or write."""
