"""
lorevault - import, merge and share character lore entries and regex scripts.
"""

from .commands import execute, parse_command
from .context import EngineContext
from .errors import (
    LorevaultError,
    NotFoundError,
    ParseError,
    PersistenceError,
    SchemaError,
    ValidationError,
)
from .library import GlobalLibraryManager
from .merge import merge
from .models import *
from .orchestrator import BatchImporter, ImportSource
from .validator import validate

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("lorevault")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "EngineContext",
    "GlobalLibraryManager",
    "BatchImporter",
    "ImportSource",
    "validate",
    "merge",
    "execute",
    "parse_command",
    "LorevaultError",
    "ParseError",
    "SchemaError",
    "NotFoundError",
    "ValidationError",
    "PersistenceError",
    "AssetKind",
    "LoreEntry",
    "TransformScript",
    "AssetBundle",
    "GlobalLibraryItem",
    "ImportOptions",
    "ImportResult",
]
