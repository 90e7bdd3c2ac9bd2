"""
The closed set of operations the engine exposes to callers.

Each operation is a pydantic command model tagged by ``op``. ``parse_command``
turns untyped input (for example a JSON request) into one of these models, and
``execute`` dispatches it to the matching service method. There is no lookup
of methods by name: an unknown ``op`` is rejected while parsing.
"""

import logging
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import anyio
from pydantic import Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from .context import EngineContext
from .errors import PersistenceError, ValidationError
from .models import AssetKind, GlobalLibraryItem, ImportOptions, ImportResult, WireModel
from .orchestrator import ImportSource
from .validator import validate

logger = logging.getLogger("lorevault")


class SourceSpec(WireModel):
    """A batch source given either inline (``payload``) or as a file ``path``."""

    label: str | None = None
    payload: Any = None
    path: str | None = None

    @model_validator(mode="after")
    def _payload_or_path(self) -> "SourceSpec":
        has_payload = "payload" in self.model_fields_set
        if has_payload == (self.path is not None):
            raise ValueError("exactly one of 'payload' or 'path' is required")
        return self

    def to_source(self, position: int) -> ImportSource:
        if self.path is None:
            return ImportSource(label=self.label or f"source-{position}", payload=self.payload)

        path = self.path

        async def load() -> bytes:
            try:
                return await anyio.Path(path).read_bytes()
            except OSError as e:
                raise PersistenceError(f"Cannot read {path}: {e}") from e

        return ImportSource(label=self.label or Path(path).name, loader=load)


class ImportBatchCommand(WireModel):
    op: Literal["import_batch"] = "import_batch"
    sources: list[SourceSpec]
    target_character_id: str
    kind: AssetKind
    options: ImportOptions = Field(default_factory=ImportOptions)


class ImportSingleCommand(WireModel):
    op: Literal["import_single"] = "import_single"
    payload: Any
    target_character_id: str
    kind: AssetKind
    label: str = "payload"
    options: ImportOptions = Field(default_factory=ImportOptions)


class CreateLibraryItemCommand(WireModel):
    op: Literal["create_library_item"] = "create_library_item"
    payload: Any
    kind: AssetKind
    name: str
    description: str = ""
    source_character_name: str | None = None


class ListLibraryCommand(WireModel):
    op: Literal["list_library"] = "list_library"
    kind: AssetKind


class GetLibraryItemCommand(WireModel):
    op: Literal["get_library_item"] = "get_library_item"
    item_id: str


class ImportFromLibraryCommand(WireModel):
    op: Literal["import_from_library"] = "import_from_library"
    item_id: str
    target_character_id: str


class DeleteLibraryItemCommand(WireModel):
    op: Literal["delete_library_item"] = "delete_library_item"
    item_id: str


Command = Annotated[
    Union[
        ImportBatchCommand,
        ImportSingleCommand,
        CreateLibraryItemCommand,
        ListLibraryCommand,
        GetLibraryItemCommand,
        ImportFromLibraryCommand,
        DeleteLibraryItemCommand,
    ],
    Field(discriminator="op"),
]

CommandOutput = Union[ImportResult, GlobalLibraryItem, list[GlobalLibraryItem], bool]

_command_adapter = TypeAdapter(Command)


def parse_command(data: dict[str, Any]) -> Command:
    """Build a typed command from untyped input.

    Raises:
        ValidationError: If ``op`` is unknown or the arguments do not fit.
    """
    try:
        return _command_adapter.validate_python(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'command'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid command: {problems}") from e


async def execute(context: EngineContext, command: Command) -> CommandOutput:
    """Run one command against an open context.

    Batch and single imports report source failures inside the ImportResult.
    Library operations raise NotFoundError / ValidationError to the caller.
    """
    context.ensure_open()
    logger.debug(f"Executing {type(command).__name__}")

    if isinstance(command, ImportBatchCommand):
        sources = [source.to_source(i) for i, source in enumerate(command.sources, start=1)]
        return await context.importer.import_batch(
            sources, command.target_character_id, command.kind, command.options
        )
    if isinstance(command, ImportSingleCommand):
        return await context.importer.import_single(
            command.payload,
            command.target_character_id,
            command.kind,
            command.options,
            label=command.label,
        )
    if isinstance(command, CreateLibraryItemCommand):
        bundle = validate(command.payload, command.kind, source_label=command.name)
        return await context.library.create(
            bundle, command.name, command.description, command.source_character_name
        )
    if isinstance(command, ListLibraryCommand):
        return await context.library.list(command.kind)
    if isinstance(command, GetLibraryItemCommand):
        return await context.library.get(command.item_id)
    if isinstance(command, ImportFromLibraryCommand):
        return await context.library.import_from_global(command.item_id, command.target_character_id)
    if isinstance(command, DeleteLibraryItemCommand):
        return await context.library.delete(command.item_id)
    raise TypeError(f"Unsupported command type: {type(command).__name__}")
