"""
lorevault MCP server.

Exposes the import, merge and library operations as FastMCP tools. The
EngineContext is built and opened in the server lifespan; each tool takes it
from the request context, builds a typed command and runs it.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator, Literal

from fastmcp import Context, FastMCP
from pydantic import Field

from .commands import (
    Command,
    CommandOutput,
    CreateLibraryItemCommand,
    DeleteLibraryItemCommand,
    GetLibraryItemCommand,
    ImportBatchCommand,
    ImportFromLibraryCommand,
    ImportSingleCommand,
    ListLibraryCommand,
    SourceSpec,
    execute,
)
from .config import LorevaultConfig
from .context import EngineContext
from .errors import LorevaultError
from .models import AssetKind, ImportOptions, ImportResult, WireModel

logger = logging.getLogger("lorevault")

KindParam = Annotated[
    Literal["lore", "script"],
    Field(description="Asset kind: 'lore' (world book entries) or 'script' (regex scripts)"),
]


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[EngineContext]:
    """Open a JSON-file backed EngineContext for the lifetime of the server."""
    config = LorevaultConfig.from_env()
    logger.debug(f"📂 Storage dir: {config.storage_dir.resolve()}")
    async with EngineContext.from_config(config) as engine:
        yield engine


mcp = FastMCP(name="lorevault", lifespan=lifespan)


def get_engine(ctx: Context) -> EngineContext:
    """Return the EngineContext opened by the server lifespan."""
    return ctx.request_context.lifespan_context


def _render(output: CommandOutput) -> str:
    if isinstance(output, list):
        return json.dumps([item.to_wire() for item in output], indent=2, ensure_ascii=False)
    if isinstance(output, WireModel):
        return json.dumps(output.to_wire(), indent=2, ensure_ascii=False)
    return json.dumps({"success": output})


async def _run(ctx: Context, command: Command) -> str:
    try:
        output = await execute(get_engine(ctx), command)
    except LorevaultError as e:
        logger.warning(f"❌ {command.op} failed: {e}")
        return f"Error ({type(e).__name__}): {e}"
    if isinstance(output, ImportResult):
        logger.info(f"📥 {command.op}: {output.summary()}")
    return _render(output)


def _options(
    save_to_library: bool,
    library_name: str | None,
    library_description: str,
    source_character_name: str | None,
) -> ImportOptions:
    return ImportOptions(
        promote_to_global=save_to_library,
        global_name=library_name,
        global_description=library_description,
        source_character_name=source_character_name,
    )


# ----------------------------------------------------------------------
# Tools
# ----------------------------------------------------------------------


@mcp.tool
async def import_assets(
    ctx: Context,
    character_id: Annotated[str, Field(description="Target character id")],
    kind: KindParam,
    payload: Annotated[str, Field(description="JSON text of the bundle to import")],
    label: Annotated[str, Field(description="Name for this payload in the report")] = "payload",
    save_to_library: Annotated[bool, Field(description="Also save the bundle to the global library")] = False,
    library_name: Annotated[str | None, Field(description="Library item name (defaults to the label)")] = None,
    library_description: Annotated[str, Field(description="Library item description")] = "",
    source_character_name: Annotated[str | None, Field(description="Character name recorded as provenance")] = None,
) -> str:
    """Import one lore or script bundle into a character."""
    return await _run(ctx, ImportSingleCommand(
        payload=payload,
        target_character_id=character_id,
        kind=AssetKind(kind),
        label=label,
        options=_options(save_to_library, library_name, library_description, source_character_name),
    ))


@mcp.tool
async def import_asset_files(
    ctx: Context,
    character_id: Annotated[str, Field(description="Target character id")],
    kind: KindParam,
    paths: Annotated[list[str], Field(description="JSON files to import, processed in order")],
    save_to_library: Annotated[bool, Field(description="Save each successful file to the global library")] = False,
    library_name: Annotated[str | None, Field(description="Library item name (defaults to each file name)")] = None,
    library_description: Annotated[str, Field(description="Library item description")] = "",
    source_character_name: Annotated[str | None, Field(description="Character name recorded as provenance")] = None,
) -> str:
    """Import several JSON files into a character. A bad file never stops the batch."""
    return await _run(ctx, ImportBatchCommand(
        sources=[SourceSpec(path=path) for path in paths],
        target_character_id=character_id,
        kind=AssetKind(kind),
        options=_options(save_to_library, library_name, library_description, source_character_name),
    ))


@mcp.tool
async def promote_to_library(
    ctx: Context,
    kind: KindParam,
    payload: Annotated[str, Field(description="JSON text of the bundle to store")],
    name: Annotated[str, Field(description="Library item name")],
    description: Annotated[str, Field(description="Library item description")] = "",
    source_character_name: Annotated[str | None, Field(description="Character name recorded as provenance")] = None,
) -> str:
    """Save a bundle to the global library without importing it into a character."""
    return await _run(ctx, CreateLibraryItemCommand(
        payload=payload,
        kind=AssetKind(kind),
        name=name,
        description=description,
        source_character_name=source_character_name,
    ))


@mcp.tool
async def list_library(ctx: Context, kind: KindParam) -> str:
    """List global library items of one kind, most recent first."""
    return await _run(ctx, ListLibraryCommand(kind=AssetKind(kind)))


@mcp.tool
async def get_library_item(
    ctx: Context,
    item_id: Annotated[str, Field(description="Library item id")],
) -> str:
    """Show the metadata of one global library item."""
    return await _run(ctx, GetLibraryItemCommand(item_id=item_id))


@mcp.tool
async def import_from_library(
    ctx: Context,
    item_id: Annotated[str, Field(description="Library item id")],
    character_id: Annotated[str, Field(description="Target character id")],
) -> str:
    """Import a global library item into a character."""
    return await _run(ctx, ImportFromLibraryCommand(item_id=item_id, target_character_id=character_id))


@mcp.tool
async def delete_library_item(
    ctx: Context,
    item_id: Annotated[str, Field(description="Library item id")],
) -> str:
    """Delete a global library item. Characters that imported it keep their entries."""
    return await _run(ctx, DeleteLibraryItemCommand(item_id=item_id))


def main() -> None:
    """Run the MCP server."""
    config = LorevaultConfig.from_env()
    logging.basicConfig(level=config.log_level)
    mcp.run()


if __name__ == "__main__":
    main()
