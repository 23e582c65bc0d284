"""Bike MCP server implementation using FastMCP."""

import logging
from collections.abc import Awaitable
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from . import __version__
from .client import BikeClient
from .config import ServerConfig, setup_logging
from .models import BikeError

logger = logging.getLogger(__name__)

# Global client instance
_client: BikeClient | None = None
_config: ServerConfig | None = None

READ_ONLY = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False,
}
ADDITIVE = {
    "readOnlyHint": False,
    "destructiveHint": False,
    "idempotentHint": False,
    "openWorldHint": False,
}
DESTRUCTIVE = {
    "readOnlyHint": False,
    "destructiveHint": True,
    "idempotentHint": False,
    "openWorldHint": False,
}


def get_client() -> BikeClient:
    """Get the global Bike client instance."""
    if _client is None:
        raise RuntimeError("Bike client not initialized. Server not started properly.")
    return _client


def _default_encoding() -> Literal["markup", "records"]:
    return _config.default_encoding if _config else "markup"


def _one_line(text: str) -> str:
    return " ".join(str(text).split())


async def _call(operation: str, pending: Awaitable[str]) -> str:
    """Await an operation, turning every failure into a one-line tool error."""
    try:
        return await pending
    except BikeError as e:
        logger.warning(f"{operation} failed: {e}")
        raise ToolError(f"Error: {_one_line(str(e))}") from e
    except Exception as e:  # noqa: BLE001
        logger.exception(f"{operation} crashed")
        raise ToolError(f"Error: {operation} failed unexpectedly: {type(e).__name__}: {_one_line(str(e))}") from e


@asynccontextmanager
async def lifespan(_app: FastMCP):  # type: ignore[no-untyped-def]
    """Manage server lifecycle."""
    global _client, _config

    logger.info("Starting Bike MCP server")

    _config = ServerConfig()  # type: ignore[call-arg]
    executor_config = _config.get_executor_config()
    _client = BikeClient(executor_config)

    logger.info(
        f"Bike client initialized for '{executor_config.app_name}' "
        f"(timeout={executor_config.timeout:g}s, encoding={_config.default_encoding})"
    )

    yield

    logger.info("Shutting down Bike MCP server")
    _client = None
    _config = None


# Initialize FastMCP server
mcp = FastMCP(
    "Bike MCP Server",
    version=__version__,
    instructions="MCP server for reading and editing outlines in the Bike app",
    lifespan=lifespan,
)


# Tool arguments are typed loosely. BikeClient validates them after the
# running/open-document checks so every failure surfaces as one line.

# Tool: List Documents
@mcp.tool(
    name="bike_list_documents",
    description="""Lists all open documents in Bike.

The active (front) document is marked with an asterisk:

  * Active Document (doc:abc123)
    Other Document (doc:def456)

Errors: "Bike is not running".""",
    annotations=READ_ONLY,
)
async def list_documents() -> str:
    """List open Bike documents."""
    return await _call("bike_list_documents", get_client().list_documents())


# Tool: Get Document Outline
@mcp.tool(
    name="bike_get_document_outline",
    description="""Retrieves the outline of the front Bike document as indented text with row IDs.

  Document Name (doc:root-id)

  - First item [row:Kx9]
    - Sub-item [row:Lm2]
  - Second item [row:Qr7]

Use max_depth (1-100) to limit how many levels are returned; 1 means top-level rows only.""",
    annotations=READ_ONLY,
)
async def get_document_outline(max_depth: int | None = None) -> str:
    """Get the outline of the front document.

    Args:
        max_depth: Number of levels to include (omit for the full tree)
    """
    return await _call("bike_get_document_outline", get_client().get_outline(max_depth))


# Tool: Create Document
@mcp.tool(
    name="bike_create_document",
    description="""Creates a new Bike document, optionally filled with an outline structure.

- name: optional title, created as the first row
- structure: optional nested rows, e.g.
  [{"name": "Chapter 1", "type": "heading", "children": [{"name": "Intro"}]}]
- html: row names are Bike rich text (<b>, <i>, <a href>...) instead of plain text

Returns "Created document: Name (doc:ID)".""",
    annotations=ADDITIVE,
)
async def create_document(
    structure: list[dict[str, Any]] | None = None,
    name: str | None = None,
    html: bool = False,
    encoding: str | None = None,
) -> str:
    """Create a Bike document.

    Args:
        structure: Rows to create in the new document
        name: Title row text
        html: Treat names as rich text
        encoding: "markup" (single bulk import) or "records" (row by row)
    """
    result = await _call(
        "bike_create_document",
        get_client().create_document(
            structure=structure,
            name=name,
            encoding=encoding or _default_encoding(),
            html=html,
        ),
    )
    return f"Created document: {result}"


# Tool: Create Rows
@mcp.tool(
    name="bike_create_rows",
    description="""Creates rows (with nested children) in the front Bike document.

Row types: body (default), heading, quote, blockquote (same as quote), code, note,
unordered, ordered, task, hr.

Position:
- "last" (default) / "first": last or first child of parent_id (root level if omitted)
- "before" / "after": next to reference_id (required for these)

Example structure:
[
  {"name": "Chapter 1", "type": "heading", "children": [
    {"name": "Section 1.1"},
    {"name": "Write intro", "type": "task"}
  ]},
  {"name": "Chapter 2", "type": "heading"}
]

Returns "Created N row(s)" counting top-level rows.""",
    annotations=ADDITIVE,
)
async def create_rows(
    structure: list[dict[str, Any]],
    parent_id: str | None = None,
    position: str = "last",
    reference_id: str | None = None,
    html: bool = False,
    encoding: str | None = None,
) -> str:
    """Create rows in the front document."""
    return await _call(
        "bike_create_rows",
        get_client().create_rows(
            structure,
            parent_id=parent_id,
            position=position,
            reference_id=reference_id,
            encoding=encoding or _default_encoding(),
            html=html,
        ),
    )


# Tool: Group Rows
@mcp.tool(
    name="bike_group_rows",
    description="""Groups rows under a new or an existing parent row.

1. New group: give group_name. The group row is created in place (just before the
   first listed row) unless position is given: "first"/"last" at root level, or
   "before"/"after" reference_id.
2. Existing parent: give parent_id. Rows are appended to its children. parent_id
   wins if both are given.

Rows are moved in the order listed.""",
    annotations=ADDITIVE,
)
async def group_rows(
    row_ids: list[str],
    group_name: str | None = None,
    parent_id: str | None = None,
    position: str | None = None,
    reference_id: str | None = None,
) -> str:
    """Group rows."""
    return await _call(
        "bike_group_rows",
        get_client().group_rows(
            row_ids,
            group_name=group_name,
            parent_id=parent_id,
            position=position,
            reference_id=reference_id,
        ),
    )


# Tool: Update Rows
@mcp.tool(
    name="bike_update_rows",
    description="""Updates the text and/or type of one or more rows.

Each update: {"row_id": "...", "name"?: "...", "type"?: "...", "html"?: false}.
At least one of name or type is required. With html=true the name is Bike rich
text; the row is rewritten in place and keeps its children, but gets a new row ID.""",
    annotations=DESTRUCTIVE,
)
async def update_rows(updates: list[dict[str, Any]]) -> str:
    """Update rows."""
    return await _call("bike_update_rows", get_client().update_rows(updates))


# Tool: Delete Rows
@mcp.tool(
    name="bike_delete_rows",
    description="Deletes one or more rows. Their children are deleted too.",
    annotations=DESTRUCTIVE,
)
async def delete_rows(row_ids: list[str]) -> str:
    """Delete rows and their subtrees."""
    return await _call("bike_delete_rows", get_client().delete_rows(row_ids))


# Tool: Query Rows
@mcp.tool(
    name="bike_query_rows",
    description="""Finds rows with a Bike outline path, e.g. "//task", "//heading/*",
"//@done". Returns "- name [row:ID]" lines, "No rows found", or the scalar result
of the path as text.""",
    annotations=READ_ONLY,
)
async def query_rows(outline_path: str) -> str:
    """Query rows by outline path."""
    return await _call("bike_query_rows", get_client().query_rows(outline_path))


# Resource: Bike Outline
@mcp.resource(
    uri="bike://outline",
    name="bike_outline",
    description="The outline of the front Bike document",
)
async def outline_resource() -> str:
    """Get the front document outline as indented text."""
    return await _call("bike://outline", get_client().get_outline())


def main() -> None:
    """Run the server on stdio."""
    setup_logging(ServerConfig().log_level)  # type: ignore[call-arg]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
