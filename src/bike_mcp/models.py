"""Data models, input schemas and errors for the Bike MCP server."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Boundary limits
MAX_ROW_TEXT = 10_000
MAX_IDENTIFIER = 100
MAX_GROUP_NAME = 500
MAX_OUTLINE_PATH = 1_000


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BikeError(Exception):
    """Base exception for all bridge failures."""


class HostUnreachableError(BikeError):
    """Bike is not running."""

    def __init__(self, message: str = "Bike is not running. Please open Bike first."):
        super().__init__(message)


class NoOpenDocumentError(BikeError):
    """Bike is running but has no document open."""

    def __init__(self, message: str = "No document is open in Bike. Please open a document first."):
        super().__init__(message)


class InvalidArgumentError(BikeError):
    """Arguments failed schema validation or an argument combination rule."""


class MissingGroupTargetError(InvalidArgumentError):
    """group_rows called with neither group_name nor parent_id."""

    def __init__(self, message: str = "Either group_name or parent_id must be provided"):
        super().__init__(message)


class InvalidIdentifierError(BikeError):
    """An identifier contains characters outside [A-Za-z0-9_-]."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            f'Invalid row ID format: "{identifier}". '
            "IDs must be alphanumeric with hyphens/underscores only."
        )


class ExecutionFailureError(BikeError):
    """osascript failed (non-zero exit, timeout, crash)."""


class EmptyResultError(BikeError):
    """The host call succeeded but produced no output."""

    def __init__(self, message: str = "No data returned from Bike"):
        super().__init__(message)


def summarize_validation_error(err: ValidationError) -> str:
    """Render a pydantic ValidationError as a single line."""
    parts = []
    for item in err.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "input"
        msg = item.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Core value types
# ---------------------------------------------------------------------------


class RowType(str, Enum):
    """Row types accepted on input. BLOCKQUOTE is an alias for QUOTE."""

    BODY = "body"
    HEADING = "heading"
    QUOTE = "quote"
    BLOCKQUOTE = "blockquote"
    CODE = "code"
    NOTE = "note"
    UNORDERED = "unordered"
    ORDERED = "ordered"
    TASK = "task"
    HR = "hr"


def normalize_row_type(value: Any) -> Any:
    """Map the blockquote alias onto quote. Bike has no blockquote type."""
    if value is None:
        return None
    if isinstance(value, RowType):
        return RowType.QUOTE if value is RowType.BLOCKQUOTE else value
    if isinstance(value, str) and value.strip().lower() == RowType.BLOCKQUOTE.value:
        return RowType.QUOTE
    return value


Position = Literal["first", "last", "before", "after"]
StructureEncoding = Literal["markup", "records"]


class OutlineNode(BaseModel):
    """One row of an outline structure supplied by the caller."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=MAX_ROW_TEXT, description="Text content for the row")
    type: RowType | None = Field(default=None, description="Row type (defaults to body)")
    children: list["OutlineNode"] = Field(default_factory=list, description="Child rows (same structure, nested)")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        return normalize_row_type(value)

    @property
    def row_type(self) -> RowType:
        return self.type or RowType.BODY

    def count(self) -> int:
        """Number of rows in this subtree, including self."""
        return 1 + sum(child.count() for child in self.children)

    def depth(self) -> int:
        return 1 + max((child.depth() for child in self.children), default=0)


class RowUpdate(BaseModel):
    """A single entry of an update_rows batch."""

    model_config = ConfigDict(extra="forbid")

    row_id: str = Field(min_length=1, max_length=MAX_IDENTIFIER)
    name: str | None = Field(default=None, max_length=MAX_ROW_TEXT)
    type: RowType | None = None
    html: bool = Field(default=False, description="Treat name as Bike rich-text HTML")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        return normalize_row_type(value)

    @model_validator(mode="after")
    def require_name_or_type(self) -> "RowUpdate":
        if self.name is None and self.type is None:
            raise ValueError(
                f"Update for row {self.row_id}: at least one of 'name' or 'type' must be provided"
            )
        return self

    @property
    def needs_reimport(self) -> bool:
        """HTML names cannot go through Bike's plain name setter."""
        return self.html and self.name is not None


class TextOutput(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class StructuredOutput(BaseModel):
    """Parsed JSON output. ``text`` keeps the bytes osascript printed, trimmed."""

    kind: Literal["structured"] = "structured"
    value: Any
    text: str


class CommandResult(BaseModel):
    """Uniform result of one osascript invocation."""

    success: bool
    data: TextOutput | StructuredOutput | None = None
    error: str | None = None

    @property
    def text(self) -> str:
        """Output exactly as printed (trimmed), whatever its shape. Empty when there is none."""
        if self.data is None:
            return ""
        return self.data.text


class ExecutorConfig(BaseModel):
    """How osascript is invoked."""

    app_name: str = "Bike"
    osascript_path: str = "osascript"
    timeout: float = Field(default=30.0, gt=0)
    max_output_bytes: int = Field(default=10 * 1024 * 1024, gt=0)


# ---------------------------------------------------------------------------
# Operation input schemas
# ---------------------------------------------------------------------------


class _PositionedInput(BaseModel):
    """Shared position/reference_id rule for operations that insert rows."""

    model_config = ConfigDict(extra="forbid")

    parent_id: str | None = Field(default=None, min_length=1, max_length=MAX_IDENTIFIER)
    position: Position = "last"
    reference_id: str | None = Field(default=None, min_length=1, max_length=MAX_IDENTIFIER)

    @model_validator(mode="after")
    def require_reference(self):
        if self.position in ("before", "after") and not self.reference_id:
            raise ValueError("reference_id is required when position is 'before' or 'after'")
        return self


class ListDocumentsInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GetOutlineInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_depth: int | None = Field(default=None, ge=1, le=100)


class CreateDocumentInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    structure: list[OutlineNode] | None = None
    name: str | None = Field(default=None, max_length=MAX_ROW_TEXT)
    encoding: StructureEncoding = "markup"
    html: bool = False


class CreateRowsInput(_PositionedInput):
    structure: list[OutlineNode] = Field(min_length=1)
    encoding: StructureEncoding = "markup"
    html: bool = False


class GroupRowsInput(_PositionedInput):
    row_ids: list[str] = Field(min_length=1)
    group_name: str | None = Field(default=None, min_length=1, max_length=MAX_GROUP_NAME)
    # None means "in place": before the first listed row
    position: Position | None = None

    @field_validator("row_ids")
    @classmethod
    def bound_ids(cls, value: list[str]) -> list[str]:
        for row_id in value:
            if len(row_id) > MAX_IDENTIFIER:
                raise ValueError(f"row id longer than {MAX_IDENTIFIER} characters")
        return value


class UpdateRowsInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    updates: list[RowUpdate] = Field(min_length=1)


class DeleteRowsInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    row_ids: list[str] = Field(min_length=1)

    @field_validator("row_ids")
    @classmethod
    def bound_ids(cls, value: list[str]) -> list[str]:
        for row_id in value:
            if len(row_id) > MAX_IDENTIFIER:
                raise ValueError(f"row id longer than {MAX_IDENTIFIER} characters")
        return value


class QueryRowsInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outline_path: str = Field(min_length=1, max_length=MAX_OUTLINE_PATH)
