"""Escaping and identifier validation for AppleScript payloads.

Every payload is built by string substitution, so this module is the only
thing standing between caller input and the script Bike runs:

- free text goes through escape_applescript_string() (or quote())
- identifiers go through validate_row_id() (or row_ref())
"""

import re
from collections.abc import Iterable

from ..models import InvalidIdentifierError

ROW_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def escape_applescript_string(value: str) -> str:
    """Escape text for use inside an AppleScript "..." literal.

    Backslash must go first, otherwise the escapes added below would be
    escaped a second time.
    """
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


def validate_row_id(row_id: str) -> str:
    """Return row_id unchanged, or raise InvalidIdentifierError."""
    if not isinstance(row_id, str) or not ROW_ID_PATTERN.fullmatch(row_id):
        raise InvalidIdentifierError(str(row_id))
    return row_id


def validate_row_ids(row_ids: Iterable[str]) -> list[str]:
    """Validate every id, failing on the first bad one."""
    return [validate_row_id(row_id) for row_id in row_ids]


class Quoted(str):
    """A complete AppleScript string literal, quotes included."""

    __slots__ = ()


class RowRef(str):
    """A validated row/document identifier."""

    __slots__ = ()

    @property
    def literal(self) -> Quoted:
        return Quoted(f'"{self}"')


def quote(value: str) -> Quoted:
    return Quoted(f'"{escape_applescript_string(value)}"')


def row_ref(row_id: str) -> RowRef:
    return RowRef(validate_row_id(row_id))
