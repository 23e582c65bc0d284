"""Tests for AppleScript escaping and identifier validation."""

from __future__ import annotations

import pytest

from bike_mcp.client.sanitize import (
    Quoted,
    RowRef,
    escape_applescript_string,
    quote,
    row_ref,
    validate_row_id,
    validate_row_ids,
)
from bike_mcp.models import InvalidIdentifierError


def decode_applescript_literal(body: str) -> str:
    """Read back the inside of an AppleScript "..." literal."""
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\":
            nxt = body[i + 1]
            out.append({"\\": "\\", '"': '"', "r": "\r", "n": "\n", "t": "\t"}[nxt])
            i += 2
            continue
        assert ch != '"', "unescaped quote would terminate the literal"
        assert ch not in "\r\n", "raw line break inside literal"
        out.append(ch)
        i += 1
    return "".join(out)


def test_escape_basic_characters() -> None:
    assert escape_applescript_string('say "hi"') == 'say \\"hi\\"'
    assert escape_applescript_string("a\\b") == "a\\\\b"
    assert escape_applescript_string("line1\nline2") == "line1\\nline2"
    assert escape_applescript_string("cr\rhere") == "cr\\rhere"


def test_escape_backslash_goes_first() -> None:
    # A quote preceded by a backslash must not collapse into \\" (which would end the literal)
    assert escape_applescript_string('\\"') == '\\\\\\"'


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain text",
        'He said "stop"',
        "C:\\path\\to\\file",
        "\\n is not a newline",
        'mixed \\" and \r\n endings\n',
        '" & do shell script "rm -rf ~" & "',
        "unicode ✓ ünïcödé",
    ],
)
def test_escape_reads_back_exactly(text: str) -> None:
    assert decode_applescript_literal(escape_applescript_string(text)) == text


@pytest.mark.parametrize("row_id", ["abc", "ABC123", "row-id_9", "-", "_", "Kx9"])
def test_valid_ids_pass_unchanged(row_id: str) -> None:
    assert validate_row_id(row_id) == row_id


@pytest.mark.parametrize(
    "row_id",
    ["", "has space", 'quote"d', "semi;colon", "new\nline", 'x" & quit & "', "ünï", "a.b"],
)
def test_invalid_ids_raise(row_id: str) -> None:
    with pytest.raises(InvalidIdentifierError):
        validate_row_id(row_id)


def test_validate_row_ids_fails_on_first_bad_entry() -> None:
    assert validate_row_ids(["a", "b"]) == ["a", "b"]
    with pytest.raises(InvalidIdentifierError) as exc:
        validate_row_ids(["good", "bad one", "also bad;"])
    assert exc.value.identifier == "bad one"


def test_quote_and_row_ref_produce_slot_types() -> None:
    q = quote('a "b"')
    assert isinstance(q, Quoted)
    assert q == '"a \\"b\\""'

    ref = row_ref("Kx9")
    assert isinstance(ref, RowRef)
    assert ref.literal == '"Kx9"'

    with pytest.raises(InvalidIdentifierError):
        row_ref('Kx9"')
