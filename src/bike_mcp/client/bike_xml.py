"""Structure encoders: OutlineNode trees -> AppleScript records / Bike XML.

Two lowerings of the same tree:

- Record list: ``{theName:"..", theType:heading, theChildren:{..}}`` literals,
  walked on the AppleScript side by the createRows handler (one ``make row``
  per node).
- Bike XML: ``<li data-type=".."><p>..</p><ul>..</ul></li>`` inside an
  html/body/ul envelope, handed to Bike's ``import`` in a single call.

Both are pure functions of the input; sibling order and nesting are kept.
"""

from collections.abc import Sequence

from ..models import OutlineNode, RowType
from .sanitize import escape_applescript_string


def escape_html(text: str) -> str:
    """Escape text for element content / attribute values."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


# -- record list -------------------------------------------------------------


def node_to_applescript(node: OutlineNode) -> str:
    """One node (and its subtree) as an AppleScript record literal."""
    children = ", ".join(node_to_applescript(child) for child in node.children)
    return (
        f'{{theName:"{escape_applescript_string(node.name)}", '
        f"theType:{node.row_type.value}, "
        f"theChildren:{{{children}}}}}"
    )


def structure_to_applescript(structure: Sequence[OutlineNode]) -> str:
    """Comma-joined records, ready to sit inside ``{...}``."""
    return ", ".join(node_to_applescript(node) for node in structure)


# -- Bike XML ----------------------------------------------------------------


def node_to_bike_xml(node: OutlineNode, allow_html: bool = False) -> str:
    """One node as an ``<li>``.

    With allow_html the name is trusted rich text (``<b>``, ``<a>`` ...) and
    goes in unescaped.
    """
    row_type = node.row_type
    type_attr = "" if row_type is RowType.BODY else f' data-type="{row_type.value}"'
    content = node.name if allow_html else escape_html(node.name)

    children = "\n".join(node_to_bike_xml(child, allow_html) for child in node.children)
    children_xml = f"<ul>\n{children}\n</ul>" if children else ""

    return f"<li{type_attr}><p>{content}</p>{children_xml}</li>"


def wrap_in_bike_xml(content: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<html>\n"
        "<body>\n"
        "<ul>\n"
        f"{content}\n"
        "</ul>\n"
        "</body>\n"
        "</html>"
    )


def structure_to_bike_xml(structure: Sequence[OutlineNode], allow_html: bool = False) -> str:
    """Complete Bike XML document for a list of top-level nodes."""
    items = "\n".join(node_to_bike_xml(node, allow_html) for node in structure)
    return wrap_in_bike_xml(items)
