"""AppleScript payload builders for every Bike operation.

Payloads are assembled from ScriptTemplate objects. A template only accepts
slot values that have already been through the sanitizer (Quoted, RowRef),
closed values (RowType, int) or other rendered fragments. Passing a plain
str raises TypeError, so unescaped caller text cannot reach a payload.
"""

from collections.abc import Sequence
from string import Template

from ..models import InvalidArgumentError, MissingGroupTargetError, OutlineNode, RowType, RowUpdate
from .bike_xml import structure_to_applescript, structure_to_bike_xml
from .sanitize import Quoted, RowRef, quote, row_ref


class Fragment(str):
    """AppleScript source produced by a template or fixed boilerplate."""

    __slots__ = ()


SlotValue = Quoted | RowRef | Fragment | RowType | int


class ScriptTemplate:
    """AppleScript source with ``$name`` slots."""

    def __init__(self, source: str):
        self._template = Template(source)

    @staticmethod
    def _render_slot(name: str, value: SlotValue) -> str:
        if isinstance(value, (Quoted, Fragment)):
            return str(value)
        if isinstance(value, RowRef):
            return str(value.literal)
        if isinstance(value, RowType):
            return value.value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        raise TypeError(
            f"Slot '{name}' got {type(value).__name__}; "
            "text must go through quote() and ids through row_ref()"
        )

    def render(self, **slots: SlotValue) -> Fragment:
        rendered = {name: self._render_slot(name, value) for name, value in slots.items()}
        return Fragment(self._template.substitute(rendered))


def join_fragments(fragments: Sequence[Fragment], separator: str = "\n") -> Fragment:
    for fragment in fragments:
        if not isinstance(fragment, Fragment):
            raise TypeError("join_fragments only accepts rendered fragments")
    return Fragment(separator.join(fragments))


def id_list(row_ids: Sequence[str]) -> Fragment:
    """``{"a", "b"}`` from validated ids."""
    refs = [row_ref(row_id) for row_id in row_ids]
    return Fragment("{" + ", ".join(ref.literal for ref in refs) + "}")


EMPTY = Fragment("")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

IS_RUNNING = ScriptTemplate("""
tell application "System Events"
  return exists (processes where name is $app)
end tell
""")

HAS_OPEN_DOCUMENT = ScriptTemplate("""
tell application $app
  return (count of documents) > 0
end tell
""")

LIST_DOCUMENTS = ScriptTemplate("""
tell application $app
  set docCount to count of documents
  if docCount is 0 then
    return "No documents open"
  end if

  set frontDocId to id of root row of front document

  set outputText to ""
  repeat with i from 1 to docCount
    set doc to document i
    set docName to name of doc
    set docId to id of root row of doc

    if docId is frontDocId then
      set outputText to outputText & "* " & docName & " (doc:" & docId & ")"
    else
      set outputText to outputText & "  " & docName & " (doc:" & docId & ")"
    end if

    if i < docCount then
      set outputText to outputText & linefeed
    end if
  end repeat

  return outputText
end tell
""")

# maxD of -1 means unlimited; depth 1 prints top-level rows only.
GET_OUTLINE = ScriptTemplate("""
on rowToOutline(r, indentLevel, maxD)
  tell application $app
    set rowId to id of r
    set rowName to name of r

    set indent to ""
    repeat indentLevel times
      set indent to indent & "  "
    end repeat

    set lineText to indent & "- " & rowName & " [row:" & rowId & "]" & linefeed

    if maxD is not -1 and (indentLevel + 1) >= maxD then
      return lineText
    end if

    repeat with childRow in (rows of r)
      set lineText to lineText & my rowToOutline(childRow, indentLevel + 1, maxD)
    end repeat

    return lineText
  end tell
end rowToOutline

tell application $app
  set doc to front document
  set docName to name of doc
  set docId to id of root row of doc

  set outputText to docName & " (doc:" & docId & ")" & linefeed & linefeed

  repeat with r in (rows of root row of doc)
    set outputText to outputText & my rowToOutline(r, 0, $max_depth)
  end repeat

  return outputText
end tell
""")

CREATE_ROWS_HANDLER = ScriptTemplate("""
on createRows(nodeList, parentRow)
  tell application $app
    repeat with node in nodeList
      set newRow to make row at end of rows of parentRow with properties {name:theName of node, type:theType of node}
      set childNodes to theChildren of node
      if (count of childNodes) > 0 then
        my createRows(childNodes, newRow)
      end if
    end repeat
  end tell
end createRows
""")

CREATE_DOCUMENT = ScriptTemplate("""
$handlers
tell application $app
  set newDoc to make document
  set docId to id of root row of newDoc
$populate
  set docName to name of newDoc
  return docName & " (doc:" & docId & ")"
end tell
""")

POPULATE_DOCUMENT_MARKUP = ScriptTemplate("""  tell newDoc
    import from $xml as bike format to end of rows of root row
  end tell""")

POPULATE_DOCUMENT_RECORDS = ScriptTemplate("""  tell newDoc
    set nodeList to {$records}
    my createRows(nodeList, root row)
  end tell""")

CREATE_ROWS_MARKUP = ScriptTemplate("""
tell application $app
  tell front document
$setup
    import from $xml as bike format to $location
    return "Created " & $count & " row(s)"
  end tell
end tell
""")

CREATE_ROWS_RECORDS = ScriptTemplate("""
$handlers
tell application $app
  tell front document
$setup
    set nodeList to {$records}
    set lastCreated to missing value
    repeat with node in nodeList
      if lastCreated is missing value then
        set newRow to make row at $location with properties {name:theName of node, type:theType of node}
      else
        set newRow to make row at after lastCreated with properties {name:theName of node, type:theType of node}
      end if
      set lastCreated to newRow
      set childNodes to theChildren of node
      if (count of childNodes) > 0 then
        my createRows(childNodes, newRow)
      end if
    end repeat
    return "Created " & $count & " row(s)"
  end tell
end tell
""")

# Resolved when the script runs: the reference row's parent may have changed
# since the request was built.
RESOLVE_REFERENCE = ScriptTemplate("""    set refRow to row id $reference
    set parentRow to container row of refRow""")

ROW_BY_ID = ScriptTemplate("row id $row")

MOVE_TO_PARENT = ScriptTemplate("""
tell application $app
  tell front document
    set targetParent to row id $parent
    set rowsToMove to $ids
    repeat with rowId in rowsToMove
      move row id (contents of rowId) to end of rows of targetParent
    end repeat
    return "Moved " & (count of rowsToMove) & " row(s) to existing parent [row:" & (id of targetParent) & "]"
  end tell
end tell
""")

CREATE_GROUP_IN_PLACE = ScriptTemplate("""    set firstRow to row id $first
    set parentRow to container row of firstRow
    set newGroup to make row at before firstRow with properties {name:$group_name}""")

CREATE_GROUP_AT = ScriptTemplate("""$setup
    set newGroup to make row at $location with properties {name:$group_name}""")

GROUP_ROWS = ScriptTemplate("""
tell application $app
  tell front document
$create_group
    set groupId to id of newGroup
    set rowsToMove to $ids
    repeat with rowId in rowsToMove
      move row id (contents of rowId) to end of rows of newGroup
    end repeat
    return "Created group: " & $group_name & " [row:" & groupId & "] with " & (count of rowsToMove) & " row(s)"
  end tell
end tell
""")

SET_TARGET_ROW = ScriptTemplate("    set targetRow to row id $row")
SET_ROW_NAME = ScriptTemplate("    set name of targetRow to $name")
SET_ROW_TYPE = ScriptTemplate("    set type of targetRow to $row_type")

UPDATE_ROWS = ScriptTemplate("""
tell application $app
  tell front document
$statements
    return "Updated " & $count & " row(s)"
  end tell
end tell
""")

# Bike's name setter takes plain text only. Rich text is written by
# detaching the children, deleting the row, importing a one-row fragment in
# its old slot and reattaching the children. If the import fails the old
# text comes back as a plain row with the children under it, then the error
# is raised again.
UPDATE_ROW_HTML = ScriptTemplate("""
tell application $app
  tell front document
    set targetRow to row id $row
    set oldName to name of targetRow
    set oldType to type of targetRow
    set parentRow to container row of targetRow
    set nextRow to next sibling row of targetRow
    set childIds to id of rows of targetRow

    repeat with childId in childIds
      move row id (contents of childId) to before targetRow
    end repeat

    delete targetRow

    try
      if nextRow is missing value then
        set importedRows to import from $xml as bike format to end of rows of parentRow
      else
        set importedRows to import from $xml as bike format to before nextRow
      end if
      set newRow to item 1 of importedRows
$restore_type
    on error errMsg number errNum
      if nextRow is missing value then
        set newRow to make row at end of rows of parentRow with properties {name:oldName, type:oldType}
      else
        set newRow to make row at before nextRow with properties {name:oldName, type:oldType}
      end if
      repeat with childId in childIds
        move row id (contents of childId) to end of rows of newRow
      end repeat
      error errMsg number errNum
    end try

    repeat with childId in childIds
      move row id (contents of childId) to end of rows of newRow
    end repeat

    return id of newRow
  end tell
end tell
""")

RESTORE_TYPE = Fragment("      set type of newRow to oldType")

DELETE_ROWS = ScriptTemplate("""
tell application $app
  tell front document
    set rowsToDelete to $ids
    set deletedCount to 0
    repeat with rowId in rowsToDelete
      delete row id (contents of rowId)
      set deletedCount to deletedCount + 1
    end repeat
    return "Deleted " & deletedCount & " row(s)"
  end tell
end tell
""")

QUERY_ROWS = ScriptTemplate("""
tell application $app
  set queryResult to query front document outline path $path

  if class of queryResult is list then
    if (count of queryResult) is 0 then
      return "No rows found"
    end if

    set outputText to ""
    repeat with r in queryResult
      set rowId to id of r
      set rowName to name of r
      set outputText to outputText & "- " & rowName & " [row:" & rowId & "]" & linefeed
    end repeat
    return outputText
  else
    return queryResult as text
  end if
end tell
""")


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


class InsertionPoint:
    """Where new rows go: optional setup statements plus a location."""

    def __init__(self, setup: Fragment, location: Fragment):
        self.setup = setup
        self.location = location

    def __repr__(self) -> str:
        return f"InsertionPoint(setup={self.setup!r}, location={self.location!r})"


def resolve_insertion_point(
    parent_id: str | None = None,
    position: str = "last",
    reference_id: str | None = None,
) -> InsertionPoint:
    """Map (parent_id, position, reference_id) onto an AppleScript location.

    first/last address the children of parent_id (or the root row);
    before/after address the reference row's siblings.
    """
    if position in ("before", "after"):
        if not reference_id:
            raise InvalidArgumentError("reference_id is required when position is 'before' or 'after'")
        setup = RESOLVE_REFERENCE.render(reference=row_ref(reference_id))
        return InsertionPoint(setup, Fragment(f"{position} refRow"))

    if position not in ("first", "last"):
        raise InvalidArgumentError(f"Unknown position: {position!r}")

    target = ROW_BY_ID.render(row=row_ref(parent_id)) if parent_id else Fragment("root row")
    edge = "front" if position == "first" else "end"
    return InsertionPoint(EMPTY, Fragment(f"{edge} of rows of {target}"))


class BikeScripts:
    """Builds the payload for each operation, targeting one application name."""

    def __init__(self, app_name: str = "Bike"):
        self.app = quote(app_name)

    # -- probes ----------------------------------------------------------------

    def is_running(self) -> Fragment:
        return IS_RUNNING.render(app=self.app)

    def has_open_document(self) -> Fragment:
        return HAS_OPEN_DOCUMENT.render(app=self.app)

    # -- reads -----------------------------------------------------------------

    def list_documents(self) -> Fragment:
        return LIST_DOCUMENTS.render(app=self.app)

    def get_outline(self, max_depth: int | None = None) -> Fragment:
        return GET_OUTLINE.render(app=self.app, max_depth=-1 if max_depth is None else int(max_depth))

    def query_rows(self, outline_path: str) -> Fragment:
        return QUERY_ROWS.render(app=self.app, path=quote(outline_path))

    # -- creation --------------------------------------------------------------

    def _handlers(self) -> Fragment:
        return CREATE_ROWS_HANDLER.render(app=self.app)

    def create_document(
        self,
        structure: Sequence[OutlineNode] | None = None,
        encoding: str = "markup",
        allow_html: bool = False,
    ) -> Fragment:
        if not structure:
            return CREATE_DOCUMENT.render(app=self.app, handlers=EMPTY, populate=EMPTY)

        if encoding == "records":
            populate = POPULATE_DOCUMENT_RECORDS.render(
                records=Fragment(structure_to_applescript(structure))
            )
            return CREATE_DOCUMENT.render(app=self.app, handlers=self._handlers(), populate=populate)

        populate = POPULATE_DOCUMENT_MARKUP.render(
            xml=quote(structure_to_bike_xml(structure, allow_html))
        )
        return CREATE_DOCUMENT.render(app=self.app, handlers=EMPTY, populate=populate)

    def create_rows(
        self,
        structure: Sequence[OutlineNode],
        parent_id: str | None = None,
        position: str = "last",
        reference_id: str | None = None,
        encoding: str = "markup",
        allow_html: bool = False,
    ) -> Fragment:
        point = resolve_insertion_point(parent_id, position, reference_id)
        count = len(structure)

        if encoding == "records":
            return CREATE_ROWS_RECORDS.render(
                app=self.app,
                handlers=self._handlers(),
                setup=point.setup,
                records=Fragment(structure_to_applescript(structure)),
                location=point.location,
                count=count,
            )

        return CREATE_ROWS_MARKUP.render(
            app=self.app,
            setup=point.setup,
            xml=quote(structure_to_bike_xml(structure, allow_html)),
            location=point.location,
            count=count,
        )

    # -- grouping --------------------------------------------------------------

    def group_rows(
        self,
        row_ids: Sequence[str],
        group_name: str | None = None,
        parent_id: str | None = None,
        position: str | None = None,
        reference_id: str | None = None,
    ) -> Fragment:
        ids = id_list(row_ids)

        if parent_id:
            return MOVE_TO_PARENT.render(app=self.app, parent=row_ref(parent_id), ids=ids)

        if not group_name:
            raise MissingGroupTargetError()

        name = quote(group_name)
        if position is None:
            create_group = CREATE_GROUP_IN_PLACE.render(first=row_ref(row_ids[0]), group_name=name)
        else:
            point = resolve_insertion_point(None, position, reference_id)
            create_group = CREATE_GROUP_AT.render(setup=point.setup, location=point.location, group_name=name)

        return GROUP_ROWS.render(app=self.app, create_group=create_group, ids=ids, group_name=name)

    # -- updates ---------------------------------------------------------------

    def update_rows_plain(self, updates: Sequence[RowUpdate]) -> Fragment:
        """One payload for every update that can use the property setters."""
        statements: list[Fragment] = []
        for update in updates:
            statements.append(SET_TARGET_ROW.render(row=row_ref(update.row_id)))
            if update.name is not None:
                statements.append(SET_ROW_NAME.render(name=quote(update.name)))
            if update.type is not None:
                statements.append(SET_ROW_TYPE.render(row_type=update.type))
        return UPDATE_ROWS.render(app=self.app, statements=join_fragments(statements), count=len(updates))

    def update_row_html(self, update: RowUpdate) -> Fragment:
        """Payload replacing one row's text with rich text, keeping its place and children."""
        if update.name is None:
            raise InvalidArgumentError(f"Update for row {update.row_id}: html requires 'name'")
        fragment = structure_to_bike_xml([OutlineNode(name=update.name, type=update.type)], allow_html=True)
        return UPDATE_ROW_HTML.render(
            app=self.app,
            row=row_ref(update.row_id),
            xml=quote(fragment),
            restore_type=EMPTY if update.type is not None else RESTORE_TYPE,
        )

    # -- deletion --------------------------------------------------------------

    def delete_rows(self, row_ids: Sequence[str]) -> Fragment:
        return DELETE_ROWS.render(app=self.app, ids=id_list(row_ids))
