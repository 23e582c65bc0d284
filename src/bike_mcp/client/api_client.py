"""Bike client - the public operations."""

from typing import Any

from ..models import (
    CreateDocumentInput,
    CreateRowsInput,
    DeleteRowsInput,
    GetOutlineInput,
    GroupRowsInput,
    MissingGroupTargetError,
    OutlineNode,
    QueryRowsInput,
    UpdateRowsInput,
)
from .api_client_core import BikeClientCore
from .sanitize import validate_row_id, validate_row_ids


class BikeClient(BikeClientCore):
    """Operations over the open Bike document.

    Every call runs the same gate: Bike running, then (except for
    list_documents/create_document) a document open, then argument checks,
    then exactly one osascript round trip. update_rows adds one extra round
    trip per HTML entry. Nothing is retried.
    """

    async def list_documents(self) -> str:
        """Open documents, one per line; the front one is marked with ``*``."""
        await self._ensure_running()
        self.logger.info("list_documents")
        return await self._execute_text(self.scripts.list_documents(), "list documents")

    async def get_outline(self, max_depth: int | None = None) -> str:
        """Indented ``- name [row:ID]`` outline of the front document."""
        await self._ensure_document()
        params = self._parse_input(GetOutlineInput, max_depth=max_depth)
        self.logger.info(f"get_outline max_depth={params.max_depth}")
        return await self._execute_text(
            self.scripts.get_outline(params.max_depth), "get document outline"
        )

    async def create_document(
        self,
        structure: list[dict[str, Any]] | list[OutlineNode] | None = None,
        name: str | None = None,
        encoding: str = "markup",
        html: bool = False,
    ) -> str:
        """Create a new document, optionally populated.

        Args:
            structure: Outline nodes to fill the document with
            name: Title row placed before the structure
            encoding: "markup" (one bulk import) or "records" (row by row)
            html: Names are trusted Bike rich text

        Returns:
            ``name (doc:ID)`` of the new document
        """
        await self._ensure_running()
        params = self._parse_input(
            CreateDocumentInput, structure=structure, name=name, encoding=encoding, html=html
        )

        nodes = list(params.structure or [])
        if params.name:
            nodes.insert(0, OutlineNode(name=params.name))

        self.logger.info(f"create_document rows={sum(n.count() for n in nodes)} encoding={params.encoding}")
        script = self.scripts.create_document(nodes, encoding=params.encoding, allow_html=params.html)
        return await self._execute_text(script, "create document")

    async def create_rows(
        self,
        structure: list[dict[str, Any]] | list[OutlineNode],
        parent_id: str | None = None,
        position: str = "last",
        reference_id: str | None = None,
        encoding: str = "markup",
        html: bool = False,
    ) -> str:
        """Insert an outline structure into the front document.

        Args:
            structure: Top-level nodes to create (each may carry children)
            parent_id: Row whose children receive first/last inserts (root if omitted)
            position: first | last | before | after
            reference_id: Sibling anchor, required for before/after
            encoding: "markup" (one bulk import) or "records" (row by row)
            html: Names are trusted Bike rich text

        Returns:
            ``Created N row(s)`` counting top-level rows
        """
        await self._ensure_document()
        params = self._parse_input(
            CreateRowsInput,
            structure=structure,
            parent_id=parent_id,
            position=position,
            reference_id=reference_id,
            encoding=encoding,
            html=html,
        )
        if params.parent_id:
            validate_row_id(params.parent_id)
        if params.reference_id:
            validate_row_id(params.reference_id)

        self.logger.info(
            f"create_rows top={len(params.structure)} "
            f"total={sum(n.count() for n in params.structure)} position={params.position}"
        )
        script = self.scripts.create_rows(
            params.structure,
            parent_id=params.parent_id,
            position=params.position,
            reference_id=params.reference_id,
            encoding=params.encoding,
            allow_html=params.html,
        )
        return await self._execute_text(script, "create rows")

    async def group_rows(
        self,
        row_ids: list[str],
        group_name: str | None = None,
        parent_id: str | None = None,
        position: str | None = None,
        reference_id: str | None = None,
    ) -> str:
        """Move rows under an existing row (parent_id) or a new group row (group_name).

        parent_id wins when both are given. Without an explicit position a
        new group row is created in place, just before the first listed row.
        """
        await self._ensure_document()
        params = self._parse_input(
            GroupRowsInput,
            row_ids=row_ids,
            group_name=group_name,
            parent_id=parent_id,
            position=position,
            reference_id=reference_id,
        )
        if not params.group_name and not params.parent_id:
            raise MissingGroupTargetError()

        validate_row_ids(params.row_ids)
        if params.parent_id:
            validate_row_id(params.parent_id)
        if params.reference_id:
            validate_row_id(params.reference_id)

        mode = "existing parent" if params.parent_id else "new group"
        self.logger.info(f"group_rows count={len(params.row_ids)} mode={mode}")
        script = self.scripts.group_rows(
            params.row_ids,
            group_name=params.group_name,
            parent_id=params.parent_id,
            position=params.position,
            reference_id=params.reference_id,
        )
        return await self._execute_text(script, "group rows")

    async def update_rows(self, updates: list[dict[str, Any]]) -> str:
        """Change the text and/or type of rows.

        Plain updates go out together in one payload. Updates flagged html
        (with a name) are rewritten one at a time, in input order, after the
        plain batch.
        """
        await self._ensure_document()
        params = self._parse_input(UpdateRowsInput, updates=updates)
        validate_row_ids(u.row_id for u in params.updates)

        plain = [u for u in params.updates if not u.needs_reimport]
        rich = [u for u in params.updates if u.needs_reimport]
        self.logger.info(f"update_rows plain={len(plain)} html={len(rich)}")

        if plain:
            await self._execute_text(self.scripts.update_rows_plain(plain), "update rows")

        for update in rich:
            new_id = await self._execute_text(self.scripts.update_row_html(update), "update rows")
            self.logger.info(f"Row {update.row_id} re-imported as {new_id}")

        return f"Updated {len(params.updates)} row(s) ({len(plain)} plain, {len(rich)} html)"

    async def delete_rows(self, row_ids: list[str]) -> str:
        """Delete rows (and their subtrees)."""
        await self._ensure_document()
        params = self._parse_input(DeleteRowsInput, row_ids=row_ids)
        validate_row_ids(params.row_ids)
        self.logger.info(f"delete_rows count={len(params.row_ids)}")
        return await self._execute_text(self.scripts.delete_rows(params.row_ids), "delete rows")

    async def query_rows(self, outline_path: str) -> str:
        """Evaluate a Bike outline path against the front document."""
        await self._ensure_document()
        params = self._parse_input(QueryRowsInput, outline_path=outline_path)
        self.logger.info(f"query_rows path={params.outline_path!r}")
        return await self._execute_text(self.scripts.query_rows(params.outline_path), "query rows")
