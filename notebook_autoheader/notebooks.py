"""
File backed host for .ipynb notebooks.

Notebooks are read and written with nbformat. Raw cells map to code cells
with the 'raw' language id, which is how header cells are stored on disk.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import nbformat

from .config import DEFAULT_NOTEBOOK_TYPE
from .errors import NotebookError
from .host import CellData, CellKind, LifecycleEvents, NotebookDocument, NotebookEdit, apply_edits_to_cells

logger = logging.getLogger(__name__)

RAW_LANGUAGE = 'raw'
MARKDOWN_LANGUAGE = 'markdown'


def read_notebook(path: str):
    """Read a notebook file, or return an empty notebook if it does not exist."""
    if not os.path.exists(path):
        return nbformat.v4.new_notebook()
    try:
        return nbformat.read(path, as_version=4)
    except Exception as e:
        raise NotebookError(f"Could not read notebook {path}: {e}") from e


def cell_from_nbformat(cell, language: str) -> CellData:
    metadata = dict(cell.get('metadata', {}))
    if cell.cell_type == 'raw':
        return CellData(CellKind.CODE, cell.source, RAW_LANGUAGE, metadata)
    if cell.cell_type == 'markdown':
        return CellData(CellKind.MARKUP, cell.source, MARKDOWN_LANGUAGE, metadata)
    return CellData(CellKind.CODE, cell.source, language, metadata)


def cell_to_nbformat(cell: CellData, original=None):
    """
    Convert a host cell to an nbformat cell.

    The id of `original` is kept when the cell type is unchanged, and so
    are the outputs of a replaced code cell.
    """
    if cell.kind is CellKind.MARKUP:
        new = nbformat.v4.new_markdown_cell(cell.source)
    elif cell.language == RAW_LANGUAGE:
        new = nbformat.v4.new_raw_cell(cell.source)
    else:
        new = nbformat.v4.new_code_cell(cell.source)
        if original is not None and original.cell_type == 'code':
            new.outputs = original.get('outputs', [])
            new.execution_count = original.get('execution_count')
    if original is not None and original.cell_type == new.cell_type and 'id' in original:
        new.id = original.id
    new.metadata = nbformat.from_dict(dict(cell.metadata))
    return new


class FileNotebookHost(LifecycleEvents):
    """
    Host over notebook files on disk.

    Documents are keyed by their absolute path as a file:// uri. Messages
    go to stdout (information) and stderr (errors).
    """

    def __init__(self, default_language: str = 'python'):
        super().__init__()
        self.default_language = default_language
        self.documents: Dict[str, NotebookDocument] = {}
        self.active: Optional[NotebookDocument] = None
        self._notebooks = {}

    async def open(self, path: str) -> NotebookDocument:
        """
        Load a notebook, make it the active document and fire the open event.

        Raises:
            NotebookError: If the file exists but is not a readable notebook
        """
        abs_path = str(Path(path).resolve())
        nb = read_notebook(abs_path)
        document = NotebookDocument(
            Path(abs_path).as_uri(),
            path=abs_path,
            notebook_type=DEFAULT_NOTEBOOK_TYPE,
            scheme='file',
            metadata=dict(nb.metadata),
        )
        language = document.language or self.default_language
        document.set_cells([cell_from_nbformat(c, language) for c in nb.cells])

        self._notebooks[document.uri] = nb
        self.documents[document.uri] = document
        self.active = document
        await self._open_event.fire(document)
        return document

    async def close(self, document: NotebookDocument) -> None:
        self.documents.pop(document.uri, None)
        self._notebooks.pop(document.uri, None)
        if self.active is document:
            self.active = None
        await self._close_event.fire(document)

    async def wait_until_ready(self, document: NotebookDocument) -> None:
        # Cells are fully loaded by open() before the open event fires
        return None

    def active_notebook(self) -> Optional[NotebookDocument]:
        return self.active

    async def apply_edit(self, document: NotebookDocument, edits: List[NotebookEdit]) -> bool:
        if document.uri not in self.documents:
            logger.warning("Edit for unknown notebook %s", document.uri)
            return False
        try:
            cells = apply_edits_to_cells(document.cells(), edits)
        except IndexError as e:
            logger.warning("Rejected edit for %s: %s", document.path, e)
            return False

        nb = self._notebooks[document.uri]
        nb_cells = list(nb.cells)
        for edit in edits:
            replaced = nb_cells[edit.start:edit.end]
            new_cells = []
            for i, cell in enumerate(edit.cells):
                original = replaced[i] if i < len(replaced) else None
                new_cell = cell_to_nbformat(cell, original)
                if nb.nbformat_minor < 5:
                    # Cell ids only exist from nbformat 4.5 on
                    new_cell.pop('id', None)
                new_cells.append(new_cell)
            nb_cells[edit.start:edit.end] = new_cells
        nb.cells = nb_cells
        document.set_cells(cells)
        return True

    def to_notebook(self, document: NotebookDocument):
        return self._notebooks[document.uri]

    async def save(self, document: NotebookDocument) -> bool:
        nb = self._notebooks.get(document.uri)
        if nb is None:
            logger.warning("Save for unknown notebook %s", document.uri)
            return False
        try:
            nbformat.write(nb, document.path)
        except OSError as e:
            logger.error("Could not save %s: %s", document.path, e)
            return False
        await self._save_event.fire(document)
        return True

    def show_information_message(self, message: str) -> None:
        print(message)

    def show_error_message(self, message: str) -> None:
        print(f"Error: {message}", file=sys.stderr)
