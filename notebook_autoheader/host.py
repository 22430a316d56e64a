"""
Host environment model.

The plugin never talks to an editor directly. It sees notebooks through the
small document model below and reaches the editor through two interfaces:
NotebookHost (edits, saves, notifications) and LifecycleSource (open, save
and close events). MemoryHost implements both in memory.
"""

import copy
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from .config import DEFAULT_NOTEBOOK_TYPE

logger = logging.getLogger(__name__)


class CellKind(Enum):
    CODE = 'code'
    MARKUP = 'markup'


@dataclass
class CellData:
    """A notebook cell: kind, text, language id and cell level metadata."""
    kind: CellKind
    source: str
    language: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_text(self) -> str:
        return self.source


@dataclass
class NotebookEdit:
    """Replace cells [start, end) with `cells`. start == end inserts."""
    start: int
    end: int
    cells: List[CellData]

    @classmethod
    def insert_cells(cls, index: int, cells: List[CellData]) -> 'NotebookEdit':
        return cls(index, index, list(cells))

    @classmethod
    def replace_cells(cls, start: int, end: int, cells: List[CellData]) -> 'NotebookEdit':
        return cls(start, end, list(cells))


class NotebookDocument:
    """
    An open notebook as seen by the plugin.

    `uri` is the identity key used for session bookkeeping. Cells are only
    changed by hosts applying edits.
    """

    def __init__(
        self,
        uri: str,
        path: Optional[str] = None,
        cells: Optional[List[CellData]] = None,
        notebook_type: str = DEFAULT_NOTEBOOK_TYPE,
        scheme: str = 'file',
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.uri = uri
        self.path = path if path is not None else uri
        self.notebook_type = notebook_type
        self.scheme = scheme
        self.metadata = metadata or {}
        self._cells = [copy.deepcopy(c) for c in cells or []]

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    def cell_at(self, index: int) -> CellData:
        return self._cells[index]

    def cells(self) -> List[CellData]:
        return list(self._cells)

    @property
    def language(self) -> Optional[str]:
        """Primary code language taken from the notebook metadata."""
        language_info = self.metadata.get('language_info') or {}
        if language_info.get('name'):
            return language_info['name']
        kernelspec = self.metadata.get('kernelspec') or {}
        return kernelspec.get('language') or None

    def set_cells(self, cells: List[CellData]) -> None:
        self._cells = list(cells)

    def __repr__(self):
        return f"NotebookDocument({self.uri!r}, cells={self.cell_count})"


def apply_edits_to_cells(cells: List[CellData], edits: List[NotebookEdit]) -> List[CellData]:
    """
    Apply a batch of edits to a copy of `cells`.

    Raises:
        IndexError: If any edit addresses cells outside the list; the input
            is left untouched
    """
    result = list(cells)
    for edit in edits:
        if not 0 <= edit.start <= edit.end <= len(result):
            raise IndexError(
                f"Edit range [{edit.start}, {edit.end}) outside 0..{len(result)}"
            )
        result[edit.start:edit.end] = [copy.deepcopy(c) for c in edit.cells]
    return result


Handler = Callable[[NotebookDocument], Optional[Awaitable[None]]]


class Subscription:
    def __init__(self, dispose: Callable[[], None]):
        self._dispose = dispose

    def dispose(self) -> None:
        if self._dispose is not None:
            self._dispose()
            self._dispose = None


class EventEmitter:
    """Calls subscribed handlers, in subscription order, for each event."""

    def __init__(self):
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> Subscription:
        self._handlers.append(handler)

        def dispose():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return Subscription(dispose)

    async def fire(self, document: NotebookDocument) -> None:
        for handler in list(self._handlers):
            result = handler(document)
            if inspect.isawaitable(result):
                await result


class NotebookHost(Protocol):
    """
    Editing surface offered by the host.

    A host may also provide `async wait_until_ready(document)`, resolved
    once a freshly opened document has its initial cells.
    """

    async def apply_edit(self, document: NotebookDocument, edits: List[NotebookEdit]) -> bool:
        ...

    async def save(self, document: NotebookDocument) -> bool:
        ...

    def active_notebook(self) -> Optional[NotebookDocument]:
        ...

    def show_information_message(self, message: str) -> None:
        ...

    def show_error_message(self, message: str) -> None:
        ...


class LifecycleSource(Protocol):
    def on_open(self, handler: Handler) -> Subscription:
        ...

    def on_save(self, handler: Handler) -> Subscription:
        ...

    def on_close(self, handler: Handler) -> Subscription:
        ...


class LifecycleEvents:
    """Open/save/close emitters shared by the concrete hosts."""

    def __init__(self):
        self._open_event = EventEmitter()
        self._save_event = EventEmitter()
        self._close_event = EventEmitter()

    def on_open(self, handler: Handler) -> Subscription:
        return self._open_event.subscribe(handler)

    def on_save(self, handler: Handler) -> Subscription:
        return self._save_event.subscribe(handler)

    def on_close(self, handler: Handler) -> Subscription:
        return self._close_event.subscribe(handler)


class MemoryHost(LifecycleEvents):
    """
    In-memory host: documents, edits and notifications live in this object.

    Save notifications are delivered before save() returns.
    """

    def __init__(self):
        super().__init__()
        self.documents: Dict[str, NotebookDocument] = {}
        self.active: Optional[NotebookDocument] = None
        self.messages: List[Tuple[str, str]] = []
        self.saves: Dict[str, int] = {}
        self.applied_edits: List[Tuple[str, List[NotebookEdit]]] = []
        self.reject_edits = False

    async def open_document(
        self,
        uri: str,
        cells: Optional[List[CellData]] = None,
        path: Optional[str] = None,
        notebook_type: str = DEFAULT_NOTEBOOK_TYPE,
        scheme: str = 'file',
        metadata: Optional[Dict[str, Any]] = None
    ) -> NotebookDocument:
        document = NotebookDocument(
            uri, path=path, cells=cells, notebook_type=notebook_type,
            scheme=scheme, metadata=metadata
        )
        self.documents[uri] = document
        self.active = document
        await self._open_event.fire(document)
        return document

    async def close_document(self, document: NotebookDocument) -> None:
        self.documents.pop(document.uri, None)
        if self.active is document:
            self.active = None
        await self._close_event.fire(document)

    def active_notebook(self) -> Optional[NotebookDocument]:
        return self.active

    async def apply_edit(self, document: NotebookDocument, edits: List[NotebookEdit]) -> bool:
        if self.reject_edits:
            return False
        try:
            cells = apply_edits_to_cells(document.cells(), edits)
        except IndexError as e:
            logger.warning("Rejected edit for %s: %s", document.uri, e)
            return False
        document.set_cells(cells)
        self.applied_edits.append((document.uri, list(edits)))
        return True

    async def save(self, document: NotebookDocument) -> bool:
        self.saves[document.uri] = self.saves.get(document.uri, 0) + 1
        await self._save_event.fire(document)
        return True

    def show_information_message(self, message: str) -> None:
        self.messages.append(('info', message))

    def show_error_message(self, message: str) -> None:
        self.messages.append(('error', message))
