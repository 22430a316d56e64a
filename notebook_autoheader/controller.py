"""
Header lifecycle controller and Last Modified tracker.

HeaderController reacts to notebook open, save and close events plus the
"add metadata" command. Per-document bookkeeping lives in a SessionRegistry
owned by the controller and is never persisted.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .config import Settings, load_settings
from .core import format_header, looks_like_header, synthesize, update_last_modified_text
from .host import CellData, CellKind, LifecycleSource, NotebookDocument, NotebookEdit, NotebookHost, Subscription

logger = logging.getLogger(__name__)

HEADER_LANGUAGE = 'raw'
HEADER_CELL_METADATA = {
    'editable': False,
    'runnable': False,
}

MSG_ADDED = 'Metadata added to notebook!'
MSG_ALREADY_PRESENT = 'Notebook already has metadata header.'
MSG_NO_NOTEBOOK = 'Please open a Jupyter notebook first.'


class DocumentStatus(Enum):
    UNTOUCHED = 'untouched'
    INSERTING = 'inserting'
    HEADER_INSERTED = 'header-inserted'


@dataclass
class _Entry:
    status: DocumentStatus = DocumentStatus.UNTOUCHED
    updating: bool = False


class SessionRegistry:
    """Header and update bookkeeping for the documents of one session."""

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}

    def status(self, key: str) -> DocumentStatus:
        entry = self._entries.get(key)
        return entry.status if entry else DocumentStatus.UNTOUCHED

    def is_processed(self, key: str) -> bool:
        return self.status(key) is not DocumentStatus.UNTOUCHED

    def begin_insert(self, key: str) -> None:
        self._entries.setdefault(key, _Entry()).status = DocumentStatus.INSERTING

    def finish_insert(self, key: str, ok: bool) -> None:
        entry = self._entries.get(key)
        if entry is None:
            # Forgotten while the insertion was in flight (document closed)
            return
        entry.status = DocumentStatus.HEADER_INSERTED if ok else DocumentStatus.UNTOUCHED

    def is_updating(self, key: str) -> bool:
        entry = self._entries.get(key)
        return bool(entry and entry.updating)

    def begin_update(self, key: str) -> bool:
        """Mark `key` as updating; False if an update is already in flight."""
        entry = self._entries.setdefault(key, _Entry())
        if entry.updating:
            return False
        entry.updating = True
        return True

    def end_update(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is not None:
            entry.updating = False

    def forget(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self):
        return len(self._entries)


def has_header(document: NotebookDocument) -> bool:
    """Check whether the first cell of `document` is a metadata header."""
    if document.cell_count == 0:
        return False
    first = document.cell_at(0)
    return (first.kind is CellKind.CODE
            and first.language == HEADER_LANGUAGE
            and looks_like_header(first.get_text()))


def create_header_cell(path: str, settings: Settings) -> CellData:
    metadata = synthesize(path, settings)
    return CellData(
        CellKind.CODE,
        format_header(metadata),
        HEADER_LANGUAGE,
        dict(HEADER_CELL_METADATA),
    )


class HeaderController:
    """
    Inserts metadata headers into notebooks and keeps Last Modified current.

    Args:
        host: The editing surface (edits, saves, notifications)
        settings: Settings to use; loaded from the environment if omitted
        registry: Session bookkeeping; a fresh registry if omitted
    """

    def __init__(
        self,
        host: NotebookHost,
        settings: Optional[Settings] = None,
        registry: Optional[SessionRegistry] = None
    ):
        self.host = host
        self.settings = settings if settings is not None else load_settings()
        self.registry = registry if registry is not None else SessionRegistry()
        self._subscriptions: List[Subscription] = []

    def is_notebook(self, document: Optional[NotebookDocument]) -> bool:
        return document is not None and document.notebook_type == self.settings.notebook_type

    async def ensure_header(self, document: NotebookDocument) -> bool:
        """
        Insert a header cell at the top of `document` unless it has one.

        Returns:
            bool: True if a header was inserted
        """
        key = document.uri
        if self.registry.is_processed(key) or has_header(document):
            return False

        logger.info("Adding metadata to notebook: %s", document.path)

        cells = [create_header_cell(document.path, self.settings)]
        if document.cell_count == 0:
            # Keep a language-bearing cell so the kernel language is not lost
            language = document.language or self.settings.language
            cells.append(CellData(CellKind.CODE, '', language))

        self.registry.begin_insert(key)
        ok = False
        try:
            ok = await self.host.apply_edit(document, [NotebookEdit.insert_cells(0, cells)])
            if ok:
                logger.debug("Metadata added to %s", document.path)
            else:
                logger.warning("Host rejected metadata insertion for %s", document.path)
        except Exception:
            logger.exception("Error adding metadata to %s", document.path)
        finally:
            self.registry.finish_insert(key, ok)
        return ok

    async def update_last_modified(self, document: NotebookDocument) -> bool:
        """
        Stamp the header's Last Modified line with the current time and save.

        Returns:
            bool: True if the header was updated and the document re-saved
        """
        key = document.uri
        if not self.registry.begin_update(key):
            return False

        logger.info("Updating Last Modified for: %s", document.path)
        try:
            first = document.cell_at(0)
            updated = CellData(
                first.kind,
                update_last_modified_text(first.get_text()),
                first.language,
                dict(first.metadata),
            )
            ok = await self.host.apply_edit(document, [NotebookEdit.replace_cells(0, 1, [updated])])
            if not ok:
                logger.warning("Host rejected Last Modified update for %s", document.path)
                return False
            await asyncio.sleep(self.settings.save_delay)
            return await self.host.save(document)
        except Exception:
            logger.exception("Error updating Last Modified for %s", document.path)
            return False
        finally:
            self.registry.end_update(key)

    async def add_metadata_command(self) -> bool:
        """The user facing 'add metadata' command for the focused notebook."""
        document = self.host.active_notebook()
        if not self.is_notebook(document):
            self.host.show_error_message(MSG_NO_NOTEBOOK)
            return False

        if await self.ensure_header(document):
            self.host.show_information_message(MSG_ADDED)
            return True
        self.host.show_information_message(MSG_ALREADY_PRESENT)
        return False

    async def wait_until_ready(self, document: NotebookDocument) -> None:
        ready = getattr(self.host, 'wait_until_ready', None)
        if ready is not None:
            await ready(document)
        else:
            await asyncio.sleep(self.settings.open_delay)

    async def handle_open(self, document: NotebookDocument) -> None:
        if not self.is_notebook(document) or document.scheme != 'file':
            logger.debug("Ignoring open of %s", document.uri)
            return
        logger.debug("Notebook opened: %s, cellCount: %d", document.path, document.cell_count)
        await self.wait_until_ready(document)
        await self.ensure_header(document)

    async def handle_save(self, document: NotebookDocument) -> None:
        if (not self.is_notebook(document)
                or self.registry.is_updating(document.uri)
                or not has_header(document)):
            return
        await self.update_last_modified(document)

    async def handle_close(self, document: NotebookDocument) -> None:
        self.registry.forget(document.uri)

    def activate(self, source: LifecycleSource) -> List[Subscription]:
        """Subscribe to the lifecycle events of `source`."""
        subscriptions = [
            source.on_open(self.handle_open),
            source.on_save(self.handle_save),
            source.on_close(self.handle_close),
        ]
        self._subscriptions.extend(subscriptions)
        logger.info("Notebook auto header is now active")
        return subscriptions

    def deactivate(self) -> None:
        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions = []
        self.registry.clear()
        logger.info("Notebook auto header is now deactivated")
