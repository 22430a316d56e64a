#!/usr/bin/env python3
"""
Tests for the nbformat backed notebook host.
"""

import os
import shutil
import sys
import tempfile
import unittest

import nbformat

# Add the package directory to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from notebook_autoheader.config import Settings
from notebook_autoheader.controller import HeaderController, has_header
from notebook_autoheader.errors import NotebookError
from notebook_autoheader.host import CellData, CellKind, NotebookEdit
from notebook_autoheader.notebooks import FileNotebookHost


def write_notebook(path, cells, language=None):
    nb = nbformat.v4.new_notebook()
    nb.cells = cells
    if language:
        nb.metadata['language_info'] = {'name': language}
    nbformat.write(nb, path)


class TestFileNotebookHost(unittest.IsolatedAsyncioTestCase):
    """Test cases for reading, editing and saving notebook files."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.test_dir, 'my-first-post.ipynb')
        self.host = FileNotebookHost()

    def tearDown(self):
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    async def test_cell_mapping(self):
        write_notebook(self.path, [
            nbformat.v4.new_raw_cell("Title: x\nDate: y"),
            nbformat.v4.new_markdown_cell("# Heading"),
            nbformat.v4.new_code_cell("x = 1"),
        ], language='julia')

        document = await self.host.open(self.path)

        self.assertEqual(document.cell_count, 3)
        self.assertEqual((document.cell_at(0).kind, document.cell_at(0).language), (CellKind.CODE, 'raw'))
        self.assertEqual((document.cell_at(1).kind, document.cell_at(1).language), (CellKind.MARKUP, 'markdown'))
        self.assertEqual((document.cell_at(2).kind, document.cell_at(2).language), (CellKind.CODE, 'julia'))
        self.assertEqual(document.language, 'julia')
        self.assertTrue(document.uri.startswith('file://'))
        self.assertIs(self.host.active_notebook(), document)

    async def test_missing_file_opens_empty(self):
        document = await self.host.open(os.path.join(self.test_dir, 'new.ipynb'))
        self.assertEqual(document.cell_count, 0)

    async def test_unreadable_file(self):
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write("not json")
        with self.assertRaises(NotebookError):
            await self.host.open(self.path)

    async def test_edit_and_save_round_trip(self):
        write_notebook(self.path, [nbformat.v4.new_code_cell("x = 1")])
        document = await self.host.open(self.path)

        header = CellData(CellKind.CODE, "Title: A\nDate: B", 'raw', {'editable': False})
        self.assertTrue(await self.host.apply_edit(document, [NotebookEdit.insert_cells(0, [header])]))
        self.assertTrue(await self.host.save(document))

        nb = nbformat.read(self.path, as_version=4)
        self.assertEqual([c.cell_type for c in nb.cells], ['raw', 'code'])
        self.assertEqual(nb.cells[0].source, "Title: A\nDate: B")
        self.assertEqual(nb.cells[0].metadata['editable'], False)
        self.assertEqual(nb.cells[1].source, "x = 1")

    async def test_replace_keeps_cell_id(self):
        write_notebook(self.path, [nbformat.v4.new_raw_cell("Title: A\nDate: B")])
        original_id = nbformat.read(self.path, as_version=4).cells[0].get('id')
        document = await self.host.open(self.path)

        replacement = CellData(CellKind.CODE, "Title: A\nDate: C", 'raw')
        await self.host.apply_edit(document, [NotebookEdit.replace_cells(0, 1, [replacement])])
        await self.host.save(document)

        cell = nbformat.read(self.path, as_version=4).cells[0]
        self.assertEqual(cell.source, "Title: A\nDate: C")
        self.assertEqual(cell.get('id'), original_id)

    async def test_out_of_range_edit_is_rejected(self):
        write_notebook(self.path, [])
        document = await self.host.open(self.path)
        cell = CellData(CellKind.CODE, "", 'python')
        self.assertFalse(await self.host.apply_edit(document, [NotebookEdit.replace_cells(0, 1, [cell])]))
        self.assertEqual(document.cell_count, 0)

    async def test_closed_document_cannot_be_saved(self):
        write_notebook(self.path, [])
        document = await self.host.open(self.path)
        await self.host.close(document)
        self.assertIsNone(self.host.active_notebook())
        self.assertFalse(await self.host.save(document))


class TestFileLifecycle(unittest.IsolatedAsyncioTestCase):
    """Test cases for the controller driving real notebook files."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.test_dir, 'data_cleaning.ipynb')
        self.host = FileNotebookHost()
        self.controller = HeaderController(self.host, Settings(author='Jane Roe', open_delay=0, save_delay=0))
        self.controller.activate(self.host)

    def tearDown(self):
        self.controller.deactivate()
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    async def test_open_and_save_writes_stamped_header(self):
        write_notebook(self.path, [nbformat.v4.new_code_cell("import pandas as pd")])

        document = await self.host.open(self.path)
        self.assertTrue(has_header(document))
        await self.host.save(document)

        nb = nbformat.read(self.path, as_version=4)
        self.assertEqual(len(nb.cells), 2)
        self.assertEqual(nb.cells[0].cell_type, 'raw')
        self.assertIn("Title: Data Cleaning", nb.cells[0].source)
        self.assertIn("Slug: data-cleaning", nb.cells[0].source)
        self.assertNotIn("XXXX-XX-XX XX:XX", nb.cells[0].source)
        self.assertEqual(nb.cells[1].source, "import pandas as pd")

    async def test_reopened_notebook_is_recognised(self):
        write_notebook(self.path, [])
        document = await self.host.open(self.path)
        await self.host.save(document)
        await self.host.close(document)

        document = await self.host.open(self.path)
        self.assertEqual(document.cell_count, 2)
        self.assertTrue(has_header(document))
        self.assertFalse(await self.controller.ensure_header(document))


if __name__ == '__main__':
    unittest.main()
