#!/usr/bin/env python3
"""
Tests for metadata synthesis and header text handling.
"""

import os
import re
import sys
import unittest
from datetime import datetime

# Add the package directory to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from notebook_autoheader.config import Settings
from notebook_autoheader.core import (
    LAST_MODIFIED_PLACEHOLDER,
    derive_slug,
    derive_title,
    format_header,
    get_current_datetime,
    looks_like_header,
    parse_header,
    synthesize,
    update_last_modified_text,
)

SLUG_RE = re.compile(r'^[a-z0-9]+(-[a-z0-9]+)*$')
NOW = datetime(2024, 3, 7, 9, 5)


class TestSynthesize(unittest.TestCase):
    """Test cases for deriving metadata from file names."""

    def test_example_file_name(self):
        metadata = synthesize('my-first-post.ipynb', now=NOW)
        self.assertEqual(metadata.title, 'My First Post')
        self.assertEqual(metadata.slug, 'my-first-post')
        self.assertEqual(metadata.summary, 'My First Post')
        self.assertEqual(metadata.date, '2024-03-07 09:05')
        self.assertEqual(metadata.last_modified, LAST_MODIFIED_PLACEHOLDER)

    def test_title_from_full_path(self):
        self.assertEqual(derive_title('/home/user/notes/data_cleaning__part-2.ipynb'), 'Data Cleaning Part 2')

    def test_title_keeps_existing_capitals(self):
        self.assertEqual(derive_title('intro_to_SQL.ipynb'), 'Intro To SQL')

    def test_title_of_separator_only_name_is_not_empty(self):
        self.assertTrue(derive_title('--_.ipynb'))

    def test_empty_name(self):
        metadata = synthesize('', now=NOW)
        self.assertEqual(metadata.title, '')
        self.assertEqual(metadata.slug, '')

    def test_slugs_are_url_safe(self):
        """Slugs only contain lowercase words joined by single hyphens."""
        names = [
            'my-first-post.ipynb',
            '  Weird  Name!!.ipynb',
            '---leading-and-trailing---.ipynb',
            'Ünïcode café.ipynb',
            'a__b..c.ipynb',
            '2024 Q1 Report (final).ipynb',
            '!!!.ipynb',
            '',
        ]
        for name in names:
            slug = derive_slug(name)
            self.assertTrue(slug == '' or SLUG_RE.match(slug), f"{name!r} -> {slug!r}")

    def test_settings_supply_placeholders(self):
        settings = Settings(author='Jane Roe', category='Notes', tags=['ml', 'pandas'])
        metadata = synthesize('x.ipynb', settings, now=NOW)
        self.assertEqual(metadata.author, 'Jane Roe')
        self.assertEqual(metadata.category, 'Notes')
        self.assertEqual(metadata.tags, ['ml', 'pandas'])

    def test_current_datetime_is_zero_padded(self):
        self.assertEqual(get_current_datetime(datetime(2025, 1, 2, 3, 4)), '2025-01-02 03:04')


class TestHeaderText(unittest.TestCase):
    """Test cases for rendering, reading and updating header text."""

    def setUp(self):
        settings = Settings(author='Jane Roe')
        self.header = format_header(synthesize('my-first-post.ipynb', settings, now=NOW))

    def test_format_header(self):
        self.assertEqual(self.header, (
            "Title: My First Post\n"
            "Date: 2024-03-07 09:05\n"
            "Category: Add Category here\n"
            "Tags: tag1,tag2\n"
            "Slug: my-first-post\n"
            "Author: Jane Roe\n"
            "Summary: My First Post\n"
            "Last Modified: XXXX-XX-XX XX:XX"
        ))

    def test_parse_header(self):
        fields = parse_header(self.header)
        self.assertEqual(fields['Title'], 'My First Post')
        self.assertEqual(fields['Last Modified'], 'XXXX-XX-XX XX:XX')
        self.assertEqual(len(fields), 8)

    def test_looks_like_header(self):
        self.assertTrue(looks_like_header(self.header))
        self.assertFalse(looks_like_header("Title: only a title"))
        self.assertFalse(looks_like_header("print('hello')"))

    def test_update_last_modified_only_changes_timestamp(self):
        updated = update_last_modified_text(self.header, now=datetime(2024, 4, 1, 18, 30))
        old_lines = self.header.split('\n')
        new_lines = updated.split('\n')
        self.assertEqual(old_lines[:7], new_lines[:7])
        self.assertEqual(new_lines[7], 'Last Modified: 2024-04-01 18:30')

    def test_update_last_modified_replaces_first_occurrence_only(self):
        text = "Last Modified: old\nLast Modified: older"
        updated = update_last_modified_text(text, now=NOW)
        self.assertEqual(updated, "Last Modified: 2024-03-07 09:05\nLast Modified: older")

    def test_update_without_last_modified_line(self):
        text = "Title: x\nDate: y"
        self.assertEqual(update_last_modified_text(text, now=NOW), text)

    def test_update_keeps_crlf_line_endings(self):
        """Carriage returns around the Last Modified line survive the update."""
        text = "Title: A\r\nDate: B\r\nLast Modified: XXXX-XX-XX XX:XX\r\nTrailer: z"
        updated = update_last_modified_text(text, now=datetime(2024, 1, 2, 3, 4))
        self.assertEqual(updated, "Title: A\r\nDate: B\r\nLast Modified: 2024-01-02 03:04\r\nTrailer: z")


if __name__ == '__main__':
    unittest.main()
