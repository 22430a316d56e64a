"""
Core functionality for notebook metadata headers.

This module derives a metadata record from a notebook file name and renders
it as the plain text header cell that sits at the top of a notebook. It also
knows how to recognise such a header and how to refresh its Last Modified
line in place.
"""

import os
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

# Timestamp format used for Date and Last Modified (local time, no offset)
DATETIME_FORMAT = '%Y-%m-%d %H:%M'

# Last Modified value written into freshly created headers
LAST_MODIFIED_PLACEHOLDER = 'XXXX-XX-XX XX:XX'

DEFAULT_CATEGORY = 'Add Category here'
DEFAULT_TAGS = ['tag1', 'tag2']
DEFAULT_AUTHOR = 'Unknown'

# Header lines, in the order they are written
HEADER_LABELS = [
    'Title',
    'Date',
    'Category',
    'Tags',
    'Slug',
    'Author',
    'Summary',
    'Last Modified',
]

# Regular expression to match the Last Modified line (rest of line only)
LAST_MODIFIED_PATTERN = re.compile(r'Last Modified: [^\r\n]*')

HEADER_LINE_PATTERN = re.compile(r'^([A-Za-z ]+):[ \t]?(.*)$', re.MULTILINE)

WORD_START_PATTERN = re.compile(r'\b\w')


@dataclass
class NotebookMetadata:
    """Metadata carried by a notebook header cell."""
    title: str
    date: str
    last_modified: str = LAST_MODIFIED_PLACEHOLDER
    category: str = DEFAULT_CATEGORY
    tags: List[str] = field(default_factory=lambda: list(DEFAULT_TAGS))
    slug: str = ''
    author: str = DEFAULT_AUTHOR
    summary: str = ''


def get_current_datetime(now: Optional[datetime] = None) -> str:
    """Format the current local time as YYYY-MM-DD HH:MM."""
    if now is None:
        now = datetime.now()
    return now.strftime(DATETIME_FORMAT)


def _base_name(filename: str) -> str:
    base = os.path.basename(filename.replace('\\', '/'))
    stem, _ = os.path.splitext(base)
    return stem


def derive_title(filename: str) -> str:
    """
    Derive a human readable title from a file name.

    The extension is dropped, runs of '-' and '_' become single spaces and
    the first letter of every word is uppercased. Other letters are left
    as they are.

    Args:
        filename: Path or bare file name of the notebook

    Returns:
        str: The title, never empty unless the file name is empty
    """
    base = _base_name(filename)
    title = re.sub(r'[-_]+', ' ', base)
    title = WORD_START_PATTERN.sub(lambda m: m.group(0).upper(), title).strip()
    if not title:
        # Names made only of separators still need a non-empty title
        return base
    return title


def derive_slug(filename: str) -> str:
    """
    Derive a URL-safe slug from a file name.

    Returns:
        str: Lowercase alphanumeric words joined by single hyphens, or ''
    """
    slug = _base_name(filename).lower()
    slug = re.sub(r'[^a-z0-9]+', '-', slug)
    return slug.strip('-')


def synthesize(filename: str, settings=None, now: Optional[datetime] = None) -> NotebookMetadata:
    """
    Build the metadata record for a notebook from its file name.

    Args:
        filename: Path or bare file name of the notebook
        settings: Optional Settings supplying category, tags and author
        now: Timestamp to use instead of the current time

    Returns:
        NotebookMetadata: A fresh record with a placeholder Last Modified
    """
    title = derive_title(filename)
    metadata = NotebookMetadata(
        title=title,
        date=get_current_datetime(now),
        slug=derive_slug(filename),
        summary=title,
    )
    if settings is not None:
        metadata.category = settings.category
        metadata.tags = list(settings.tags)
        metadata.author = settings.author
    return metadata


def format_header(metadata: NotebookMetadata) -> str:
    """Render metadata as the eight line header cell text."""
    values = [
        metadata.title,
        metadata.date,
        metadata.category,
        ','.join(metadata.tags),
        metadata.slug,
        metadata.author,
        metadata.summary,
        metadata.last_modified,
    ]
    return '\n'.join(
        f"{label}: {value}" for label, value in zip(HEADER_LABELS, values)
    )


def parse_header(text: str) -> Dict[str, str]:
    """Read the known 'Label: value' lines of a header cell into a dict."""
    fields = {}
    for label, value in HEADER_LINE_PATTERN.findall(text or ''):
        label = label.strip()
        if label in HEADER_LABELS and label not in fields:
            fields[label] = value.strip()
    return fields


def looks_like_header(text: str) -> bool:
    """Check whether cell text carries the Title and Date header lines."""
    return 'Title:' in text and 'Date:' in text


def update_last_modified_text(text: str, now: Optional[datetime] = None) -> str:
    """
    Replace the first Last Modified value with the current timestamp.

    Everything else in the text is kept byte for byte. Text without a Last
    Modified line is returned unchanged.
    """
    stamp = get_current_datetime(now)
    return LAST_MODIFIED_PATTERN.sub(
        lambda _: f"Last Modified: {stamp}", text, count=1
    )
