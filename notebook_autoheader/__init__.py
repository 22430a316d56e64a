"""
Metadata Headers for Jupyter Notebooks

This package inserts a metadata header cell at the top of notebooks when
they are opened and keeps its Last Modified line current on every save.
"""

# Version of the package
__version__ = "1.0.0"

# Import core functionality
from .core import (
    # Metadata synthesis
    NotebookMetadata,
    get_current_datetime,
    derive_title,
    derive_slug,
    synthesize,

    # Header text
    format_header,
    parse_header,
    looks_like_header,
    update_last_modified_text,
)

from .config import Settings, load_settings, determine_author
from .errors import AutoHeaderError, ConfigError, NotebookError

# Host model
from .host import (
    CellKind,
    CellData,
    NotebookEdit,
    NotebookDocument,
    NotebookHost,
    LifecycleSource,
    MemoryHost,
)
from .notebooks import FileNotebookHost

# Lifecycle
from .controller import (
    DocumentStatus,
    SessionRegistry,
    HeaderController,
    has_header,
)

# Import CLI if needed
from .cli import main as cli

# Define what gets imported with 'from notebook_autoheader import *'
__all__ = [
    # Version
    '__version__',

    # Core functions
    'NotebookMetadata',
    'get_current_datetime',
    'derive_title',
    'derive_slug',
    'synthesize',
    'format_header',
    'parse_header',
    'looks_like_header',
    'update_last_modified_text',

    # Configuration and errors
    'Settings',
    'load_settings',
    'determine_author',
    'AutoHeaderError',
    'ConfigError',
    'NotebookError',

    # Hosts
    'CellKind',
    'CellData',
    'NotebookEdit',
    'NotebookDocument',
    'NotebookHost',
    'LifecycleSource',
    'MemoryHost',
    'FileNotebookHost',

    # Lifecycle
    'DocumentStatus',
    'SessionRegistry',
    'HeaderController',
    'has_header',

    # CLI
    'cli',
]

# Package metadata
__license__ = "MIT"
__status__ = "Development"
