"""
Configuration for the notebook header plugin.

Settings come from module defaults, then environment variables, then
explicit overrides (usually command line flags).
"""

import getpass
import os
import subprocess
from dataclasses import dataclass, field, fields
from typing import List, Mapping, Optional

from .core import DEFAULT_AUTHOR, DEFAULT_CATEGORY, DEFAULT_TAGS
from .errors import ConfigError

DEFAULT_LANGUAGE = 'python'
DEFAULT_NOTEBOOK_TYPE = 'jupyter-notebook'

# Seconds to wait for the host to populate a freshly opened notebook
DEFAULT_OPEN_DELAY = 0.1

# Seconds to let a Last Modified edit settle before re-saving
DEFAULT_SAVE_DELAY = 0.1


@dataclass
class Settings:
    author: str = DEFAULT_AUTHOR
    category: str = DEFAULT_CATEGORY
    tags: List[str] = field(default_factory=lambda: list(DEFAULT_TAGS))
    language: str = DEFAULT_LANGUAGE
    notebook_type: str = DEFAULT_NOTEBOOK_TYPE
    open_delay: float = DEFAULT_OPEN_DELAY
    save_delay: float = DEFAULT_SAVE_DELAY


def get_git_author(path: Optional[str] = None) -> Optional[str]:
    """
    Get the user name configured for git.

    Returns:
        str: The git user.name, or None if git is unavailable or unset
    """
    cwd = None
    if path:
        cwd = os.path.dirname(os.path.abspath(path))
    try:
        result = subprocess.run([
            'git', 'config', 'user.name'
        ], cwd=cwd, capture_output=True, text=True, timeout=5)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, subprocess.SubprocessError, OSError):
        pass
    return None


def determine_author(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Determine the author using multiple methods in order of preference.

    The environment wins, then git configuration, then the login name of
    the current user.

    Args:
        path: File or directory used as the working directory for git
        environ: Environment mapping (defaults to os.environ)

    Returns:
        str: Author name
    """
    if environ is None:
        environ = os.environ

    author_name = environ.get('AUTHOR_NAME')
    if author_name:
        return author_name

    git_author = get_git_author(path)
    if git_author:
        return git_author

    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return DEFAULT_AUTHOR


def _parse_delay(name: str, value: str) -> float:
    try:
        delay = float(value)
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from None
    if delay < 0:
        raise ConfigError(f"{name} must not be negative, got {value!r}")
    return delay


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> Settings:
    """
    Load settings from the environment and explicit overrides.

    Overrides whose value is None are ignored so that unset command line
    flags do not clobber the environment.

    Raises:
        ConfigError: If a value cannot be used or an override is unknown
    """
    if environ is None:
        environ = os.environ

    values = {}
    if environ.get('AUTOHEADER_AUTHOR'):
        values['author'] = environ['AUTOHEADER_AUTHOR']
    if environ.get('AUTOHEADER_CATEGORY'):
        values['category'] = environ['AUTOHEADER_CATEGORY']
    if environ.get('AUTOHEADER_TAGS'):
        values['tags'] = [t.strip() for t in environ['AUTOHEADER_TAGS'].split(',') if t.strip()]
    if environ.get('AUTOHEADER_LANGUAGE'):
        values['language'] = environ['AUTOHEADER_LANGUAGE']
    for name, key in (('open_delay', 'AUTOHEADER_OPEN_DELAY'), ('save_delay', 'AUTOHEADER_SAVE_DELAY')):
        if environ.get(key):
            values[name] = _parse_delay(key, environ[key])

    known = {f.name for f in fields(Settings)}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    if 'author' not in values:
        values['author'] = determine_author(environ=environ)

    return Settings(**values)
