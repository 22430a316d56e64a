class AutoHeaderError(Exception):
    """Base error for the notebook header plugin."""


class ConfigError(AutoHeaderError):
    pass


class NotebookError(AutoHeaderError):
    pass
