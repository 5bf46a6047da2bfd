"""Exception hierarchy. Components raise, the CLI decides how to exit."""


class LogstasherError(Exception):
    """Base class for errors that stop the tailer."""


class ConfigError(LogstasherError):
    """Raised for invalid configuration values or flag combinations."""


class BackendError(LogstasherError):
    """Raised when the search backend is unreachable or rejects a request."""


class DocumentError(LogstasherError):
    """Raised when a hit does not match the configured query definition."""


class IndexSelectionError(LogstasherError):
    """Raised when no index can be selected for the query."""


class DateParseError(LogstasherError):
    """Raised when a YYYY-MM-DD date cannot be extracted from a string."""


class TunnelError(LogstasherError):
    """Raised when the SSH tunnel fails to come up."""
