"""
Error taxonomy for monitoring queries and report assembly.
"""


class DataSourceError(Exception):
    """Anything the monitored database (or the path to it) failed with."""


class DataSourceUnavailable(DataSourceError):
    """Pool exhausted, acquisition timed out or the server is unreachable.

    Safe to retry.
    """


class QueryFailed(DataSourceError):
    """The server rejected a monitoring query."""


class OptionalFeatureMissing(QueryFailed):
    """An optional extension or view is not available on the server.

    Typically pg_stat_statements that is not installed or not preloaded.
    """


class ReportFailed(Exception):
    """A report could not be assembled; rendered as HTTP 500."""

    def __init__(self, message: str, cause: BaseException):
        super().__init__(message)
        self.message = message
        self.details = str(cause) or type(cause).__name__
