"""
Custom exceptions for relevance search.

Every error here is a construction-time validation failure: nothing is
retried and nothing is deferred to query execution. Errors raised by the
database while running a built query are not wrapped and reach the caller
unchanged.
"""


class SearchError(Exception):
    """Base class for all search construction errors."""
    pass


class ConfigurationError(SearchError):
    """
    Exception raised when a search configuration is malformed.

    Raised while normalizing or binding a configuration, for example when:
    - The searchable column mapping is empty
    - A weight is non-numeric or not strictly positive
    - A column references a table that is neither the primary table nor joined
    - A configured table or column does not exist in the bound metadata

    Callers are expected to build configurations once at startup so that
    this error surfaces before serving any request.
    """
    pass


class InvalidArgument(SearchError, ValueError):
    """
    Exception raised for invalid per-request search arguments.

    Raised by the search entry point before any query object is touched:
    - The threshold is not a finite real number
    - Full-text-only mode was requested with an empty search text
    """
    pass
