"""Error taxonomy raised by source connectors.

``ConfigError`` and ``SourceConnectionError`` are fatal to ``init``.
``QueryError`` and ``ConversionError`` only fail the current poll; the source
stays ready and the host decides whether to call ``read_batch`` again.
``EndOfStream`` is not a failure: it is raised when the host cancels while
the source is waiting for its next tick.
"""

from __future__ import annotations


class SourceError(Exception):
    """Base class for data-layer failures of a source."""


class ConfigError(SourceError, ValueError):
    """Configuration is malformed or incomplete."""


class SourceConnectionError(SourceError, ConnectionError):
    """The database could not be reached or verified."""


class QueryError(SourceError):
    """A poll's query execution or row scan failed."""


class QueryCancelledError(QueryError):
    """The running query was abandoned because the host cancelled."""


class ConversionError(SourceError):
    """A row could not be converted into a record payload."""


class EndOfStream(Exception):
    """Raised by ``read_batch`` when cancellation arrives before the next tick."""


__all__ = [
    "ConfigError",
    "ConversionError",
    "EndOfStream",
    "QueryCancelledError",
    "QueryError",
    "SourceConnectionError",
    "SourceError",
]
