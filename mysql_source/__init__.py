"""Polling MySQL table source exposed through the three-call source contract."""

from .__version__ import __version__
from .batch import Batch, Record
from .config import SourceConfig, parse_config
from .connector import MySQLSource, SourceState, new_mysql_source_factory
from .errors import (
    ConfigError,
    ConversionError,
    EndOfStream,
    QueryCancelledError,
    QueryError,
    SourceConnectionError,
    SourceError,
)
from .runner import PollStats, SourceRunner, poll_source
from .spi import SourceFactory, SourceSPI

__all__ = [
    "Batch",
    "ConfigError",
    "ConversionError",
    "EndOfStream",
    "MySQLSource",
    "PollStats",
    "QueryCancelledError",
    "QueryError",
    "Record",
    "SourceConfig",
    "SourceConnectionError",
    "SourceError",
    "SourceFactory",
    "SourceRunner",
    "SourceSPI",
    "SourceState",
    "__version__",
    "new_mysql_source_factory",
    "parse_config",
    "poll_source",
]
