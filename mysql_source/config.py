"""Pydantic configuration model for the MySQL source.

The host passes the configuration as raw JSON bytes. Validation happens once,
in ``init``, and the resulting :class:`SourceConfig` is immutable.

Two connection string styles are understood: SQLAlchemy URLs
(``mysql+pymysql://user:pw@host:3306/db``) and the DSN format of the Go MySQL
driver (``user:pw@tcp(host:3306)/db?charset=utf8mb4``), which is translated
to a ``mysql+pymysql`` URL.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from .errors import ConfigError

DEFAULT_BATCH_SIZE = 100
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_MYSQL_DRIVER = "mysql+pymysql"
DEFAULT_MYSQL_ADDRESS = "127.0.0.1:3306"

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$")
_SELECT_RE = re.compile(r"^\s*(select|with)\b", re.IGNORECASE)
_GO_DSN_RE = re.compile(
    r"^(?:(?P<net>[A-Za-z0-9]+)(?:\((?P<addr>[^)]*)\))?)?"
    r"/(?P<database>[^?]*)(?:\?(?P<params>.*))?$"
)

# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float | None:
    """Parse a Go style duration (``"1m30s"``, ``"250ms"``) into seconds.

    Returns ``None`` when ``text`` is not a valid duration.
    """

    value = text.strip()
    if not value:
        return None
    sign = 1.0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]
    if value == "0":
        return 0.0
    if not value:
        return None

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART_RE.match(value, pos)
        if match is None:
            return None
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return sign * total


# ---------------------------------------------------------------------------
# Connection strings
# ---------------------------------------------------------------------------


def _go_dsn_to_url(dsn: str) -> URL:
    credentials, _, rest = dsn.rpartition("@")
    match = _GO_DSN_RE.match(rest)
    if match is None:
        raise ValueError("connection_string is neither a URL nor a MySQL DSN")

    username, has_password, password = credentials.partition(":")
    net = (match.group("net") or "tcp").lower()
    address = match.group("addr") or ""
    query: dict[str, str] = {}

    host: str | None = None
    port: int | None = None
    if net == "unix":
        if not address:
            raise ValueError("unix DSN requires a socket path")
        query["unix_socket"] = address
    elif net in {"tcp", "tcp6"}:
        host_part, _, port_part = (address or DEFAULT_MYSQL_ADDRESS).rpartition(":")
        if not host_part:
            host_part, port_part = port_part, ""
        host = host_part.strip("[]") or None
        if port_part:
            if not port_part.isdigit():
                raise ValueError(f"invalid port in DSN address: {address!r}")
            port = int(port_part)
    else:
        raise ValueError(f"unsupported DSN protocol: {net!r}")

    for pair in (match.group("params") or "").split("&"):
        key, _, value = pair.partition("=")
        if key == "charset" and value:
            query["charset"] = value.split(",")[0]

    return URL.create(
        DEFAULT_MYSQL_DRIVER,
        username=username or None,
        password=password if has_password else None,
        host=host,
        port=port,
        database=match.group("database") or None,
        query=query,
    )


def to_engine_url(connection_string: str) -> URL:
    """Return the SQLAlchemy URL for ``connection_string``.

    Raises ``ValueError`` when the string cannot be interpreted.
    """

    if "://" in connection_string:
        try:
            return make_url(connection_string)
        except ArgumentError as exc:
            raise ValueError(f"invalid connection URL: {exc}") from exc
    return _go_dsn_to_url(connection_string)


# ---------------------------------------------------------------------------
# Configuration model
# ---------------------------------------------------------------------------


class SourceConfig(BaseModel):
    """Validated configuration of a table source."""

    connection_string: str = Field(
        validation_alias=AliasChoices("connection_string", "dsn")
    )
    table: str | None = None
    query: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("connection_string")
    @classmethod
    def _check_connection_string(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("connection_string is required")
        to_engine_url(value)
        return value

    @field_validator("table", mode="before")
    @classmethod
    def _check_table(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, str):
            return value
        value = value.strip()
        if not value:
            return None
        if not _TABLE_RE.match(value):
            raise ValueError(f"table is not a valid identifier: {value!r}")
        return value

    @field_validator("query", mode="before")
    @classmethod
    def _check_query(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, str):
            return value
        value = value.strip().rstrip(";").rstrip()
        if not value:
            return None
        if not _SELECT_RE.match(value):
            raise ValueError("query must be a SELECT statement")
        return value

    @field_validator("batch_size", mode="before")
    @classmethod
    def _default_batch_size(cls, value: Any) -> Any:
        return DEFAULT_BATCH_SIZE if value is None else value

    @field_validator("batch_size")
    @classmethod
    def _positive_batch_size(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_BATCH_SIZE

    @field_validator("poll_interval", mode="before")
    @classmethod
    def _parse_poll_interval(cls, value: Any) -> float:
        seconds: float | None = None
        if isinstance(value, str):
            seconds = parse_duration(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            seconds = float(value)
        if seconds is None or seconds <= 0:
            return DEFAULT_POLL_INTERVAL
        return seconds

    @field_validator("connect_timeout", mode="before")
    @classmethod
    def _parse_connect_timeout(cls, value: Any) -> Any:
        if isinstance(value, str):
            parsed = parse_duration(value)
            return DEFAULT_CONNECT_TIMEOUT if parsed is None else parsed
        if value is None:
            return DEFAULT_CONNECT_TIMEOUT
        return value

    @model_validator(mode="after")
    def _require_table_or_query(self) -> "SourceConfig":
        if not self.table and not self.query:
            raise ValueError("either table or query is required")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        return self

    def engine_url(self) -> URL:
        return to_engine_url(self.connection_string)


def parse_config(raw: bytes | bytearray | str | Mapping[str, Any]) -> SourceConfig:
    """Validate the host supplied configuration or raise :class:`ConfigError`."""

    try:
        if isinstance(raw, (bytes, bytearray, str)):
            return SourceConfig.model_validate_json(raw)
        return SourceConfig.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigError(f"invalid config: {exc}") from exc


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_POLL_INTERVAL",
    "SourceConfig",
    "parse_config",
    "parse_duration",
    "to_engine_url",
]
