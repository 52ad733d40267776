"""MySQL table source.

Polls one table (or one custom ``SELECT``) on a fixed interval and returns the
next ``LIMIT/OFFSET`` window as a batch of JSON records. The scan offset is
held in memory only; a restarted process scans from the beginning again.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from enum import Enum
from threading import Event, Lock
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from .batch import Batch
from .config import SourceConfig, parse_config
from .converter import RowConverter
from .errors import (
    ConfigError,
    EndOfStream,
    QueryCancelledError,
    QueryError,
    SourceConnectionError,
)
from .pagination import Paginator, resolve_base_query
from .scheduler import Ticker, WaitOutcome
from .spi import SourceFactory, SourceSPI

SOURCE_KIND = "mysql"

# How often a caller blocked on a running query re-checks its cancel event.
_CANCEL_POLL_SECONDS = 0.05


class SourceState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


def _connect_args(url: URL, connect_timeout: float) -> dict[str, Any]:
    if url.get_backend_name() == "mysql":
        return {"connect_timeout": max(1, math.ceil(connect_timeout))}
    return {}


def _server_thread_id(conn: Connection) -> int | None:
    """Return the MySQL connection id used by ``KILL QUERY``."""

    if conn.dialect.name != "mysql":
        return None
    thread_id = getattr(conn.connection.dbapi_connection, "thread_id", None)
    return thread_id() if callable(thread_id) else thread_id


class MySQLSource(SourceSPI):
    """Table source driven through ``init`` / ``read_batch`` / ``close``.

    One instance owns its engine, ticker and scan offset. Calls must be
    serialised by the host; a second ``read_batch`` issued while one is
    running raises ``RuntimeError``.
    """

    source_kind = SOURCE_KIND

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        engine_factory: Callable[..., Engine] = create_engine,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._engine_factory = engine_factory
        self._state = SourceState.UNINITIALIZED
        self._config: SourceConfig | None = None
        self._engine: Engine | None = None
        self._ticker: Ticker | None = None
        self._paginator: Paginator | None = None
        self._converter: RowConverter | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._busy = Lock()
        self._running_thread_id: int | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SourceState:
        return self._state

    @property
    def config(self) -> SourceConfig | None:
        return self._config

    @property
    def offset(self) -> int:
        return self._paginator.offset if self._paginator is not None else 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self, raw_config: bytes | str) -> None:
        """Validate the configuration, connect, and start the poll ticker."""

        if self._state is not SourceState.UNINITIALIZED:
            raise RuntimeError(f"cannot init a source that is {self._state.value}")

        config = parse_config(raw_config)
        url = config.engine_url()

        try:
            engine = self._engine_factory(
                url,
                pool_pre_ping=True,
                connect_args=_connect_args(url, config.connect_timeout),
            )
        except ArgumentError as exc:
            raise ConfigError(f"invalid connection string: {exc}") from exc
        except ImportError as exc:
            raise SourceConnectionError(
                f"database driver is not installed: {exc}"
            ) from exc

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            engine.dispose()
            raise SourceConnectionError(f"failed to ping database: {exc}") from exc

        self._config = config
        self._engine = engine
        self._paginator = Paginator(
            resolve_base_query(config.table, config.query), config.batch_size
        )
        self._converter = RowConverter(self.source_kind, config.table)
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="mysql-source-query"
        )
        self._ticker = Ticker(config.poll_interval)
        self._state = SourceState.READY

        self.logger.info(
            "MySQL source initialised table=%s url=%s batch_size=%d poll_interval=%.3fs",
            config.table,
            url.render_as_string(hide_password=True),
            config.batch_size,
            config.poll_interval,
        )

    def read_batch(self, cancel_event: Event) -> Batch:
        """Wait for the next tick, then read the next window of rows."""

        if self._state is not SourceState.READY:
            raise RuntimeError(f"cannot read from a source that is {self._state.value}")
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("read_batch is already in progress on this source")
        try:
            return self._read_batch(cancel_event)
        finally:
            self._busy.release()

    def close(self) -> None:
        """Stop the ticker and release the engine; safe in any state."""

        if self._ticker is not None:
            self._ticker.stop()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

        if self._state is not SourceState.CLOSED:
            self._state = SourceState.CLOSED
            self.logger.info("MySQL source closed")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_batch(self, cancel_event: Event) -> Batch:
        ticker, paginator, converter = self._ticker, self._paginator, self._converter
        if ticker is None or paginator is None or converter is None:
            raise RuntimeError("source is not initialised")

        if ticker.wait(cancel_event) is WaitOutcome.CANCELLED:
            raise EndOfStream("source cancelled while waiting for the next poll")

        columns, rows = self._execute(paginator.statement(), cancel_event)
        records = converter.convert(columns, rows)

        if not records:
            paginator.advance(0)
            self.logger.debug("MySQL scan caught up, offset reset")
            return Batch()

        paginator.advance(len(records))
        self.logger.debug(
            "MySQL batch read records=%d offset=%d", len(records), paginator.offset
        )
        return Batch(records=records, context={"table": converter.table})

    def _execute(
        self, statement: str, cancel_event: Event
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        executor, engine = self._executor, self._engine
        if executor is None or engine is None:
            raise RuntimeError("source is not initialised")

        future = executor.submit(self._fetch, engine, statement)
        while not wait_futures([future], timeout=_CANCEL_POLL_SECONDS).done:
            if cancel_event.is_set():
                future.cancel()
                self._kill_running_query()
                raise QueryCancelledError("query cancelled before it completed")

        try:
            return future.result()
        except SQLAlchemyError as exc:
            raise QueryError(f"query failed: {exc}") from exc

    def _fetch(
        self, engine: Engine, statement: str
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        with engine.connect() as conn:
            self._running_thread_id = _server_thread_id(conn)
            try:
                result = conn.execution_options(no_parameters=True).exec_driver_sql(
                    statement
                )
                columns = list(result.keys())
                rows = [tuple(row) for row in result]
            finally:
                self._running_thread_id = None
        return columns, rows

    def _kill_running_query(self) -> None:
        thread_id = self._running_thread_id
        if thread_id is None or self._engine is None:
            return
        try:
            with self._engine.connect() as conn:
                conn.execution_options(no_parameters=True).exec_driver_sql(
                    f"KILL QUERY {int(thread_id)}"
                )
        except SQLAlchemyError:
            self.logger.warning(
                "Failed to kill query on MySQL thread %s", thread_id, exc_info=True
            )


def new_mysql_source_factory(
    *, logger: logging.Logger | None = None
) -> SourceFactory:
    """Return a factory producing fresh, uninitialised sources for a host."""

    def _factory() -> SourceSPI:
        return MySQLSource(logger=logger)

    return _factory


__all__ = ["MySQLSource", "SOURCE_KIND", "SourceState", "new_mysql_source_factory"]
