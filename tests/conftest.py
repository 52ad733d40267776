import json
import logging
import pathlib
import sys

import pytest
from sqlalchemy import create_engine

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

ITEM_ROWS = [
    (1, "alpha", b"first", 1.5, True),
    (2, "beta", b"second", 2.5, False),
    (3, "gamma", b"caf\xc3\xa9", None, True),
    (4, "delta", None, 4.0, False),
    (5, "epsilon", b"\xe2\x9c\x93 done", 5.25, True),
]


@pytest.fixture
def sqlite_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """File backed SQLite database holding a five row ``items`` table."""

    db_path = tmp_path_factory.mktemp("source-db") / "source.db"
    url = f"sqlite+pysqlite:///{db_path}"
    engine = create_engine(url)
    with engine.begin() as conn:
        conn.exec_driver_sql(
            "CREATE TABLE items ("
            "id INTEGER PRIMARY KEY, name TEXT, data BLOB, price REAL, active BOOLEAN)"
        )
        conn.exec_driver_sql(
            "INSERT INTO items (id, name, data, price, active) VALUES (?, ?, ?, ?, ?)",
            ITEM_ROWS,
        )
        conn.exec_driver_sql("CREATE TABLE empty_items (id INTEGER PRIMARY KEY)")
    engine.dispose()
    return url


@pytest.fixture
def make_config(sqlite_url):
    def _make(**overrides) -> bytes:
        payload = {
            "connection_string": sqlite_url,
            "table": "items",
            "batch_size": 2,
            "poll_interval": "1ms",
        }
        payload.update(overrides)
        payload = {k: v for k, v in payload.items() if v is not None}
        return json.dumps(payload).encode("utf-8")

    return _make


@pytest.fixture
def clean_source_logger():
    logger = logging.getLogger("mysql_source")
    level = logger.level
    logger.handlers.clear()
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(level)
