"""Local host for the MySQL source.

Loads the source configuration, drives the source through
``init`` -> ``read_batch`` * -> ``close`` on a background worker and prints
every non-empty batch to stdout as one JSON line. Logs go to stderr and to the
rotating log file (see :mod:`mysql_source.app_logging`). Ctrl-C cancels the
poll loop, which ends through the source's end-of-stream signal.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from concurrent.futures import CancelledError
from pathlib import Path
from uuid import uuid4

from dotenv import load_dotenv

from mysql_source.app_logging import init_logging
from mysql_source.batch import Batch
from mysql_source.connector import new_mysql_source_factory
from mysql_source.errors import ConfigError, SourceConnectionError
from mysql_source.runner import SourceRunner

logger = logging.getLogger("mysql_source.poll")


def _echo(message: str) -> None:
    sys.stdout.write(f"{message}\n")
    sys.stdout.flush()


def _print_batch(batch: Batch) -> None:
    _echo(json.dumps(batch.to_dict(), ensure_ascii=False))


def _load_raw_config(path: str | None) -> str:
    """Return the raw JSON configuration from ``path`` or ``SOURCE_CONFIG``."""

    if path:
        return Path(path).read_text(encoding="utf-8")
    raw = os.getenv("SOURCE_CONFIG")
    if raw:
        return raw
    raise ConfigError("no configuration given: use --config or set SOURCE_CONFIG")


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and poll until cancelled or a stop condition hits."""

    load_dotenv()
    parser = argparse.ArgumentParser(description="Poll a MySQL table in batches")
    parser.add_argument(
        "--config",
        default=os.getenv("SOURCE_CONFIG_FILE"),
        help="Path to the JSON source configuration",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=os.getenv("SOURCE_DEBUG") == "1",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--max-batches",
        type=int,
        default=None,
        help="Stop after this many non-empty batches",
    )
    parser.add_argument(
        "--until-caught-up",
        action="store_true",
        help="Stop at the first empty batch (end of the table)",
    )
    args = parser.parse_args(argv)

    init_logging(debug=args.debug)

    try:
        raw_config = _load_raw_config(args.config)
    except (ConfigError, OSError) as exc:
        logger.error("Cannot load configuration: %s", exc)
        return 2

    runner = SourceRunner(max_workers=1)
    job_id = uuid4()
    future = runner.submit(
        job_id,
        new_mysql_source_factory(),
        raw_config,
        _print_batch,
        max_batches=args.max_batches,
        stop_when_caught_up=args.until_caught_up,
    )
    logger.info("Starting MySQL source job %s", job_id)

    try:
        try:
            future.result()
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping MySQL source")
            runner.cancel(job_id)
            future.result()
    except CancelledError:
        return 0
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    except SourceConnectionError as exc:
        logger.error("Cannot connect: %s", exc)
        return 1
    finally:
        runner.clear(job_id)
        runner.shutdown(wait=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
