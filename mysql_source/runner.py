"""Threaded host loop that drives sources with cancel support."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from threading import Event
from uuid import UUID

from .batch import Batch
from .errors import ConversionError, EndOfStream, QueryError
from .spi import SourceFactory, SourceSPI

logger = logging.getLogger(__name__)

BatchSink = Callable[[Batch], None]


@dataclass
class PollStats:
    """Counters describing one polling job."""

    batches: int = 0
    records: int = 0
    empty_polls: int = 0
    errors: int = 0
    stopped_by: str = ""


def poll_source(
    source: SourceSPI,
    raw_config: bytes | str,
    sink: BatchSink,
    cancel_event: Event,
    *,
    max_batches: int | None = None,
    stop_when_caught_up: bool = False,
) -> PollStats:
    """Run ``init`` -> ``read_batch`` * -> ``close`` against ``source``.

    Non-empty batches are handed to ``sink``. Query and conversion failures
    are logged and the loop waits for the next tick; configuration and
    connection failures propagate. The source is always closed.
    """

    stats = PollStats()
    try:
        source.init(raw_config)
        while True:
            try:
                batch = source.read_batch(cancel_event)
            except EndOfStream:
                stats.stopped_by = "cancelled"
                break
            except (QueryError, ConversionError) as exc:
                stats.errors += 1
                logger.warning("Poll failed: %s", exc, exc_info=True)
                continue

            if batch.is_empty:
                stats.empty_polls += 1
                if stop_when_caught_up:
                    stats.stopped_by = "caught_up"
                    break
                continue

            sink(batch)
            stats.batches += 1
            stats.records += len(batch)
            if max_batches is not None and stats.batches >= max_batches:
                stats.stopped_by = "max_batches"
                break
    finally:
        source.close()

    logger.info(
        "Polling finished stopped_by=%s batches=%d records=%d errors=%d",
        stats.stopped_by,
        stats.batches,
        stats.records,
        stats.errors,
    )
    return stats


class SourceRunner:
    """Simple wrapper around :class:`ThreadPoolExecutor` to manage polling jobs.

    Each submitted job gets its own source instance from the factory and an
    associated :class:`threading.Event`; setting the event makes the source
    raise ``EndOfStream`` at its next wait, which ends the job cleanly.
    """

    def __init__(self, max_workers: int = 4):
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="source-runner"
        )
        self._events: dict[UUID, Event] = {}
        self._futures: dict[UUID, Future] = {}

    def submit(
        self,
        job_id: UUID,
        factory: SourceFactory,
        raw_config: bytes | str,
        sink: BatchSink,
        *,
        max_batches: int | None = None,
        stop_when_caught_up: bool = False,
    ) -> Future:
        """Start polling a new source instance in the pool."""
        cancel_event = Event()
        self._events[job_id] = cancel_event
        future = self.executor.submit(
            poll_source,
            factory(),
            raw_config,
            sink,
            cancel_event,
            max_batches=max_batches,
            stop_when_caught_up=stop_when_caught_up,
        )
        self._futures[job_id] = future
        return future

    # Cancel job
    def cancel(self, job_id: UUID) -> None:
        event = self._events.get(job_id)
        if event:
            event.set()
        fut = self._futures.get(job_id)
        if fut:
            fut.cancel()

    def clear(self, job_id: UUID) -> None:
        """Remove references for a finished or cancelled job."""
        self._events.pop(job_id, None)
        self._futures.pop(job_id, None)

    def get(self, job_id: UUID) -> Future | None:
        return self._futures.get(job_id)

    def list(self) -> Iterable[UUID]:
        return list(self._futures)

    def shutdown(self, *, wait: bool = True) -> None:
        """Cancel every job and stop the pool."""
        for job_id in list(self._events):
            self.cancel(job_id)
        self.executor.shutdown(wait=wait)


__all__ = ["BatchSink", "PollStats", "SourceRunner", "poll_source"]
