"""Lifecycle contract every source connector implements.

A host drives a source strictly as ``init`` -> ``read_batch`` * -> ``close``
and never has more than one call in flight on the same instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from threading import Event

from .batch import Batch


class SourceSPI(ABC):
    """Capability set of a polling source."""

    @abstractmethod
    def init(self, raw_config: bytes | str) -> None:
        """Validate ``raw_config`` and acquire resources."""

    @abstractmethod
    def read_batch(self, cancel_event: Event) -> Batch:
        """Produce the next batch.

        Raises :class:`~mysql_source.errors.EndOfStream` when ``cancel_event``
        fires while waiting for the next poll.
        """

    @abstractmethod
    def close(self) -> None:
        """Release every resource; safe to call in any state."""

    def __enter__(self) -> "SourceSPI":
        return self

    def __exit__(self, *exc: object) -> bool:
        self.close()
        return False


SourceFactory = Callable[[], SourceSPI]


__all__ = ["SourceFactory", "SourceSPI"]
