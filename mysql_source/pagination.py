"""Scan position tracking and ``LIMIT/OFFSET`` query windows."""

from __future__ import annotations

from dataclasses import dataclass


def resolve_base_query(table: str | None, query: str | None) -> str:
    """Return the custom query verbatim, or a full scan of ``table``."""

    if query:
        return query
    if not table:
        raise ValueError("either table or query is required")
    return f"SELECT * FROM {table}"


@dataclass(frozen=True, slots=True)
class PageWindow:
    """Rows ``[offset, offset + limit)`` of the result set."""

    offset: int
    limit: int


class Paginator:
    """Tracks how far the current scan pass has progressed.

    Without an ``ORDER BY`` in the base query the row order is whatever the
    store returns, so windows are only stable if the store's natural order is.
    """

    def __init__(self, base_query: str, batch_size: int) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.base_query = base_query
        self.batch_size = batch_size
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    def window(self) -> PageWindow:
        return PageWindow(offset=self._offset, limit=self.batch_size)

    def statement(self) -> str:
        """SQL for the current window.

        Limit and offset are inlined as integers. The connector executes it
        with no bind parameters, so ``%`` in the base query reaches MySQL as is.
        """

        window = self.window()
        return f"{self.base_query} LIMIT {int(window.limit)} OFFSET {int(window.offset)}"

    def advance(self, row_count: int) -> None:
        """Move past ``row_count`` rows; zero rows restarts the scan."""

        if row_count < 0:
            raise ValueError("row_count cannot be negative")
        if row_count == 0:
            self._offset = 0
        else:
            self._offset += row_count


__all__ = ["PageWindow", "Paginator", "resolve_base_query"]
