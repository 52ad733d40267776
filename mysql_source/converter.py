"""Row to record conversion.

Every column value is first tagged with a :class:`ValueKind`. The only
normalisation applied is binary to text; values that MySQL drivers hand back
as rich Python objects (``Decimal``, ``datetime`` ...) are tagged as text using
the same textual form the server sends over the wire.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from .batch import Record
from .errors import ConversionError


class ValueKind(str, Enum):
    NULL = "null"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True, slots=True)
class ColumnValue:
    """A column value tagged with its kind."""

    kind: ValueKind
    value: Any

    def normalised(self) -> Any:
        if self.kind is ValueKind.BINARY:
            return bytes(self.value).decode("utf-8", errors="replace")
        return self.value


def classify(value: Any) -> ColumnValue:
    """Tag ``value`` or raise :class:`ConversionError` for unknown types."""

    if value is None:
        return ColumnValue(ValueKind.NULL, None)
    if isinstance(value, bool):
        return ColumnValue(ValueKind.BOOLEAN, value)
    if isinstance(value, int):
        return ColumnValue(ValueKind.INTEGER, value)
    if isinstance(value, float):
        return ColumnValue(ValueKind.FLOAT, value)
    if isinstance(value, str):
        return ColumnValue(ValueKind.TEXT, value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ColumnValue(ValueKind.BINARY, value)
    if isinstance(value, datetime):
        return ColumnValue(ValueKind.TEXT, value.isoformat(sep=" "))
    if isinstance(value, (date, time)):
        return ColumnValue(ValueKind.TEXT, value.isoformat())
    if isinstance(value, (Decimal, timedelta, UUID)):
        return ColumnValue(ValueKind.TEXT, str(value))
    raise ConversionError(f"unsupported column value type: {type(value).__name__}")


class RowConverter:
    """Turn result rows into records tagged with their provenance."""

    def __init__(self, source_kind: str, table: str | None) -> None:
        self.source_kind = source_kind
        self.table = table or ""

    def to_mapping(
        self, columns: Sequence[str], values: Sequence[Any]
    ) -> dict[str, Any]:
        if len(columns) != len(values):
            raise ConversionError(
                f"row has {len(values)} values for {len(columns)} columns"
            )
        return {
            column: classify(value).normalised()
            for column, value in zip(columns, values)
        }

    @staticmethod
    def to_payload(mapping: dict[str, Any]) -> bytes:
        try:
            return json.dumps(
                mapping,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise ConversionError(f"failed to encode row: {exc}") from exc

    def metadata(self) -> dict[str, str]:
        return {"source": self.source_kind, "table": self.table}

    def convert_row(self, columns: Sequence[str], values: Sequence[Any]) -> Record:
        payload = self.to_payload(self.to_mapping(columns, values))
        return Record(payload=payload, metadata=self.metadata())

    def convert(
        self, columns: Sequence[str], rows: Iterable[Sequence[Any]]
    ) -> list[Record]:
        """Convert all rows; any failure aborts the whole batch."""
        return [self.convert_row(columns, row) for row in rows]


__all__ = ["ColumnValue", "RowConverter", "ValueKind", "classify"]
