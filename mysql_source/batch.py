"""Batch and record containers handed from a source to its host."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Record:
    """One converted row: provenance tags plus an encoded payload."""

    payload: bytes
    metadata: dict[str, str] = field(default_factory=dict)

    def decode(self) -> dict[str, Any]:
        """Return the payload as the row mapping it encodes."""
        return json.loads(self.payload)

    def to_dict(self) -> dict[str, Any]:
        return {"metadata": dict(self.metadata), "payload": self.decode()}


@dataclass(slots=True)
class Batch:
    """Output of one poll.

    A batch without records is the "caught up, nothing new" signal and is
    distinct from end of stream.
    """

    records: list[Record] = field(default_factory=list)
    context: dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def to_dict(self) -> dict[str, Any]:
        """Return the wire shape ``{records: [...], context: {...}}``."""
        return {
            "records": [record.to_dict() for record in self.records],
            "context": dict(self.context),
        }


__all__ = ["Batch", "Record"]
