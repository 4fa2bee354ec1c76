"""Exceptions raised at the record-store boundary."""

from __future__ import annotations


class GuidanceError(Exception):
    """Base class for guidance errors."""


class RecordNotFoundError(GuidanceError, KeyError):
    """A referenced anchor, object or fingerprint does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id

    def __str__(self) -> str:
        return f"{self.kind} not found: {self.record_id}"
