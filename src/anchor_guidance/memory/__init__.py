"""Record store implementations."""

from anchor_guidance.memory.record_store import InMemoryRecordStore, PersistentRecordStore

__all__ = [
    "InMemoryRecordStore",
    "PersistentRecordStore",
]
