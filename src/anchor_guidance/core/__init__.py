"""Core engine, interfaces and errors."""

from anchor_guidance.core.engine import GuidanceEngine
from anchor_guidance.core.errors import GuidanceError, RecordNotFoundError
from anchor_guidance.core.interfaces import RecordStore

__all__ = [
    "GuidanceEngine",
    "GuidanceError",
    "RecordNotFoundError",
    "RecordStore",
]
