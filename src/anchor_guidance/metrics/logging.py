"""JSONL logging of guidance polls for offline replay.

This module provides:
- GuidanceLogWriter: Appends request/response pairs, one JSON object per line
- load_guidance_requests: Reads requests back from a request or log file
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from anchor_guidance.schemas import GuidanceRequest, GuidanceResponse
from anchor_guidance.utils.config import LOG_VERSION

logger = logging.getLogger(__name__)


class GuidanceLogWriter:
    """Writes guidance polls to a JSONL log file.

    Each line holds the wire form of one request and its response.
    """

    def __init__(self, log_path: Path) -> None:
        """Initialize the log writer.

        Args:
            log_path: Path to the JSONL log file.
        """
        self._log_path = Path(log_path)
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._log_path, "a", encoding="utf-8")
        self._count = 0

    @property
    def count(self) -> int:
        """Lines written by this writer."""
        return self._count

    def write(self, request: GuidanceRequest, response: GuidanceResponse) -> None:
        """Append one request/response pair."""
        record = {
            "logVersion": LOG_VERSION,
            "timestamp": datetime.now().isoformat(),
            "request": request.to_wire(),
            "response": response.to_wire(),
        }
        self._file.write(json.dumps(record, separators=(",", ":")) + "\n")
        self._file.flush()
        self._count += 1

    def close(self) -> None:
        """Close the log file."""
        self._file.close()

    def __enter__(self) -> "GuidanceLogWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def load_guidance_requests(path: Path) -> Iterator[GuidanceRequest]:
    """Yield guidance requests from a JSONL file.

    Lines may be bare requests or log records written by
    GuidanceLogWriter (the ``request`` member is used). Blank and
    malformed lines are skipped with a warning.
    """
    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                if isinstance(data, dict) and "request" in data:
                    data = data["request"]
                yield GuidanceRequest.model_validate(data)
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"[REPLAY] Skipping line {line_number} of {path}: {e}")
