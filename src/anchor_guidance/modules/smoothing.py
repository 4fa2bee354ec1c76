"""Per-session temporal smoothing of signal similarity.

Each (object id, session id) key owns a SmoothingState:
- A sliding window of the most recent raw similarities (oldest evicted
  first), averaged with exponentially decaying weights so the newest
  sample weighs most.
- A room hysteresis counter: the confirmed room only switches after
  ROOM_CONFIRMATION_COUNT consecutive identical readings, so a single noisy
  reading cannot flip the displayed room.

The SessionSmoothingStore is the only shared mutable state of the engine.
It is constructed once per process, passed to the engine, guarded by a
lock, and evicts keys that sit idle or exceed the size bound.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Callable

from anchor_guidance.utils.config import (
    DEFAULT_SESSION_ID,
    MAX_TRACKED_SESSIONS,
    ROOM_CONFIRMATION_COUNT,
    SESSION_IDLE_TTL_SECONDS,
    SMOOTHING_DECAY,
    SMOOTHING_WINDOW,
)

logger = logging.getLogger(__name__)

SessionKey = tuple[str, str]


def make_key(object_id: str, session_id: str | None) -> SessionKey:
    """Build the smoothing key; an absent session shares the default slot."""
    return (object_id, session_id or DEFAULT_SESSION_ID)


def decayed_average(values: list[float], decay: float = SMOOTHING_DECAY) -> float:
    """Exponentially weighted mean, newest value weighted highest.

    weight(i) = decay ** (n - 1 - i) for position i of n values.
    """
    if not values:
        return 0.0
    n = len(values)
    weights = [decay ** (n - 1 - i) for i in range(n)]
    return sum(v * w for v, w in zip(values, weights)) / sum(weights)


@dataclass
class SmoothingResult:
    """Output of one smoothing update."""

    smoothed_similarity: float
    confirmed_room: str | None
    window_size: int = 0


@dataclass
class SmoothingState:
    """Ephemeral smoothing state for one (object, session) key."""

    history: deque[float] = field(default_factory=lambda: deque(maxlen=SMOOTHING_WINDOW))
    raw_room: str | None = None
    confirmed_room: str | None = None
    consecutive_room_matches: int = 0
    last_touched: float = 0.0

    def push(
        self,
        similarity: float,
        room: str | None,
        decay: float,
        confirmation_count: int,
    ) -> SmoothingResult:
        """Add one sample and return the smoothed view."""
        self.history.append(min(1.0, max(0.0, similarity)))
        smoothed = min(1.0, max(0.0, decayed_average(list(self.history), decay)))

        if self.consecutive_room_matches > 0 and room == self.raw_room:
            self.consecutive_room_matches += 1
        else:
            self.raw_room = room
            self.consecutive_room_matches = 1

        if self.consecutive_room_matches >= confirmation_count:
            self.confirmed_room = room

        return SmoothingResult(
            smoothed_similarity=smoothed,
            confirmed_room=self.confirmed_room,
            window_size=len(self.history),
        )


class SessionSmoothingStore:
    """Lock-guarded map of smoothing states with idle and size eviction.

    Keys untouched for longer than ``idle_ttl_seconds`` are swept on every
    update and by ``evict_idle``. When more than ``max_sessions`` keys are
    live, the least recently used key is dropped.
    """

    def __init__(
        self,
        window: int = SMOOTHING_WINDOW,
        decay: float = SMOOTHING_DECAY,
        room_confirmation_count: int = ROOM_CONFIRMATION_COUNT,
        idle_ttl_seconds: float | None = SESSION_IDLE_TTL_SECONDS,
        max_sessions: int = MAX_TRACKED_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            window: Sliding window length.
            decay: Decay factor of the weighted average.
            room_confirmation_count: Identical readings needed to switch room.
            idle_ttl_seconds: Idle time before a key is evicted; None disables.
            max_sessions: Upper bound on live keys.
            clock: Monotonic time source (injectable for tests).
        """
        if window < 1:
            raise ValueError("window must be at least 1")
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")

        self._window = window
        self._decay = decay
        self._room_confirmation_count = room_confirmation_count
        self._idle_ttl = idle_ttl_seconds
        self._max_sessions = max_sessions
        self._clock = clock

        self._lock = threading.Lock()
        self._states: OrderedDict[SessionKey, SmoothingState] = OrderedDict()

        # Statistics
        self._evicted_idle = 0
        self._evicted_lru = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def __contains__(self, key: SessionKey) -> bool:
        with self._lock:
            return key in self._states

    def update(
        self,
        object_id: str,
        session_id: str | None,
        similarity: float,
        room_label: str | None,
    ) -> SmoothingResult:
        """Record one raw similarity for a key and return the smoothed value.

        The state is created lazily on the first update for a key.
        """
        key = make_key(object_id, session_id)
        now = self._clock()

        with self._lock:
            self._sweep_idle(now)

            state = self._states.get(key)
            if state is None:
                state = SmoothingState(history=deque(maxlen=self._window))
                self._states[key] = state
                logger.debug(f"[SMOOTHING] New state for {key}")
            else:
                self._states.move_to_end(key)

            state.last_touched = now
            result = state.push(
                similarity,
                room_label,
                self._decay,
                self._room_confirmation_count,
            )

            while len(self._states) > self._max_sessions:
                evicted, _ = self._states.popitem(last=False)
                self._evicted_lru += 1
                logger.info(f"[SMOOTHING] Evicted least recently used {evicted}")

        return result

    def get(self, object_id: str, session_id: str | None) -> SmoothingState | None:
        """Current state for a key, if any."""
        with self._lock:
            return self._states.get(make_key(object_id, session_id))

    def reset(self, object_id: str | None = None, session_id: str | None = None) -> int:
        """Forget smoothing state.

        Args:
            object_id: Object whose state to drop; None drops everything.
            session_id: Session to drop; None drops every session of the object.

        Returns:
            Number of keys removed.
        """
        with self._lock:
            if object_id is None:
                removed = len(self._states)
                self._states.clear()
            elif session_id is None:
                keys = [k for k in self._states if k[0] == object_id]
                for k in keys:
                    del self._states[k]
                removed = len(keys)
            else:
                state = self._states.pop(make_key(object_id, session_id), None)
                removed = 0 if state is None else 1

        logger.info(
            f"[SMOOTHING] Reset object={object_id} session={session_id} removed={removed}"
        )
        return removed

    def evict_idle(self) -> int:
        """Drop keys idle longer than the TTL. Returns the number removed."""
        with self._lock:
            return self._sweep_idle(self._clock())

    def _sweep_idle(self, now: float) -> int:
        # Caller holds the lock. Keys are in LRU order, oldest first.
        if self._idle_ttl is None:
            return 0
        removed = 0
        while self._states:
            key, state = next(iter(self._states.items()))
            if now - state.last_touched <= self._idle_ttl:
                break
            del self._states[key]
            removed += 1
        if removed:
            self._evicted_idle += removed
            logger.debug(f"[SMOOTHING] Swept {removed} idle sessions")
        return removed

    def get_statistics(self) -> dict[str, int]:
        """Live key count and eviction totals."""
        with self._lock:
            return {
                "live_sessions": len(self._states),
                "evicted_idle": self._evicted_idle,
                "evicted_lru": self._evicted_lru,
            }
