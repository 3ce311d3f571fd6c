"""
Clock and identifier collaborators.

Both are injectable so tests can pin "now" and predict ids.
"""

from __future__ import annotations

import time
import uuid


class SystemClock:
    """Wall clock in ms epoch."""

    def now(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """Manually advanced clock for tests and replays."""

    def __init__(self, now: int):
        self._now = int(now)

    def now(self) -> int:
        return self._now

    def set(self, now: int) -> None:
        self._now = int(now)

    def advance(self, ms: int) -> int:
        self._now += int(ms)
        return self._now


def new_id(prefix: str = "id") -> str:
    """Collision-resistant opaque id, e.g. "ev-3f2c...". """
    return f"{prefix}-{uuid.uuid4().hex}"
