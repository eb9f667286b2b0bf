"""Receipt timestamps for telemetry records."""

from __future__ import annotations

import time
from typing import Callable, Optional


class ServerClock:
    """Issues epoch-millisecond timestamps that never repeat or go backwards.

    Two reports landing in the same millisecond, or a wall clock stepped back
    by NTP, would otherwise produce a ``serverTimestamp`` equal to or lower
    than the previous one. The clock hands out ``previous + 1`` instead.

    Usage:
        clock = ServerClock()
        record["serverTimestamp"] = clock.now_ms()
    """

    def __init__(self, time_source: Optional[Callable[[], float]] = None) -> None:
        self._time_source = time_source or time.time
        self._last_ms: Optional[int] = None

    def now_ms(self) -> int:
        current = int(self._time_source() * 1000)
        if self._last_ms is not None and current <= self._last_ms:
            current = self._last_ms + 1
        self._last_ms = current
        return current

    @property
    def last_ms(self) -> Optional[int]:
        return self._last_ms
