from __future__ import annotations

from typing import Deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from collections import deque
import time


def unix_to_iso(ts: float) -> str:
    """Unix seconds -> ISO-8601 UTC string with millisecond precision and 'Z'."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso8601(ts: str) -> datetime:
    """Parse a strict ISO-8601 timestamp with optional 'Z'."""
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    return datetime.fromisoformat(ts)


@dataclass(slots=True)
class RateTimer:
    """
    Simple rate tracker for loop diagnostics.

    Usage:
        rt = RateTimer(window=50)
        for pkt in packets:
            # work...
            hz = rt.tick()
    """
    window: int = 50
    _times: Deque[float] = field(default_factory=deque, repr=False)

    def __post_init__(self) -> None:
        self._times = deque(maxlen=self.window)

    def tick(self) -> float:
        t = time.perf_counter()
        self._times.append(t)
        if len(self._times) < 2:
            return 0.0
        dt = (self._times[-1] - self._times[0]) / (len(self._times) - 1)
        return 0.0 if dt <= 0 else 1.0 / dt
