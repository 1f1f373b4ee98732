"""Ledger time sources.

Ledger time is an integer count of seconds since the Unix epoch and never
moves backwards. The engine only ever reads it.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock ledger time, clamped so it never decreases."""

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        self._last = max(self._last, int(time.time()))
        return self._last


class ManualClock:
    """A clock that only moves when told to (tests, simulations)."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("Ledger time cannot be negative")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Ledger time cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(
                f"Ledger time cannot move backwards: {timestamp} < {self._now}"
            )
        self._now = timestamp
