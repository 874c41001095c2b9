"""
Time source abstractions.

All timestamps in the toolkit are integer milliseconds since the Unix epoch.
Expiration logic never calls the system clock directly; it asks a 'Clock',
so tests can swap in a 'FakeClock' and move time forward deterministically.
"""

import time
from abc import ABC, abstractmethod

MILLISECONDS_PER_MINUTE = 60 * 1000


def get_current_timestamp() -> int:
    return int(time.time() * 1000)


def minutes_to_milliseconds(minutes: int) -> int:
    return minutes * MILLISECONDS_PER_MINUTE


class Clock(ABC):
    """Supplies the current time in milliseconds."""

    @abstractmethod
    def now(self) -> int:
        pass


class SystemClock(Clock):
    def now(self) -> int:
        return get_current_timestamp()


class FakeClock(Clock):
    """
    Manually driven clock for tests.

    Time only moves when 'advance' or 'set' is called, so every expiration
    boundary can be hit exactly.
    """

    def __init__(self, start: int | None = None) -> None:
        self._now = get_current_timestamp() if start is None else start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp

    def advance(self, milliseconds: int = 0, minutes: int = 0) -> int:
        self._now += milliseconds + minutes_to_milliseconds(minutes)
        return self._now
