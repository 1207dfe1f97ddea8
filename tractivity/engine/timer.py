import time
from typing import Callable, Protocol


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class TimerLike(Protocol):
    def start(self) -> None: ...

    def pause(self) -> None: ...

    def is_running(self) -> bool: ...


class Timer:
    """Accumulates running time across start/pause cycles.

    Times are milliseconds read from `clock` (monotonic by default).
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        self._clock = clock or monotonic_ms
        self.accumulated_ms: float = 0.0
        self.start_timestamp: float | None = None

    def start(self) -> None:
        if self.is_running():
            return
        self.start_timestamp = self._clock()

    def pause(self) -> None:
        if self.start_timestamp is None:
            return
        self.accumulated_ms += self._clock() - self.start_timestamp
        self.start_timestamp = None

    def reset(self) -> None:
        # An in-progress interval is dropped, not folded into the total.
        self.accumulated_ms = 0.0
        self.start_timestamp = None

    def get_elapsed_ms(self) -> float:
        if self.start_timestamp is None:
            return self.accumulated_ms
        return self.accumulated_ms + (self._clock() - self.start_timestamp)

    def is_running(self) -> bool:
        return self.start_timestamp is not None


def format_elapsed(milliseconds: float) -> str:
    """Format milliseconds as HH:MM:SS (hours do not wrap)."""
    total_seconds = max(0, int(milliseconds // 1000))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
