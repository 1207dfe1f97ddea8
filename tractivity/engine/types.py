from dataclasses import dataclass
from enum import Enum
from typing import Final


class MonitorState(Enum):
    ACTIVE = "active"
    AUTO_PAUSED = "auto_paused"
    MANUALLY_PAUSED = "manually_paused"


DEFAULT_THRESHOLD_SECONDS: Final[float] = 300.0
DEFAULT_POLL_SECONDS: Final[float] = 0.25
DEFAULT_IDLE_SOURCE: Final[str] = "auto"

IDLE_SOURCES: Final[tuple[str, ...]] = ("auto", "logind", "mutter", "windows", "none")


@dataclass
class Config:
    threshold_seconds: float = DEFAULT_THRESHOLD_SECONDS
    poll_seconds: float = DEFAULT_POLL_SECONDS
    auto_pause: bool = True
    idle_source: str = DEFAULT_IDLE_SOURCE

    @property
    def threshold_ms(self) -> float:
        return self.threshold_seconds * 1000


@dataclass(frozen=True)
class Diagnostics:
    system_idle_ms: float | None
    effective_idle_ms: float
    paused_by_idle: bool

    def as_dict(self) -> dict:
        return {
            "system_idle_ms": self.system_idle_ms,
            "effective_idle_ms": self.effective_idle_ms,
            "paused_by_idle": self.paused_by_idle,
        }


@dataclass(frozen=True)
class IdleSample:
    """Outcome of one idle-time query.

    `idle_ms` is set only for a trusted reading. `error` is set when the
    provider raised or returned something unusable. Both unset means the
    provider had no reading (or none is configured).
    """

    idle_ms: float | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.idle_ms is not None
