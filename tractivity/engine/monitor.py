from __future__ import annotations

import inspect
import math
from numbers import Real
from typing import Awaitable, Callable, Union

from loguru import logger

from .state import classify_state
from .timer import TimerLike, monotonic_ms
from .types import Config, Diagnostics, IdleSample, MonitorState

IdleReading = Union[float, int, None]
IdleProvider = Callable[[], Union[IdleReading, Awaitable[IdleReading]]]
StateChangeCallback = Callable[[], None]


def _is_positive_duration(value: object) -> bool:
    return (
        isinstance(value, Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


class InactivityMonitor:
    """Auto-pause / auto-resume decision for a timer.

    Two activity signals feed the decision: local activity reported through
    `mark_activity()` and an optional system idle-time provider queried on
    every `evaluate()`. The provider returns idle seconds, either directly or
    as an awaitable; it may raise, and a failing provider only degrades that
    tick to local tracking.

    State is ACTIVE, AUTO_PAUSED or MANUALLY_PAUSED (see `classify_state`).
    The monitor only ever leaves MANUALLY_PAUSED when the user starts the timer.
    """

    def __init__(
        self,
        timer: TimerLike,
        threshold_ms: float,
        idle_provider: IdleProvider | None = None,
        on_state_change: StateChangeCallback | None = None,
        *,
        enabled: bool = True,
        clock: Callable[[], float] | None = None,
    ):
        if timer is None:
            raise ValueError("timer is required")
        for name in ("start", "pause", "is_running"):
            if not callable(getattr(timer, name, None)):
                raise TypeError(f"timer must provide a callable {name}()")
        if not _is_positive_duration(threshold_ms):
            raise ValueError("threshold_ms must be a positive finite number")
        if idle_provider is not None and not callable(idle_provider):
            raise TypeError("idle_provider must be callable")
        if on_state_change is not None and not callable(on_state_change):
            raise TypeError("on_state_change must be callable")

        self._timer = timer
        self._threshold_ms = float(threshold_ms)
        self._idle_provider = idle_provider
        self._on_state_change = on_state_change
        self._enabled = bool(enabled)
        self._clock = clock or monotonic_ms

        self._last_activity: float = self._clock()
        self._paused_by_idle = False
        self._evaluating = False

        self._last_system_idle_ms: float | None = None
        self._last_effective_idle_ms: float = 0.0

    @classmethod
    def from_config(
        cls,
        timer: TimerLike,
        config: Config,
        idle_provider: IdleProvider | None = None,
        on_state_change: StateChangeCallback | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> "InactivityMonitor":
        return cls(
            timer,
            config.threshold_ms,
            idle_provider,
            on_state_change,
            enabled=config.auto_pause,
            clock=clock,
        )

    # ---- Read-only properties ----

    @property
    def state(self) -> MonitorState:
        return classify_state(
            running=self._timer.is_running(), paused_by_idle=self._paused_by_idle
        )

    @property
    def threshold_ms(self) -> float:
        return self._threshold_ms

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def last_activity(self) -> float:
        return self._last_activity

    @property
    def is_evaluating(self) -> bool:
        return self._evaluating

    # ---- Activity signals ----

    def mark_activity(self, timestamp: float | None = None) -> None:
        """Record local activity; resumes immediately if auto-paused."""
        self._last_activity = self._clock() if timestamp is None else timestamp

        self._drop_stale_marker()
        if self.state is MonitorState.AUTO_PAUSED:
            self._resume(reason="local activity")

    async def evaluate(self) -> None:
        """Run one decision step. Never raises.

        If a previous call is still awaiting the idle provider, this call
        returns immediately without doing anything.
        """
        if self._evaluating:
            return

        self._evaluating = True
        try:
            await self._evaluate_once()
        except Exception:
            logger.exception("Inactivity evaluation failed")
        finally:
            self._evaluating = False

    async def _evaluate_once(self) -> None:
        now = self._clock()

        sample = await self._query_idle()
        if sample.idle_ms is not None and sample.idle_ms < self._threshold_ms:
            # System-wide input counts as activity even if no local event fired.
            self._last_activity = now

        elapsed_since_activity = now - self._last_activity
        effective_idle = sample.idle_ms if sample.idle_ms is not None else elapsed_since_activity

        self._last_system_idle_ms = sample.idle_ms
        self._last_effective_idle_ms = effective_idle

        if not self._enabled:
            return

        self._drop_stale_marker()
        state = self.state

        if state is MonitorState.ACTIVE and effective_idle >= self._threshold_ms:
            self._auto_pause(effective_idle)
        elif state is MonitorState.AUTO_PAUSED and effective_idle < self._threshold_ms:
            self._resume(reason="idle below threshold", now=now)

    async def _query_idle(self) -> IdleSample:
        provider = self._idle_provider
        if provider is None:
            return IdleSample()

        try:
            result = provider()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.warning("Failed to determine system idle time: {}", exc)
            return IdleSample(error=str(exc) or type(exc).__name__)

        if result is None:
            return IdleSample()

        if (
            isinstance(result, bool)
            or not isinstance(result, Real)
            or not math.isfinite(result)
            or result < 0
        ):
            logger.warning("Ignoring invalid system idle time: {!r}", result)
            return IdleSample(error=f"invalid idle value: {result!r}")

        return IdleSample(idle_ms=float(result) * 1000)

    # ---- Transitions ----

    def _auto_pause(self, effective_idle_ms: float) -> None:
        self._timer.pause()
        self._paused_by_idle = True
        logger.info("Auto-paused after {:.0f} ms of inactivity", effective_idle_ms)
        self._notify()

    def _resume(self, *, reason: str, now: float | None = None) -> None:
        self._paused_by_idle = False
        self._timer.start()
        if now is not None:
            self._last_activity = now
        logger.info("Auto-resumed ({})", reason)
        self._notify()

    def _drop_stale_marker(self) -> None:
        # The timer was started without clear_auto_pause(); the marker no longer applies.
        if self._paused_by_idle and self._timer.is_running():
            logger.debug("Timer running while marked auto-paused; dropping marker")
            self._paused_by_idle = False

    def clear_auto_pause(self) -> None:
        """Relabel the current pause as intentional after a manual start/pause.

        Never starts the timer.
        """
        self._last_activity = self._clock()
        self._last_effective_idle_ms = 0.0

        if self._paused_by_idle:
            self._paused_by_idle = False
            logger.info("Auto-pause cleared by user action")
            self._notify()

    def _notify(self) -> None:
        if self._on_state_change is None:
            return
        try:
            self._on_state_change()
        except Exception:
            logger.exception("State change callback failed")

    # ---- Configuration ----

    def set_threshold_ms(self, threshold_ms: float) -> None:
        if not _is_positive_duration(threshold_ms):
            logger.warning("Ignoring invalid inactivity threshold: {!r}", threshold_ms)
            return
        self._threshold_ms = float(threshold_ms)

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    # ---- Read model ----

    def is_paused_by_inactivity(self) -> bool:
        return self._paused_by_idle

    def get_diagnostics(self) -> Diagnostics:
        return Diagnostics(
            system_idle_ms=self._last_system_idle_ms,
            effective_idle_ms=self._last_effective_idle_ms,
            paused_by_idle=self._paused_by_idle,
        )
