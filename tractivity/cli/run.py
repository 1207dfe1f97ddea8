from __future__ import annotations

import argparse
import asyncio
import math
import os
import sys
from datetime import datetime
from typing import Callable

from loguru import logger

from tractivity.cli.main import apply_overrides
from tractivity.engine.loop import EvaluationLoop
from tractivity.engine.monitor import IdleProvider, InactivityMonitor
from tractivity.engine.timer import Timer, format_elapsed
from tractivity.engine.types import Config, MonitorState
from tractivity.logger import configure
from tractivity.providers import build_idle_provider, resolve_idle_source
from tractivity.store import TransitionLogger, load_config, transition_log_path

STATE_LABELS = {
    MonitorState.ACTIVE: "running",
    MonitorState.AUTO_PAUSED: "paused (idle)",
    MonitorState.MANUALLY_PAUSED: "paused",
}


def _validate_config(*, threshold_seconds: float, poll_seconds: float) -> None:
    if not math.isfinite(threshold_seconds) or threshold_seconds <= 0:
        raise ValueError("threshold_seconds must be a positive finite number")
    if not math.isfinite(poll_seconds) or poll_seconds <= 0:
        raise ValueError("poll_seconds must be a positive finite number")


def load_session_config(args: argparse.Namespace) -> tuple[Config, dict]:
    config, config_meta = load_config()
    apply_overrides(config, args)
    _validate_config(threshold_seconds=config.threshold_seconds, poll_seconds=config.poll_seconds)
    # Raises ValueError for an unknown source before anything starts.
    resolve_idle_source(config.idle_source)
    return config, config_meta


def close_provider(provider: IdleProvider | None) -> None:
    close = getattr(provider, "close", None)
    if callable(close):
        close()


class _KeyReader:
    """Single keystrokes from the terminal, delivered on the event loop.

    POSIX terminals are switched to cbreak mode and watched with add_reader.
    On Windows the console is polled from the tick hook.
    """

    def __init__(self, on_key: Callable[[str], None]):
        self._on_key = on_key
        self._fd: int | None = None
        self._saved_attrs = None
        self._is_windows = sys.platform.startswith("win")

    def start(self) -> None:
        if self._is_windows or sys.stdin is None:
            return

        fd = sys.stdin.fileno()
        # close() restores the terminal whenever _fd is set.
        self._fd = fd
        if sys.stdin.isatty():
            import termios
            import tty

            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)

        asyncio.get_running_loop().add_reader(fd, self._on_readable)

    def _on_readable(self) -> None:
        if self._fd is None:
            return
        data = os.read(self._fd, 1024)
        if not data:
            # stdin closed; keep running on timer/idle signals only.
            self._stop_reading()
            return
        for ch in data.decode("utf-8", errors="ignore"):
            self._on_key(ch)

    def poll(self) -> None:
        if not self._is_windows:
            return
        import msvcrt

        while msvcrt.kbhit():  # type: ignore[attr-defined]
            self._on_key(msvcrt.getwch())  # type: ignore[attr-defined]

    def _stop_reading(self) -> None:
        if self._fd is not None:
            asyncio.get_running_loop().remove_reader(self._fd)

    def close(self) -> None:
        self._stop_reading()
        if self._fd is not None and self._saved_attrs is not None:
            import termios

            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
        self._fd = None
        self._saved_attrs = None


class TimerApp:
    """Terminal front-end: timer controls, rendering and transition logging."""

    def __init__(
        self,
        config: Config,
        *,
        idle_provider: IdleProvider | None = None,
        transitions: TransitionLogger | None = None,
        timer: Timer | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self.config = config
        self.timer = timer or Timer(clock=clock)
        self.transitions = transitions or TransitionLogger()
        self.monitor = InactivityMonitor.from_config(
            self.timer,
            config,
            idle_provider,
            self._on_state_change,
            clock=clock,
        )
        self.loop = EvaluationLoop(self.monitor, config.poll_seconds, on_tick=self._on_tick)
        self.keys = _KeyReader(self.handle_key)
        self._user_action = False
        self._use_tty_ui = sys.stdout.isatty()

    def _log(self, event: str) -> None:
        try:
            self.transitions.log_transition(
                when=datetime.now().astimezone(),
                event=event,
                state=self.monitor.state,
                elapsed_ms=self.timer.get_elapsed_ms(),
                diagnostics=self.monitor.get_diagnostics(),
            )
        except OSError as e:
            logger.warning("Could not write transition log: {}", e)

    def _on_state_change(self) -> None:
        if self._user_action:
            self._log("auto_pause_cleared")
        elif self.monitor.state is MonitorState.AUTO_PAUSED:
            self._log("auto_pause")
        else:
            self._log("auto_resume")
        self.render()

    def _on_tick(self) -> None:
        self.keys.poll()
        if self._use_tty_ui:
            self.render()

    def toggle(self) -> None:
        if self.timer.is_running():
            self.timer.pause()
            event = "manual_pause"
        else:
            self.timer.start()
            event = "manual_start"

        # The user decided; any idle-induced pause is now intentional.
        self._user_action = True
        try:
            self.monitor.clear_auto_pause()
        finally:
            self._user_action = False

        self._log(event)
        self.render()

    def reset(self) -> bool:
        if self.timer.is_running():
            return False
        self.timer.reset()
        self._log("reset")
        self.render()
        return True

    def handle_key(self, key: str) -> None:
        command = key.lower()
        if command in ("s", " "):
            self.toggle()
        elif command == "r":
            self.reset()
        elif command == "q":
            self.loop.stop()
            return

        # Every keystroke counts as local activity.
        self.loop.forward_activity()

    def status_line(self) -> str:
        diag = self.monitor.get_diagnostics()
        system = "n/a" if diag.system_idle_ms is None else f"{diag.system_idle_ms / 1000:.0f}s"
        auto = "on" if self.monitor.enabled else "off"
        return (
            f"{format_elapsed(self.timer.get_elapsed_ms())}  "
            f"{STATE_LABELS[self.monitor.state]:<13}  "
            f"idle={diag.effective_idle_ms / 1000:.0f}s system={system} auto-pause={auto}  "
            "[s]tart/pause [r]eset [q]uit"
        )

    def render(self) -> None:
        if self._use_tty_ui:
            sys.stdout.write("\r" + self.status_line() + "\x1b[K")
        else:
            sys.stdout.write(self.status_line() + "\n")
        sys.stdout.flush()

    async def run(self) -> None:
        self._log("session_start")
        try:
            self.keys.start()
            await self.loop.run()
        finally:
            self.keys.close()
            await self.loop.aclose()
            self._log("session_end")


async def _run(config: Config, config_meta: dict) -> int:
    provider = build_idle_provider(config.idle_source)
    try:
        app = TimerApp(config, idle_provider=provider)

        print("Starting tractivity (press q to quit)")
        print(f"Config: {config_meta.get('path')}")
        print(
            f"Threshold: {config.threshold_seconds:g}s, Poll: {config.poll_seconds:g}s, "
            f"Idle source: {resolve_idle_source(config.idle_source)}"
        )
        print(f"Transition log: {transition_log_path(datetime.now().date())}")
        print("-" * 50)

        await app.run()
    finally:
        close_provider(provider)

    print()
    print(f"Final elapsed: {format_elapsed(app.timer.get_elapsed_ms())}")
    return 0


def main(args: argparse.Namespace) -> int:
    try:
        config, config_meta = load_session_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        return 2

    configure(verbose=bool(getattr(args, "verbose", False)))

    try:
        return asyncio.run(_run(config, config_meta))
    except KeyboardInterrupt:
        print("\nStopping...")
        return 0
