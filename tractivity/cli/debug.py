import argparse
import asyncio
import sys

from tractivity.cli.run import close_provider, load_session_config
from tractivity.engine.loop import EvaluationLoop
from tractivity.engine.monitor import InactivityMonitor
from tractivity.engine.timer import Timer, format_elapsed
from tractivity.logger import configure
from tractivity.providers import build_idle_provider, resolve_idle_source


async def _debug(config, config_meta: dict) -> None:
    provider = build_idle_provider(config.idle_source)
    try:
        await _watch(config, config_meta, provider)
    finally:
        close_provider(provider)


async def _watch(config, config_meta: dict, provider) -> None:
    timer = Timer()
    transitions = 0

    def _count_transition() -> None:
        nonlocal transitions
        transitions += 1

    monitor = InactivityMonitor.from_config(timer, config, provider, _count_transition)
    use_tty_ui = sys.stdout.isatty()

    def _render() -> None:
        diag = monitor.get_diagnostics()
        lines: list[str] = []
        lines.append("tractivity debug")
        lines.append(f"config: {config_meta.get('path')}")
        lines.append(
            f"threshold: {config.threshold_seconds:g}s poll: {config.poll_seconds:g}s "
            f"idle_source: {resolve_idle_source(config.idle_source)} "
            f"auto_pause: {config.auto_pause}"
        )
        lines.append("-" * 50)
        lines.append(f"system_idle_ms: {diag.system_idle_ms}")
        lines.append(f"effective_idle_ms: {diag.effective_idle_ms:.0f}")
        lines.append(f"paused_by_idle: {diag.paused_by_idle}")
        lines.append(f"state: {monitor.state.value}")
        lines.append(f"elapsed: {format_elapsed(timer.get_elapsed_ms())}")
        lines.append(f"transitions: {transitions}")
        lines.append("-" * 50)

        if use_tty_ui:
            lines.append("Ctrl+C to exit")
            # Clear screen + move cursor home.
            sys.stdout.write("\x1b[2J\x1b[H")
        sys.stdout.write("\n".join(lines))
        sys.stdout.write("\n")
        sys.stdout.flush()

    loop = EvaluationLoop(monitor, config.poll_seconds, on_tick=_render)

    timer.start()
    try:
        await loop.run()
    finally:
        await loop.aclose()


def main(args: argparse.Namespace) -> int:
    """Run debug CLI - prints live idle readings + monitor diagnostics."""

    try:
        config, config_meta = load_session_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        return 2

    configure(verbose=bool(getattr(args, "verbose", False)))

    try:
        asyncio.run(_debug(config, config_meta))
    except KeyboardInterrupt:
        print("\nExiting debug mode...")
    return 0
