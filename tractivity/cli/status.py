from __future__ import annotations

from datetime import datetime

from tractivity.engine.timer import format_elapsed
from tractivity.store import (
    TransitionLogger,
    get_config_path,
    get_log_dir,
    get_transition_logs_dir,
    load_config,
    transition_log_path,
)


def main() -> int:
    now = datetime.now().astimezone()

    config, config_meta = load_config(create_if_missing=False)
    last = TransitionLogger().read_last(when=now)

    print("tractivity status")
    print(f"config: {get_config_path()}")
    if config_meta.get("error"):
        print(f"config error: {config_meta.get('error')}")
    elif not config_meta.get("loaded"):
        print("config: not created yet (defaults in use)")

    print(
        "settings: "
        f"threshold={config.threshold_seconds:g}s "
        f"poll={config.poll_seconds:g}s "
        f"auto_pause={config.auto_pause} "
        f"idle_source={config.idle_source}"
    )
    print(f"data logs dir: {get_transition_logs_dir()}")
    print(f"app log dir: {get_log_dir()}")
    print(f"today transitions: {transition_log_path(now.date())}")

    if last is None:
        print("last transition: unavailable (no log yet)")
        return 0

    elapsed = last.get("elapsed_ms")
    elapsed_text = format_elapsed(elapsed) if isinstance(elapsed, int | float) else "?"
    print(
        "last transition: "
        f"event={last.get('event')} "
        f"state={last.get('state')} "
        f"elapsed={elapsed_text} "
        f"at={last.get('ts')}"
    )
    return 0
