from __future__ import annotations

import math
import tomllib
from pathlib import Path

from tractivity.engine.types import IDLE_SOURCES, Config
from tractivity.store.paths import get_config_dir


def get_config_path() -> Path:
    return get_config_dir() / "config.toml"


def default_config_toml(config: Config | None = None) -> str:
    cfg = config or Config()
    # Keep it minimal and editable.
    return (
        "# tractivity configuration\n"
        "# Location: ~/.config/tractivity/config.toml (or XDG_CONFIG_HOME)\n"
        "\n"
        "# Pause the timer after this many seconds without activity\n"
        f"threshold_seconds = {cfg.threshold_seconds}\n"
        f"poll_seconds = {cfg.poll_seconds}\n"
        f"auto_pause = {str(cfg.auto_pause).lower()}\n"
        "\n"
        "[idle]\n"
        '# System idle source: "auto", "logind", "mutter", "windows" or "none"\n'
        f'source = "{cfg.idle_source}"\n'
    )


def ensure_default_config_file(path: Path | None = None) -> Path:
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    if not config_path.exists():
        config_path.write_text(default_config_toml(), encoding="utf-8")
    return config_path


def _positive_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


def load_config(path: Path | None = None, *, create_if_missing: bool = True) -> tuple[Config, dict]:
    """Load config.toml, returning (Config, meta).

    Meta contains useful diagnostics for status output.
    """

    config_path = path or get_config_path()
    meta: dict = {"path": str(config_path), "loaded": False, "created": False}

    if create_if_missing:
        before = config_path.exists()
        ensure_default_config_file(config_path)
        meta["created"] = not before

    if not config_path.exists():
        return Config(), meta

    try:
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as e:
        meta["error"] = f"config_read_error: {e}"
        return Config(), meta

    cfg = Config()

    threshold = _positive_number(raw.get("threshold_seconds"))
    if threshold is not None:
        cfg.threshold_seconds = threshold

    poll = _positive_number(raw.get("poll_seconds"))
    if poll is not None:
        cfg.poll_seconds = poll

    if isinstance(raw.get("auto_pause"), bool):
        cfg.auto_pause = bool(raw["auto_pause"])

    idle = raw.get("idle")
    if isinstance(idle, dict):
        source = idle.get("source")
        if isinstance(source, str):
            source_norm = source.strip().lower()
            if source_norm in IDLE_SOURCES:
                cfg.idle_source = source_norm

    meta["loaded"] = True
    return cfg, meta
