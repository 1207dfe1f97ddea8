from __future__ import annotations

from datetime import date
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir, user_log_dir

APP_NAME = "tractivity"


def get_config_dir() -> Path:
    return Path(user_config_dir(APP_NAME))


def get_data_dir() -> Path:
    return Path(user_data_dir(APP_NAME))


def get_log_dir() -> Path:
    return Path(user_log_dir(APP_NAME))


def get_transition_logs_dir() -> Path:
    return get_data_dir() / "transition-logs"


def transition_log_path(day: date) -> Path:
    return get_transition_logs_dir() / f"{day.isoformat()}.jsonl"
