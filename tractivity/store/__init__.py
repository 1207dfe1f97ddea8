from .config import default_config_toml, ensure_default_config_file, get_config_path, load_config
from .paths import (
    get_config_dir,
    get_data_dir,
    get_log_dir,
    get_transition_logs_dir,
    transition_log_path,
)
from .transition_log import TransitionLogger

__all__ = [
    "default_config_toml",
    "ensure_default_config_file",
    "get_config_path",
    "load_config",
    "get_config_dir",
    "get_data_dir",
    "get_log_dir",
    "get_transition_logs_dir",
    "transition_log_path",
    "TransitionLogger",
]
