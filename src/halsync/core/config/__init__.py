"""
Configuration models and loading.

Layers: defaults < user config < project config < HAL_* env vars, with
dotenv files feeding the environment first.
"""

from .env import env_files, load_layered_env
from .loader import (
    clear_cache,
    load_config,
    project_config_path,
    user_config_dir,
    user_config_path,
)
from .models import ClusterConfig, HalConfig, PushConfig, WatchConfig

__all__ = [
    # Models
    "ClusterConfig",
    "HalConfig",
    "PushConfig",
    "WatchConfig",
    # Loading
    "clear_cache",
    "env_files",
    "load_config",
    "load_layered_env",
    "project_config_path",
    "user_config_dir",
    "user_config_path",
]
