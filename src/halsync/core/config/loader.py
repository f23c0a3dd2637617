"""
Configuration loading.

Settings come from a stack of layers, later layers winning key by key:

    built-in defaults < user config.json < project .halsync.json < HAL_* env

Each file layer is a partial JSON object with the same shape as HalConfig.
Sections are merged recursively; lists and scalars are replaced whole.
"""

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .models import HalConfig

logger = logging.getLogger(__name__)

APP_DIR_NAME = "halsync"
USER_CONFIG_NAME = "config.json"
PROJECT_CONFIG_NAME = ".halsync.json"

DEFAULTS: dict[str, Any] = {
    "watch": {"timeout_seconds": 120.0},
    "push": {"excluded_names": ["target", ".git"], "exclude_hidden": True},
}

_config_cache: HalConfig | None = None


def user_config_dir() -> Path:
    """Per-user directory, ``$XDG_CONFIG_HOME/halsync`` or ``~/.config/halsync``."""
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_DIR_NAME


def user_config_path() -> Path:
    return user_config_dir() / USER_CONFIG_NAME


def project_config_path(project_dir: Path | None = None) -> Path:
    return (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME


def merge_layer(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """
    Return ``base`` with ``layer`` laid on top.

    Neither argument is modified. Keys holding a mapping on both sides are
    merged recursively; any other value from ``layer`` replaces the old one.
    """
    merged = dict(base)
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_layer(current, value)
        else:
            merged[key] = value
    return merged


def read_layer(path: Path) -> dict[str, Any]:
    """
    Read one JSON config layer.

    A missing file is an empty layer. So is an unreadable or malformed one,
    after a warning: a broken config file never stops the CLI.
    """
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring config at %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return {}
    logger.debug("Loaded config layer %s", path)
    return data


def _positive_seconds(raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise ValueError("must be > 0")
    return value


def _transfer_mode(raw: str) -> str:
    if raw not in ("exec", "cp"):
        raise ValueError("expected 'exec' or 'cp'")
    return raw


# Env var -> (section, key, parser). Parsers raise ValueError on bad input.
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "HAL_NAMESPACE": ("cluster", "namespace", str),
    "HAL_KUBECTL": ("cluster", "kubectl", str),
    "HAL_TRANSFER": ("cluster", "transfer", _transfer_mode),
    "HAL_WATCH_TIMEOUT": ("watch", "timeout_seconds", _positive_seconds),
}


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Lay the ``HAL_*`` environment variables over a merged config.

    Unset or empty variables are skipped. Values that don't parse are
    skipped with a warning.
    """
    result = config_dict
    for var, (section, key, parse) in ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if not raw:
            continue
        try:
            value = parse(raw)
        except ValueError as e:
            logger.warning("Ignoring %s=%r: %s", var, raw, e)
            continue
        result = merge_layer(result, {section: {key: value}})
    return result


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> HalConfig:
    """
    Build the effective configuration from every layer.

    Args:
        project_dir: Directory holding .halsync.json (defaults to cwd)
        use_cache: Return the config built by a previous call, if any

    Raises:
        ValidationError: If the merged layers don't form a valid HalConfig
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = DEFAULTS
    for path in (user_config_path(), project_config_path(project_dir)):
        merged = merge_layer(merged, read_layer(path))
    merged = apply_env_overrides(merged)

    _config_cache = HalConfig.model_validate(merged)
    return _config_cache


def clear_cache() -> None:
    """Forget the cached configuration so the next load rereads every layer."""
    global _config_cache
    _config_cache = None
