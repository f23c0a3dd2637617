"""
``.env`` file loading.

``HAL_*`` settings (and anything else kubectl needs, like ``KUBECONFIG``)
can live in dotenv files. Files are applied most specific first without
overriding, so the first file to define a variable wins and the shell
environment beats all of them:

    shell > project .env.local > project .env > user ~/.config/halsync/.env
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from dotenv import load_dotenv

from .loader import user_config_dir

logger = logging.getLogger(__name__)


def env_files(project_dir: Path | None = None) -> list[Path]:
    """Candidate dotenv files, highest precedence first."""
    project = project_dir or Path.cwd()
    return [
        project / ".env.local",
        project / ".env",
        user_config_dir() / ".env",
    ]


def load_layered_env(
    project_dir: Path | None = None,
    files: Iterable[Path] | None = None,
) -> list[Path]:
    """
    Load dotenv files into ``os.environ``.

    Args:
        project_dir: Directory holding the project files (defaults to cwd)
        files: Files to load instead of ``env_files(project_dir)``,
            highest precedence first

    Returns:
        The files that existed and were read
    """
    loaded = []
    for path in env_files(project_dir) if files is None else files:
        path = Path(path)
        if not path.is_file():
            continue
        load_dotenv(path, override=False)
        logger.debug("Loaded environment from %s", path)
        loaded.append(path)
    return loaded
