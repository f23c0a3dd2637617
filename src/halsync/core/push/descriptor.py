"""Local component descriptor lookup."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from halsync.core.errors import DescriptorError


def find_descriptor(component_dir: Path, filename: str, name: str) -> Path:
    """
    Locate the descriptor that creates ``name`` in a component directory.

    The file may hold several YAML documents; one of them has to be a
    ``Component`` whose metadata name matches.

    Raises:
        DescriptorError: If the file is missing, unreadable, or doesn't
            describe the component
    """
    path = Path(component_dir) / filename
    if not path.is_file():
        raise DescriptorError(str(path), "file not found")

    try:
        with open(path, encoding="utf-8") as f:
            documents = [doc for doc in yaml.safe_load_all(f) if doc]
    except (OSError, yaml.YAMLError) as e:
        raise DescriptorError(str(path), str(e)) from e

    if not any(_describes(doc, name) for doc in documents):
        raise DescriptorError(str(path), f"no Component named '{name}' defined")
    return path


def _describes(document: Any, name: str) -> bool:
    if not isinstance(document, dict) or document.get("kind") != "Component":
        return False
    metadata = document.get("metadata") or {}
    return metadata.get("name") == name
