"""
Source archive construction.

Builds the tar snapshot of a component directory that is uploaded to the
component's container. Entries follow host directory-listing order, so the
byte layout is only stable for a fixed snapshot of the tree.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import tarfile
from collections.abc import Collection, Sequence
from pathlib import Path

from halsync.core.errors import ArchiveError

logger = logging.getLogger(__name__)


def matches_glob(path: Path, patterns: Sequence[str]) -> bool:
    """Check whether a path or its base name matches any glob pattern."""
    for pattern in patterns:
        if fnmatch.fnmatch(str(path), pattern):
            return True
        if fnmatch.fnmatch(path.name, pattern):
            return True
    return False


def create_archive(
    root: Path,
    destination: Path,
    excluded: Collection[str] = (),
    glob_excludes: Sequence[str] = (),
    skip_hidden: bool = False,
) -> Path:
    """
    Archive the contents of ``root`` into a tar file.

    Immediate children of ``root`` whose name is in ``excluded`` are
    skipped, as are dot-named children when ``skip_hidden`` is set. Paths at
    any depth matching one of ``glob_excludes`` are skipped too. Directories
    always get a header (so empty ones survive extraction), symlinks keep
    their target, regular files are streamed.

    Args:
        root: Directory to archive; entry names are relative to it
        destination: Tar file to write
        excluded: Top-level names to leave out
        glob_excludes: fnmatch patterns matched against full paths and names
        skip_hidden: Leave out top-level names starting with a dot

    Returns:
        The destination path

    Raises:
        ArchiveError: If any path can't be read or the archive can't be
            written. The partial archive is removed first.
    """
    root = Path(root)
    destination = Path(destination).absolute()

    try:
        children = os.listdir(root)
    except OSError as e:
        raise ArchiveError(str(root), e.strerror or str(e)) from e

    try:
        with tarfile.open(destination, "w") as tar:
            for name in children:
                if name in excluded or (skip_hidden and name.startswith(".")):
                    logger.debug("Excluding %s from archive", name)
                    continue
                _add_path(tar, root / name, name, destination, glob_excludes)
    except ArchiveError:
        destination.unlink(missing_ok=True)
        raise
    except OSError as e:
        destination.unlink(missing_ok=True)
        raise ArchiveError(str(destination), e.strerror or str(e)) from e

    logger.debug("Archived %s into %s", root, destination)
    return destination


def _add_path(
    tar: tarfile.TarFile,
    path: Path,
    arcname: str,
    destination: Path,
    glob_excludes: Sequence[str],
) -> None:
    if path.absolute() == destination:
        return
    if glob_excludes and matches_glob(path, glob_excludes):
        logger.debug("Excluding %s (glob match)", path)
        return

    try:
        info = tar.gettarinfo(str(path), arcname=arcname)
    except OSError as e:
        raise ArchiveError(str(path), e.strerror or str(e)) from e

    if info is None:
        # sockets and other types tar can't represent
        logger.debug("Skipping unsupported file type: %s", path)
        return

    if info.isdir():
        tar.addfile(info)
        try:
            children = os.listdir(path)
        except OSError as e:
            raise ArchiveError(str(path), e.strerror or str(e)) from e
        for child in children:
            _add_path(tar, path / child, f"{arcname}/{child}", destination, glob_excludes)
    elif info.isreg():
        try:
            with open(path, "rb") as f:
                tar.addfile(info, f)
        except OSError as e:
            raise ArchiveError(str(path), e.strerror or str(e)) from e
    else:
        # symlinks, hard links and fifos are header-only
        tar.addfile(info)
