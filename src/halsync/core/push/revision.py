"""
Change detection for pushed payloads.

A revision is the SHA-1 digest of the payload (source archive or packaged
artifact). It is recorded on the component after every successful push.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from pathlib import Path

from halsync.core.cluster.models import Component

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def compute_revision(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    Hash a payload file.

    The file is read in fixed-size chunks so memory use doesn't depend on
    its size.

    Returns:
        Hex digest of the file content
    """
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def needs_push(
    new_revision: str,
    component: Component,
    marker_present: Callable[[str], bool],
) -> bool:
    """
    Decide whether the payload has to be pushed.

    A push is needed when the revision changed, or when the component has
    a pod and the marker file is missing from it (the pod was replaced
    behind our back since the last push).

    Args:
        new_revision: Revision of the local payload
        component: Current state of the remote component
        marker_present: Probe telling whether the marker exists in a pod

    Returns:
        True if the payload must be pushed
    """
    if new_revision != component.spec.revision:
        logger.debug(
            "Revision of %s changed: %s -> %s",
            component.name,
            component.spec.revision or "<none>",
            new_revision,
        )
        return True

    pod = component.pod_name
    if not pod:
        return False

    if not marker_present(pod):
        logger.info("Marker missing from pod %s, pushing %s again", pod, component.name)
        return True
    return False
