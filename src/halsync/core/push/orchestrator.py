"""
Push orchestration.

Drives one push of a local component directory to its remote counterpart:

a. make sure the component exists (apply the descriptor and wait otherwise)
b. build the payload (source archive or newest packaged artifact)
c. skip everything when the payload revision is unchanged
d. wait until the component serves
e. run the push steps inside its pod
f. record the new revision on the component

Nothing is retried and nothing is rolled back; the first failure propagates.
A push interrupted between (e) and (f) is repaired by the next one since the
revision still differs.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from halsync.core.cluster.client import ClusterClient
from halsync.core.cluster.models import (
    SERVING_PHASES,
    Component,
    ComponentPhase,
    DeploymentMode,
)
from halsync.core.config.models import PushConfig
from halsync.core.errors import (
    ArtifactNotFoundError,
    ClusterError,
    ComponentNotFoundError,
)

from .archive import create_archive
from .descriptor import find_descriptor
from .executor import RemoteExecutor, Step, binary_push_steps, source_push_steps
from .models import PushMode, PushResult
from .revision import compute_revision, needs_push
from .watcher import ReadinessWatcher

logger = logging.getLogger(__name__)


class PushOrchestrator:
    """
    Pushes local component directories to the cluster.

    Example:
        >>> client = KubectlClient(config.cluster)
        >>> orchestrator = PushOrchestrator(
        ...     client,
        ...     config.push,
        ...     ReadinessWatcher(client, config.watch.timeout_seconds),
        ...     RemoteExecutor(client, progress=console.print),
        ... )
        >>> result = orchestrator.push(Path("backend"))
        >>> result.pushed
        True
    """

    def __init__(
        self,
        client: ClusterClient,
        settings: PushConfig,
        watcher: ReadinessWatcher,
        executor: RemoteExecutor,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._watcher = watcher
        self._executor = executor
        self._progress = progress

    def push(
        self,
        component_dir: Path,
        name: str | None = None,
        binary: bool = False,
    ) -> PushResult:
        """
        Push a component directory.

        Args:
            component_dir: Local directory of the component
            name: Component name, defaults to the directory's base name
            binary: Push the packaged artifact instead of the sources

        Returns:
            PushResult describing what happened

        Raises:
            HalError: Any failure of the pipeline, unchanged
        """
        component_dir = Path(component_dir)
        name = name or component_dir.resolve().name
        result = PushResult(
            component=name,
            mode=PushMode.BINARY if binary else PushMode.SOURCE,
            started_at=datetime.now(),
        )

        component, result.created = self._ensure_component(component_dir, name)

        if binary:
            artifact = self.find_artifact(component_dir)
            self._push_payload(
                component, artifact, binary_push_steps(artifact, self._settings), result
            )
        else:
            with self._source_archive(component_dir, name) as archive:
                self._push_payload(
                    component, archive, source_push_steps(archive, self._settings), result
                )

        result.completed_at = datetime.now()
        return result

    def find_artifact(self, component_dir: Path) -> Path:
        """
        Find the newest packaged artifact of a component.

        Raises:
            ArtifactNotFoundError: If the artifact directory holds none
        """
        directory = Path(component_dir) / self._settings.artifact_dir
        suffix = self._settings.artifact_suffix
        candidates = (
            [p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix)]
            if directory.is_dir()
            else []
        )
        if not candidates:
            raise ArtifactNotFoundError(str(directory), suffix)
        return max(candidates, key=lambda p: p.stat().st_mtime)

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _report(self, message: str) -> None:
        if self._progress is not None:
            self._progress(message)

    def _ensure_component(self, component_dir: Path, name: str) -> tuple[Component, bool]:
        try:
            return self._client.get_component(name), False
        except ComponentNotFoundError:
            logger.info("Component %s not found, creating it", name)

        descriptor = find_descriptor(component_dir, self._settings.descriptor, name)
        self._report(f"Creating component '{name}'")
        self._client.apply(descriptor)
        self._report(f"Waiting for component '{name}' to be ready")
        return self._watcher.wait_for(name, ComponentPhase.READY), True

    @contextmanager
    def _source_archive(self, component_dir: Path, name: str) -> Iterator[Path]:
        fd, raw_path = tempfile.mkstemp(prefix=f"{name}-", suffix=".tar")
        os.close(fd)
        path = Path(raw_path)
        try:
            create_archive(
                component_dir,
                path,
                excluded=self._settings.excluded_names,
                glob_excludes=self._settings.exclude_globs,
                skip_hidden=self._settings.exclude_hidden,
            )
            yield path
        finally:
            path.unlink(missing_ok=True)

    def _push_payload(
        self,
        component: Component,
        payload: Path,
        steps: Sequence[Step],
        result: PushResult,
    ) -> None:
        name = component.name or result.component
        revision = compute_revision(payload)
        result.revision = revision

        marker = self._settings.effective_marker_path
        if not needs_push(
            revision, component, lambda pod: self._executor.path_exists(pod, marker)
        ):
            result.message = f"No local changes detected for '{name}' component: nothing to push!"
            logger.info("Revision %s already pushed to %s", revision, name)
            return

        current = self._client.get_component(name)
        if current.phase not in SERVING_PHASES:
            self._report(f"Waiting for component '{name}' to be ready")
            current = self._watcher.wait_for(name, ComponentPhase.READY)

        pod = current.pod_name
        if not pod:
            raise ClusterError(f"Component '{name}' has no pod to push to")

        self._executor.run_sequence(pod, steps)
        self._client.patch_component(name, {"spec": {"revision": revision}})

        result.pushed = True
        result.pod_name = pod
        result.message = f"Pushed {payload.name} to component '{name}'"
        logger.info("Pushed revision %s to %s (pod %s)", revision, name, pod)


def switch_mode(client: ClusterClient, name: str, mode: DeploymentMode) -> Component:
    """
    Switch the deployment mode of a component.

    Returns:
        The patched component
    """
    logger.info("Switching %s to %s mode", name, mode.value)
    return client.patch_component(name, {"spec": {"deploymentMode": mode.value}})
