"""
Ordered command execution inside a component's container.

A push is a list of steps (uploads and commands) run strictly in order.
The first failing step aborts the rest; nothing is retried. The source and
binary push sequences share the supervisor stop/start steps and differ only
in the data returned by ``source_push_steps`` and ``binary_push_steps``.
"""

from __future__ import annotations

import logging
import shlex
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Union

from halsync.core.cluster.client import ClusterClient
from halsync.core.config.models import PushConfig
from halsync.core.errors import ClusterError, RemoteCommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandStep:
    """
    A command run in the container.

    An empty description keeps the step out of progress reporting.
    """

    argv: tuple[str, ...]
    description: str = ""
    failure_status: str | None = None


@dataclass(frozen=True)
class UploadStep:
    """A local file uploaded to a full path in the container."""

    source: Path
    destination: str
    description: str = ""
    failure_status: str | None = None

    @property
    def argv(self) -> tuple[str, ...]:
        return ("upload", str(self.source), self.destination)


Step = Union[CommandStep, UploadStep]


def _drain(stream: IO[str] | None, sink: list[str]) -> None:
    if stream is None:
        return
    for line in stream:
        sink.append(line)


class RemoteExecutor:
    """
    Runs steps inside pods through a ClusterClient.

    Remote output is drained by a companion thread while the caller waits
    for the exit status, so the transport never blocks on a full pipe. The
    output is only kept for error reporting.

    Example:
        >>> executor = RemoteExecutor(client, progress=print)
        >>> executor.run_sequence("backend-abc12", binary_push_steps(jar, config.push))
    """

    def __init__(
        self,
        client: ClusterClient,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._progress = progress

    def run_command(self, pod: str, argv: Sequence[str]) -> tuple[int, str]:
        """
        Run one command and collect its merged output.

        Returns:
            Tuple of (exit code, output)

        Raises:
            ClusterError: If the command could not be started
        """
        process = self._client.exec(pod, list(argv))
        output: list[str] = []
        drainer = threading.Thread(
            target=_drain,
            args=(process.stdout, output),
            name=f"exec-output-{pod}",
            daemon=True,
        )
        drainer.start()
        returncode = process.wait()
        drainer.join()
        return returncode, "".join(output)

    def run(self, pod: str, step: Step) -> str:
        """
        Run a single step.

        Returns:
            Output of the step

        Raises:
            RemoteCommandError: If the step fails
        """
        if step.description and self._progress is not None:
            self._progress(step.description)

        if isinstance(step, UploadStep):
            try:
                self._client.copy_to_pod(step.source, pod, step.destination)
            except ClusterError as e:
                raise RemoteCommandError(
                    pod, list(step.argv), None, e.stderr or e.message, step.failure_status
                ) from e
            return ""

        try:
            returncode, output = self.run_command(pod, step.argv)
        except ClusterError as e:
            raise RemoteCommandError(
                pod, list(step.argv), None, e.stderr or e.message, step.failure_status
            ) from e

        if returncode != 0:
            raise RemoteCommandError(pod, list(step.argv), returncode, output, step.failure_status)
        return output

    def run_sequence(self, pod: str, steps: Sequence[Step]) -> list[str]:
        """
        Run steps in order, stopping at the first failure.

        Returns:
            Output of every step

        Raises:
            RemoteCommandError: For the first step that fails
        """
        outputs = []
        for index, step in enumerate(steps, start=1):
            logger.debug("Step %d/%d in %s: %s", index, len(steps), pod, " ".join(step.argv))
            outputs.append(self.run(pod, step))
        return outputs

    def path_exists(self, pod: str, path: str) -> bool:
        """
        Check whether a path exists in the pod.

        A probe that can't run counts as missing.
        """
        try:
            returncode, _ = self.run_command(pod, ["test", "-e", path])
        except ClusterError as e:
            logger.warning("Couldn't check for %s in pod %s: %s", path, pod, e)
            return False
        return returncode == 0


# =============================================================================
# Canonical sequences
# =============================================================================


def supervisor_command(settings: PushConfig, action: str, program: str) -> tuple[str, ...]:
    """Build an in-container supervisor control command."""
    return (settings.supervisor, "ctl", action, program)


def restart_steps(settings: PushConfig) -> list[Step]:
    """Stop then start the application program."""
    return [
        CommandStep(
            supervisor_command(settings, "stop", settings.run_program),
            failure_status="Couldn't stop the application",
        ),
        CommandStep(
            supervisor_command(settings, "start", settings.run_program),
            "Restarting app",
            "Couldn't restart the application",
        ),
    ]


def source_push_steps(archive: Path, settings: PushConfig) -> list[Step]:
    """
    Steps pushing a source archive and rebuilding in the container.

    The previously extracted tree is removed before extraction so deleted
    files don't linger.
    """
    extracted = settings.extracted_source_path
    status_build = " ".join(
        shlex.quote(part) for part in supervisor_command(settings, "status", settings.build_program)
    )
    return [
        UploadStep(
            archive,
            settings.source_archive_path,
            f"Uploading {archive.name}",
            "Couldn't upload the source archive",
        ),
        CommandStep(
            ("sh", "-c", f"rm -rf {shlex.quote(extracted)}/*"),
            "Cleaning up component",
            "Couldn't clean up previous sources",
        ),
        CommandStep(
            ("tar", "xmf", settings.source_archive_path, "-C", extracted),
            "Extracting source on the remote cluster",
            "Couldn't extract sources",
        ),
        CommandStep(
            supervisor_command(settings, "stop", settings.run_program),
            failure_status="Couldn't stop the application",
        ),
        CommandStep(
            supervisor_command(settings, "start", settings.build_program),
            "Performing build",
            "Couldn't start the build",
        ),
        CommandStep(
            ("sh", "-c", f"while {status_build} | grep RUNNING; do sleep 1; done"),
            "Waiting for build to finish",
            "Build didn't finish",
        ),
        *restart_steps(settings),
    ]


def binary_push_steps(artifact: Path, settings: PushConfig) -> list[Step]:
    """Steps deploying a packaged artifact and restarting the application."""
    return [
        UploadStep(
            artifact,
            settings.deployment_path,
            f"Uploading {artifact.name}",
            "Couldn't upload the artifact",
        ),
        *restart_steps(settings),
    ]
