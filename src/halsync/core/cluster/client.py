"""
Cluster client protocol.

Every component of the push pipeline talks to the cluster through an
explicitly constructed ``ClusterClient`` handed to its constructor. The
production implementation drives ``kubectl`` (see ``kubectl.py``); tests
substitute an in-memory fake.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any, Protocol, runtime_checkable

from .models import Capability, Component, WatchEvent


@runtime_checkable
class WatchSubscription(Protocol):
    """
    A change-notification stream for a single component.

    Iterating yields events as the server sends them; the iterator ends
    when the server closes the stream. ``stop()`` releases the server-side
    watch and may be called more than once.
    """

    def __iter__(self) -> Iterator[WatchEvent]: ...

    def stop(self) -> None: ...


@runtime_checkable
class RemoteProcess(Protocol):
    """
    A process running inside a container.

    ``stdout`` carries stdout and stderr merged, as text lines.
    """

    stdout: IO[str] | None

    def wait(self) -> int: ...


@runtime_checkable
class ClusterClient(Protocol):
    """
    Protocol for cluster access.

    Implementations are responsible for:
    - Reading and merge-patching components
    - Applying component descriptors
    - Opening per-component watch subscriptions
    - Executing commands in pods and uploading files to them
    - Streaming pod logs
    - Listing registered capabilities
    """

    @property
    def namespace(self) -> str:
        """Namespace all operations are scoped to."""
        ...

    def get_component(self, name: str) -> Component:
        """
        Fetch a component.

        Raises:
            ComponentNotFoundError: If no such component exists
            ClusterError: On any other failure
        """
        ...

    def apply(self, path: Path) -> None:
        """
        Create or update the resources described in a local file.

        Raises:
            ClusterError: If the apply fails
        """
        ...

    def patch_component(self, name: str, patch: dict[str, Any]) -> Component:
        """
        Apply a JSON merge patch to a component.

        Returns:
            The updated component

        Raises:
            ComponentNotFoundError: If no such component exists
            ClusterError: On any other failure
        """
        ...

    def watch_component(self, name: str, timeout_seconds: float) -> WatchSubscription:
        """
        Subscribe to changes of one component.

        The stream starts with the component's current state (if it
        exists) and is closed by the server after ``timeout_seconds``.
        """
        ...

    def exec(
        self,
        pod: str,
        argv: list[str],
        stdin: IO[bytes] | None = None,
    ) -> RemoteProcess:
        """
        Start a command in the pod's first container.

        Raises:
            ClusterError: If the command could not be started
        """
        ...

    def copy_to_pod(self, source: Path, pod: str, destination: str) -> None:
        """
        Upload a local file to ``destination`` (a full file path) in the pod.

        Raises:
            ClusterError: If the transfer fails
        """
        ...

    def logs(self, pod: str, follow: bool = False) -> RemoteProcess:
        """
        Stream the logs of the pod's first container.

        With ``follow`` the stream stays open until the pod stops or the
        caller interrupts it.

        Raises:
            ClusterError: If the log stream could not be started
        """
        ...

    def list_capabilities(self) -> list[Capability]:
        """List capabilities registered in the namespace."""
        ...
