"""
Exceptions raised by the halsync core.

Every failure in the push pipeline propagates synchronously to the invoking
command; nothing here is retried automatically.

Exception Hierarchy:
    HalError (base)
    ├── ClusterError (a kubectl call failed)
    │   └── ComponentNotFoundError
    ├── WatchError
    │   ├── WatchTransportError (server error event or dropped stream)
    │   ├── TerminalPhaseError (Failed/Unknown phase observed)
    │   └── WatchTimeoutError (deadline elapsed)
    ├── RemoteCommandError (a step exited non-zero)
    ├── ArchiveError (filesystem failure while building the tar)
    ├── NoMatchError (no capability satisfies a requirement)
    ├── DescriptorError (missing or unusable component descriptor)
    └── ArtifactNotFoundError (binary push found nothing to upload)
"""

from __future__ import annotations


class HalError(Exception):
    """
    Base exception for all halsync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ClusterError(HalError):
    """
    Raised when a call against the cluster fails.

    Attributes:
        command: The command line that was executed, if any
        stderr: Captured standard error of the failed command
    """

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message, command=command, stderr=stderr)
        self.command = command
        self.stderr = stderr


class ComponentNotFoundError(ClusterError):
    """Raised when the targeted component does not exist in the namespace."""

    def __init__(self, name: str, namespace: str = "", stderr: str = "") -> None:
        where = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"No component named '{name}' exists{where}", stderr=stderr)
        self.name = name
        self.namespace = namespace


class WatchError(HalError):
    """Base class for readiness watch failures."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message, name=name)
        self.name = name


class WatchTransportError(WatchError):
    """The change-notification stream itself failed."""

    def __init__(self, name: str, server_message: str) -> None:
        super().__init__(name, f"Watch on component '{name}' failed: {server_message}")
        self.server_message = server_message


class TerminalPhaseError(WatchError):
    """The component reached a failure phase while being watched."""

    def __init__(self, name: str, phase: str, status_message: str = "") -> None:
        message = f"Status of component '{name}' is {phase}"
        if status_message:
            message += f": {status_message}"
        super().__init__(name, message)
        self.phase = phase
        self.status_message = status_message


class WatchTimeoutError(WatchError):
    """No terminal outcome was observed before the deadline."""

    def __init__(self, name: str, timeout: float, desired: str) -> None:
        super().__init__(
            name,
            f"Waited {timeout:g}s but component '{name}' never reached phase {desired}",
        )
        self.timeout = timeout
        self.desired = desired


class RemoteCommandError(HalError):
    """
    A command run inside the target container failed.

    Attributes:
        pod: Pod the command ran in
        argv: The failing command line
        exit_code: Remote exit code (None when the transport failed)
        output: Accumulated stdout/stderr of the command
    """

    def __init__(
        self,
        pod: str,
        argv: list[str],
        exit_code: int | None,
        output: str = "",
        failure_status: str | None = None,
    ) -> None:
        command = " ".join(argv)
        summary = failure_status or "Remote command failed"
        message = f"{summary} in pod '{pod}': `{command}`"
        if exit_code is not None:
            message += f" exited with code {exit_code}"
        if output.strip():
            message += f"\n{output.rstrip()}"
        super().__init__(message, pod=pod, argv=argv, exit_code=exit_code)
        self.pod = pod
        self.argv = argv
        self.exit_code = exit_code
        self.output = output


class ArchiveError(HalError):
    """Building the archive failed on the given path."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Couldn't archive '{path}': {reason}", path=path)
        self.path = path


class NoMatchError(HalError):
    """No known capability satisfies the requirement."""

    def __init__(self, requirement: str, spec_display: str) -> None:
        super().__init__(
            f"No capability matches requirement '{requirement}' ({spec_display})",
            requirement=requirement,
        )
        self.requirement = requirement


class DescriptorError(HalError):
    """The component descriptor is missing or does not describe the component."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Invalid component descriptor '{path}': {reason}", path=path)
        self.path = path


class ArtifactNotFoundError(HalError):
    """No packaged artifact was found for a binary push."""

    def __init__(self, directory: str, suffix: str) -> None:
        super().__init__(f"No '{suffix}' artifact found in {directory}", directory=directory)
        self.directory = directory
        self.suffix = suffix
