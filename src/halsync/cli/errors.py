"""
Standardized error handling and exit codes for the hal CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

from halsync.core.errors import (
    ArtifactNotFoundError,
    ClusterError,
    ComponentNotFoundError,
    DescriptorError,
    HalError,
    NoMatchError,
    RemoteCommandError,
    TerminalPhaseError,
    WatchTimeoutError,
)

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for hal CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """A cluster, watch or push failure."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "No component named 'backend' exists in namespace 'dev'",
        ...     solution="hal component push -c backend  # with a halkyon.yml descriptor",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}", markup=True, highlight=False)

    if reason:
        console.print(f"[dim]{reason}[/dim]", highlight=False)

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}", highlight=False)


def print_hal_error(error: HalError) -> None:
    """Print a core error with guidance matching its type."""
    reason: str | None = None
    solution: str | None = None

    if isinstance(error, ComponentNotFoundError):
        solution = "hal component push  # from a directory holding the component descriptor"
    elif isinstance(error, DescriptorError):
        reason = "A missing component is created from its descriptor before the first push"
        solution = "Add a Component document with a matching metadata.name"
    elif isinstance(error, ArtifactNotFoundError):
        reason = "Binary mode pushes the newest packaged artifact"
        solution = "Package the component first, or push without --binary"
    elif isinstance(error, TerminalPhaseError):
        reason = "The cluster reported the component as unhealthy"
    elif isinstance(error, WatchTimeoutError):
        solution = "hal component wait NAME --timeout 300  # or set HAL_WATCH_TIMEOUT"
    elif isinstance(error, RemoteCommandError):
        reason = "Steps after the failing one were not run"
    elif isinstance(error, NoMatchError):
        solution = "hal capability list  # to see available capabilities"
    elif isinstance(error, ClusterError) and error.stderr:
        reason = error.stderr

    print_error(error.message, reason=reason, solution=solution)


def print_invalid_option_error(option: str, valid_options: list[str]) -> None:
    """Print error when an invalid option value is provided."""
    valid_str = ", ".join(valid_options)
    print_error(
        f"Invalid option: {option}",
        reason=f"Valid options are: {valid_str}",
        solution=f"Use one of: {valid_str}",
    )


__all__ = [
    "ExitCode",
    "console",
    "print_error",
    "print_hal_error",
    "print_invalid_option_error",
]
