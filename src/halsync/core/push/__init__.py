"""
Push pipeline.

Archive or pick the payload, detect changes, wait for readiness and run the
push steps inside the component's container.

Example usage:
    from halsync.core.push import PushOrchestrator, ReadinessWatcher, RemoteExecutor

    watcher = ReadinessWatcher(client, timeout=120)
    executor = RemoteExecutor(client)
    result = PushOrchestrator(client, config.push, watcher, executor).push(Path("backend"))
"""

from .archive import create_archive, matches_glob
from .descriptor import find_descriptor
from .executor import (
    CommandStep,
    RemoteExecutor,
    Step,
    UploadStep,
    binary_push_steps,
    restart_steps,
    source_push_steps,
)
from .models import PushMode, PushResult
from .orchestrator import PushOrchestrator, switch_mode
from .revision import compute_revision, needs_push
from .watcher import ReadinessWatcher, WatchState

__all__ = [
    # Archive and revisions
    "create_archive",
    "matches_glob",
    "compute_revision",
    "needs_push",
    # Remote execution
    "CommandStep",
    "UploadStep",
    "Step",
    "RemoteExecutor",
    "source_push_steps",
    "binary_push_steps",
    "restart_steps",
    # Watching
    "ReadinessWatcher",
    "WatchState",
    # Orchestration
    "find_descriptor",
    "PushMode",
    "PushResult",
    "PushOrchestrator",
    "switch_mode",
]
