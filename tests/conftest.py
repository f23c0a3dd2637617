"""
Pytest configuration and shared fixtures.

Provides an in-memory ClusterClient, component factories, component
directories and isolated configuration used across the test suite.
"""

import io
import os
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from halsync.core.cluster.models import (
    Capability,
    Component,
    ComponentPhase,
    WatchEvent,
    WatchEventType,
)
from halsync.core.config.loader import merge_layer
from halsync.core.config.models import PushConfig
from halsync.core.errors import ClusterError, ComponentNotFoundError

# ==============================================================================
# Fake cluster
# ==============================================================================


class FakeWatch:
    """
    Subscription replaying canned events.

    With ``block`` set the stream stays open after the events until stop()
    is called, like a server with nothing more to say.
    """

    def __init__(self, events: list[WatchEvent], block: bool = False) -> None:
        self.events = list(events)
        self.block = block
        self.stopped = threading.Event()

    def __iter__(self) -> Iterator[WatchEvent]:
        for event in self.events:
            if self.stopped.is_set():
                return
            yield event
        if self.block:
            self.stopped.wait(timeout=30)

    def stop(self) -> None:
        self.stopped.set()


class FakeProcess:
    """Finished remote process with canned output."""

    def __init__(self, output: str = "", returncode: int = 0) -> None:
        self.stdout = io.StringIO(output)
        self.returncode = returncode

    def wait(self) -> int:
        return self.returncode


class FakeClusterClient:
    """
    In-memory ClusterClient.

    Components live in ``components``; patches are merged into them.
    Commands succeed with no output unless ``exec_results`` maps their argv
    to an (exit code, output) pair.
    """

    def __init__(self, namespace: str = "test") -> None:
        self.namespace = namespace
        self.components: dict[str, Component] = {}
        self.capabilities: list[Capability] = []
        self.watch_events: dict[str, list[WatchEvent]] = {}
        self.watch_blocks = False
        self.exec_results: dict[tuple[str, ...], tuple[int, str]] = {}
        self.upload_error: ClusterError | None = None
        self.on_apply: Callable[[Path], None] | None = None
        self.pod_logs: dict[str, tuple[int, str]] = {}

        self.applied: list[Path] = []
        self.patches: list[tuple[str, dict[str, Any]]] = []
        self.exec_calls: list[tuple[str, list[str]]] = []
        self.uploads: list[tuple[Path, str, str]] = []
        self.watches: list[tuple[str, float, FakeWatch]] = []
        self.log_calls: list[tuple[str, bool]] = []

    def get_component(self, name: str) -> Component:
        if name not in self.components:
            raise ComponentNotFoundError(name, self.namespace)
        return self.components[name].model_copy(deep=True)

    def apply(self, path: Path) -> None:
        self.applied.append(Path(path))
        if self.on_apply is not None:
            self.on_apply(Path(path))

    def patch_component(self, name: str, patch: dict[str, Any]) -> Component:
        current = self.get_component(name)
        self.patches.append((name, patch))
        merged = merge_layer(current.model_dump(mode="json", by_alias=True), patch)
        self.components[name] = Component.model_validate(merged)
        return self.get_component(name)

    def watch_component(self, name: str, timeout_seconds: float) -> FakeWatch:
        watch = FakeWatch(self.watch_events.get(name, []), block=self.watch_blocks)
        self.watches.append((name, timeout_seconds, watch))
        return watch

    def exec(self, pod: str, argv: list[str], stdin: Any = None) -> FakeProcess:
        self.exec_calls.append((pod, list(argv)))
        returncode, output = self.exec_results.get(tuple(argv), (0, ""))
        return FakeProcess(output, returncode)

    def copy_to_pod(self, source: Path, pod: str, destination: str) -> None:
        if self.upload_error is not None:
            raise self.upload_error
        self.uploads.append((Path(source), pod, destination))

    def logs(self, pod: str, follow: bool = False) -> FakeProcess:
        self.log_calls.append((pod, follow))
        returncode, output = self.pod_logs.get(pod, (0, ""))
        return FakeProcess(output, returncode)

    def list_capabilities(self) -> list[Capability]:
        return list(self.capabilities)

    @property
    def executed(self) -> list[list[str]]:
        """Argv of every command run, in order."""
        return [argv for _, argv in self.exec_calls]


def make_component(
    name: str = "backend",
    phase: ComponentPhase | str | None = ComponentPhase.READY,
    pod: str = "backend-pod",
    revision: str = "",
    message: str = "",
    requires: list[dict[str, Any]] | None = None,
) -> Component:
    """Build a component the way the cluster would report it."""
    phase_value = phase.value if isinstance(phase, ComponentPhase) else phase
    return Component.from_resource(
        {
            "metadata": {"name": name, "namespace": "test"},
            "spec": {
                "runtime": "spring-boot",
                "revision": revision,
                "capabilities": {"requires": requires or []},
            },
            "status": {"phase": phase_value or "", "message": message, "podName": pod},
        }
    )


def event(
    event_type: WatchEventType = WatchEventType.MODIFIED,
    component: Component | None = None,
    message: str = "",
) -> WatchEvent:
    return WatchEvent(type=event_type, component=component, message=message)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def fake_client():
    """Provide an empty in-memory cluster."""
    return FakeClusterClient()


@pytest.fixture
def push_settings():
    """Provide default push settings."""
    return PushConfig()


DESCRIPTOR = """\
apiVersion: halkyon.io/v1beta1
kind: Component
metadata:
  name: backend
spec:
  runtime: spring-boot
  version: 2.1.6.RELEASE
  exposeService: true
"""


@pytest.fixture
def component_dir(tmp_path):
    """
    Provide a component directory named ``backend``.

    Creates:
    - halkyon.yml descriptor
    - pom.xml and src/main/java/App.java
    - target/backend-1.0.jar (excluded from source archives)
    """
    root = tmp_path / "backend"
    (root / "src" / "main" / "java").mkdir(parents=True)
    (root / "src" / "main" / "java" / "App.java").write_text("class App {}\n")
    (root / "pom.xml").write_text("<project/>\n")
    (root / "halkyon.yml").write_text(DESCRIPTOR)
    (root / "target").mkdir()
    (root / "target" / "backend-1.0.jar").write_bytes(b"PK\x03\x04jar")
    return root


# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """
    Provide a clean environment without HAL_* env vars.

    Removes all HAL_* environment variables to ensure tests
    don't inherit configuration from the system.
    """
    for key in list(os.environ.keys()):
        if key.startswith("HAL_"):
            monkeypatch.delenv(key, raising=False)

    monkeypatch.setenv("XDG_CONFIG_HOME", "/tmp/test-config")

    return monkeypatch


@pytest.fixture
def isolated_config(clean_env, tmp_path, monkeypatch):
    """
    Provide completely isolated config environment.

    Sets XDG_CONFIG_HOME and the working directory to temporary locations
    to prevent tests from loading system or user configs.
    """
    from halsync.core.config import clear_cache

    config_home = tmp_path / "config"
    config_home.mkdir()
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    clear_cache()
    yield config_home
    clear_cache()
