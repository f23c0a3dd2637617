"""
Tests for readiness watching.
"""

import time

import pytest
from conftest import FakeWatch, event, make_component

from halsync.core.cluster.models import ComponentPhase, WatchEventType
from halsync.core.errors import TerminalPhaseError, WatchTimeoutError, WatchTransportError
from halsync.core.push.watcher import ReadinessWatcher, WatchState


class TestWaitFor:
    """Test waiting for a component phase."""

    def test_already_ready(self, fake_client):
        """The replayed current state satisfies the wait immediately."""
        fake_client.watch_events["backend"] = [
            event(WatchEventType.ADDED, make_component(phase=ComponentPhase.READY)),
        ]
        watcher = ReadinessWatcher(fake_client, timeout=5)

        component = watcher.wait_for("backend")

        assert component.phase == ComponentPhase.READY
        assert component.pod_name == "backend-pod"
        assert watcher.state == WatchState.READY

    def test_pending_then_ready(self, fake_client):
        fake_client.watch_events["backend"] = [
            event(WatchEventType.ADDED, make_component(phase=None, pod="")),
            event(WatchEventType.MODIFIED, make_component(phase=ComponentPhase.PENDING, pod="")),
            event(WatchEventType.MODIFIED, make_component(phase=ComponentPhase.READY)),
        ]

        component = ReadinessWatcher(fake_client, timeout=5).wait_for("backend")

        assert component.phase == ComponentPhase.READY

    def test_other_desired_phase(self, fake_client):
        """Ready isn't accepted when waiting for Running."""
        fake_client.watch_events["backend"] = [
            event(component=make_component(phase=ComponentPhase.READY)),
            event(component=make_component(phase=ComponentPhase.RUNNING)),
        ]

        component = ReadinessWatcher(fake_client, timeout=5).wait_for(
            "backend", ComponentPhase.RUNNING
        )

        assert component.phase == ComponentPhase.RUNNING

    def test_deleted_events_are_ignored(self, fake_client):
        fake_client.watch_events["backend"] = [
            event(WatchEventType.DELETED, make_component(phase=ComponentPhase.FAILED)),
            event(component=make_component(phase=ComponentPhase.READY)),
        ]

        component = ReadinessWatcher(fake_client, timeout=5).wait_for("backend")

        assert component.phase == ComponentPhase.READY

    @pytest.mark.parametrize("phase", [ComponentPhase.FAILED, ComponentPhase.UNKNOWN])
    def test_failure_phase(self, fake_client, phase):
        """Failed and Unknown end the wait with the status message."""
        fake_client.watch_events["backend"] = [
            event(component=make_component(phase=ComponentPhase.PENDING)),
            event(component=make_component(phase=phase, message="image pull backoff")),
        ]
        watcher = ReadinessWatcher(fake_client, timeout=5)

        with pytest.raises(TerminalPhaseError) as exc_info:
            watcher.wait_for("backend")

        error = exc_info.value
        assert error.name == "backend"
        assert error.phase == phase.value
        assert error.status_message == "image pull backoff"
        assert str(error) == f"Status of component 'backend' is {phase.value}: image pull backoff"
        assert watcher.state == WatchState.FAILED

    def test_error_event(self, fake_client):
        fake_client.watch_events["backend"] = [
            event(WatchEventType.ERROR, message="too old resource version"),
        ]

        with pytest.raises(WatchTransportError) as exc_info:
            ReadinessWatcher(fake_client, timeout=5).wait_for("backend")

        assert exc_info.value.server_message == "too old resource version"

    def test_stream_closed_without_outcome(self, fake_client):
        fake_client.watch_events["backend"] = [
            event(component=make_component(phase=ComponentPhase.PENDING)),
        ]

        with pytest.raises(WatchTransportError):
            ReadinessWatcher(fake_client, timeout=5).wait_for("backend")

    def test_subscription_raising(self, fake_client):
        """An exception inside the stream becomes a transport error."""

        class BrokenWatch(FakeWatch):
            def __iter__(self):
                raise ConnectionResetError("connection reset by peer")

        fake_client.watch_component = lambda name, timeout: BrokenWatch([])

        with pytest.raises(WatchTransportError) as exc_info:
            ReadinessWatcher(fake_client, timeout=5).wait_for("backend")

        assert "connection reset" in str(exc_info.value)

    def test_subscription_stopped(self, fake_client):
        fake_client.watch_events["backend"] = [
            event(component=make_component(phase=ComponentPhase.READY)),
        ]

        ReadinessWatcher(fake_client, timeout=5).wait_for("backend")

        _, _, watch = fake_client.watches[0]
        assert watch.stopped.is_set()


class TestTimeout:
    """Test the watch deadline."""

    def test_times_out_after_deadline(self, fake_client):
        """A silent stream ends with WatchTimeoutError after roughly the deadline."""
        fake_client.watch_events["backend"] = [
            event(component=make_component(phase=ComponentPhase.PENDING)),
        ]
        fake_client.watch_blocks = True
        watcher = ReadinessWatcher(fake_client, timeout=0.3)

        started = time.monotonic()
        with pytest.raises(WatchTimeoutError) as exc_info:
            watcher.wait_for("backend")
        elapsed = time.monotonic() - started

        assert 0.25 <= elapsed < 3
        assert exc_info.value.name == "backend"
        assert "backend" in str(exc_info.value)
        assert "Ready" in str(exc_info.value)
        assert watcher.state == WatchState.TIMED_OUT

        _, _, watch = fake_client.watches[0]
        assert watch.stopped.is_set()

    def test_per_call_timeout(self, fake_client):
        """The call's timeout overrides the watcher default and reaches the server."""
        fake_client.watch_blocks = True
        watcher = ReadinessWatcher(fake_client, timeout=60)

        with pytest.raises(WatchTimeoutError):
            watcher.wait_for("backend", timeout=0.1)

        _, timeout_seconds, _ = fake_client.watches[0]
        assert timeout_seconds == 0.1
