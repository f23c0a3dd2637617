"""
Readiness watching.

Blocks until a component reaches a desired phase, fails, or a deadline
elapses. Events are consumed on a daemon thread that posts a single outcome
to a bounded queue; the caller waits on that queue with the deadline.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from enum import Enum
from typing import Union

from halsync.core.cluster.client import ClusterClient, WatchSubscription
from halsync.core.cluster.models import (
    TERMINAL_FAILURE_PHASES,
    Component,
    ComponentPhase,
    WatchEventType,
)
from halsync.core.errors import (
    TerminalPhaseError,
    WatchError,
    WatchTimeoutError,
    WatchTransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0

_Outcome = Union[Component, WatchError]


class WatchState(str, Enum):
    """Where a readiness watch ended up."""

    WATCHING = "watching"
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class ReadinessWatcher:
    """
    Waits for components to reach a phase.

    Example:
        >>> watcher = ReadinessWatcher(client, timeout=60)
        >>> component = watcher.wait_for("backend")
        >>> component.status.pod_name
        'backend-7d9f-abc12'
    """

    def __init__(self, client: ClusterClient, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._client = client
        self.timeout = timeout
        self.state = WatchState.WATCHING

    def wait_for(
        self,
        name: str,
        desired: ComponentPhase = ComponentPhase.READY,
        timeout: float | None = None,
    ) -> Component:
        """
        Block until the named component reaches ``desired``.

        The subscription replays the current state first, so a component
        already in the desired phase returns immediately.

        Args:
            name: Component to watch
            desired: Phase to wait for
            timeout: Deadline in seconds, defaults to the watcher's timeout

        Returns:
            The component as observed in the desired phase

        Raises:
            WatchTransportError: If the stream reports an error or drops
            TerminalPhaseError: If the component reaches Failed or Unknown
            WatchTimeoutError: If the deadline elapses first
        """
        deadline = self.timeout if timeout is None else timeout
        self.state = WatchState.WATCHING
        outcomes: queue.Queue[_Outcome] = queue.Queue(maxsize=1)

        subscription = self._client.watch_component(name, deadline)
        started = time.monotonic()
        try:
            consumer = threading.Thread(
                target=self._consume,
                args=(name, desired, subscription, outcomes),
                name=f"watch-{name}",
                daemon=True,
            )
            consumer.start()
            try:
                outcome = outcomes.get(timeout=deadline)
            except queue.Empty:
                self.state = WatchState.TIMED_OUT
                elapsed = time.monotonic() - started
                logger.info("Gave up waiting on %s after %.1fs", name, elapsed)
                raise WatchTimeoutError(name, elapsed, desired.value) from None
        finally:
            subscription.stop()

        if isinstance(outcome, WatchError):
            self.state = WatchState.FAILED
            raise outcome

        self.state = WatchState.READY
        logger.info("Component %s is %s", name, desired.value)
        return outcome

    def _consume(
        self,
        name: str,
        desired: ComponentPhase,
        subscription: WatchSubscription,
        outcomes: queue.Queue[_Outcome],
    ) -> None:
        try:
            outcome = self._first_outcome(name, desired, subscription)
        except Exception as e:
            outcome = WatchTransportError(name, str(e) or type(e).__name__)
        # The caller may already have given up; then nobody reads this
        try:
            outcomes.put_nowait(outcome)
        except queue.Full:
            logger.debug("Dropping late watch outcome for %s", name)

    def _first_outcome(
        self,
        name: str,
        desired: ComponentPhase,
        subscription: WatchSubscription,
    ) -> _Outcome:
        for event in subscription:
            if event.type == WatchEventType.ERROR:
                return WatchTransportError(name, event.message)
            if event.type == WatchEventType.DELETED or event.component is None:
                continue

            phase = event.component.phase
            logger.debug("Component %s phase: %s", name, phase.value if phase else "<none>")
            if phase == desired:
                return event.component
            if phase in TERMINAL_FAILURE_PHASES:
                return TerminalPhaseError(name, phase.value, event.component.status.message)

        return WatchTransportError(name, "watch stream closed before the component was ready")
