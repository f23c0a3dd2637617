"""
Data models for the push pipeline.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PushMode(str, Enum):
    """What gets pushed to the component's container."""

    SOURCE = "source"
    BINARY = "binary"


class PushResult(BaseModel):
    """
    Result of a push.

    Example:
        >>> result = orchestrator.push(Path("backend"))
        >>> print(result.summary())
        Pushed 'backend' (source, revision 3f2a9c1e)
    """

    component: str = Field(description="Name of the pushed component")

    mode: PushMode = Field(description="Whether sources or a packaged artifact were pushed")

    pushed: bool = Field(
        default=False,
        description="Whether anything was uploaded",
    )

    created: bool = Field(
        default=False,
        description="Whether the component had to be created first",
    )

    revision: str | None = Field(
        default=None,
        description="Revision of the payload",
    )

    pod_name: str | None = Field(
        default=None,
        description="Pod the payload was pushed into",
    )

    message: str = Field(
        default="",
        description="Human-readable result message",
    )

    # Timing
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def duration_seconds(self) -> float | None:
        """Calculate push duration in seconds."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if not self.pushed:
            return self.message

        parts = [f"Pushed '{self.component}' ({self.mode.value}"]
        if self.revision:
            parts.append(f", revision {self.revision[:8]}")
        parts.append(")")

        duration = self.duration_seconds
        if duration is not None:
            parts.append(f" in {duration:.1f}s")
        return "".join(parts)
