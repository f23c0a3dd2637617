"""
Cluster resource models.

Pydantic models for the custom resources halsync reads and patches:
components, capabilities and the watch events describing their changes.
Wire names are camelCase; models accept either the wire name or the
Python field name.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComponentPhase(str, Enum):
    """Lifecycle phase reported by the remote reconciler."""

    UNKNOWN = "Unknown"
    PENDING = "Pending"
    READY = "Ready"
    RUNNING = "Running"
    FAILED = "Failed"


TERMINAL_FAILURE_PHASES = frozenset({ComponentPhase.FAILED, ComponentPhase.UNKNOWN})
SERVING_PHASES = frozenset({ComponentPhase.READY, ComponentPhase.RUNNING})


class DeploymentMode(str, Enum):
    """How the component's container runs the pushed payload."""

    DEV = "dev"
    BUILD = "build"


class WatchEventType(str, Enum):
    """Type of a change notification."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NameValuePair(_WireModel):
    """A named parameter value."""

    name: str
    value: str = ""


class CapabilitySpec(_WireModel):
    """
    Structural description of a capability.

    Used both for what a capability provides and for what a component
    requires.
    """

    category: str
    type: str
    version: str = ""
    parameters: list[NameValuePair] = Field(default_factory=list)

    @field_validator("parameters", mode="before")
    @classmethod
    def _null_parameters(cls, v: Any) -> Any:
        return v or []

    def matches(self, required: "CapabilitySpec") -> bool:
        """
        Check whether this (provided) spec satisfies a required spec.

        Category, type and version must be equal and every required
        parameter must be present here with an equal value. Extra
        parameters on this side are ignored.
        """
        if (self.category, self.type, self.version) != (
            required.category,
            required.type,
            required.version,
        ):
            return False
        provided = {p.name: p.value for p in self.parameters}
        return all(
            p.name in provided and provided[p.name] == p.value for p in required.parameters
        )

    def display(self) -> str:
        """Short category/type/version rendering."""
        return f"{self.category}/{self.type}/{self.version}"


class Capability(_WireModel):
    """A provisioned dependency registered in the cluster."""

    name: str
    spec: CapabilitySpec

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "Capability":
        """Build from a raw Kubernetes object."""
        metadata = resource.get("metadata") or {}
        return cls(name=metadata.get("name", ""), spec=resource.get("spec") or {})

    def display(self) -> str:
        return f"{self.name} ({self.spec.display()})"


class RequiredCapability(_WireModel):
    """A capability a component declares it needs."""

    name: str
    spec: CapabilitySpec
    bound_to: str | None = Field(default=None, alias="boundTo")
    auto_bindable: bool = Field(default=False, alias="autoBindable")

    @property
    def is_bound(self) -> bool:
        return bool(self.bound_to)


class CapabilitiesConfig(_WireModel):
    requires: list[RequiredCapability] = Field(default_factory=list)
    provides: list[dict[str, Any]] = Field(default_factory=list)


class ComponentSpec(_WireModel):
    """Desired state of a component."""

    runtime: str = ""
    version: str = ""
    expose_service: bool = Field(default=False, alias="exposeService")
    port: int | None = None
    revision: str = ""
    deployment_mode: DeploymentMode | None = Field(default=None, alias="deploymentMode")
    capabilities: CapabilitiesConfig = Field(default_factory=CapabilitiesConfig)

    @field_validator("deployment_mode", mode="before")
    @classmethod
    def _empty_mode(cls, v: Any) -> Any:
        return v or None


class ComponentStatus(_WireModel):
    """Observed state of a component, written only by the reconciler."""

    phase: ComponentPhase | None = None
    message: str = ""
    pod_name: str = Field(default="", alias="podName")

    @field_validator("phase", mode="before")
    @classmethod
    def _empty_phase(cls, v: Any) -> Any:
        # The reconciler has not reported yet
        return v or None


class Component(_WireModel):
    """A deployable unit managed by the cluster operator."""

    name: str
    namespace: str = ""
    spec: ComponentSpec = Field(default_factory=ComponentSpec)
    status: ComponentStatus = Field(default_factory=ComponentStatus)

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> "Component":
        """Build from a raw Kubernetes object."""
        metadata = resource.get("metadata") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            spec=resource.get("spec") or {},
            status=resource.get("status") or {},
        )

    @property
    def phase(self) -> ComponentPhase | None:
        return self.status.phase

    @property
    def pod_name(self) -> str:
        return self.status.pod_name


class WatchEvent(BaseModel):
    """One change notification for a watched component."""

    type: WatchEventType
    component: Component | None = None
    message: str = ""

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "WatchEvent":
        """
        Build from a ``{"type": ..., "object": ...}`` watch document.

        Error events carry a ``Status`` object instead of the resource.
        """
        event_type = WatchEventType(raw.get("type", "ERROR"))
        obj = raw.get("object") or {}
        if event_type == WatchEventType.ERROR or obj.get("kind") == "Status":
            return cls(
                type=WatchEventType.ERROR,
                message=obj.get("message") or str(obj),
            )
        return cls(type=event_type, component=Component.from_resource(obj))
