"""
Cluster access.

Models of the halkyon custom resources, the ClusterClient protocol the push
pipeline is written against, and the kubectl-backed implementation.

Example usage:
    from halsync.core.cluster import KubectlClient
    from halsync.core.config import load_config

    client = KubectlClient(load_config().cluster)
    component = client.get_component("backend")
    print(component.status.phase)
"""

from .client import ClusterClient, RemoteProcess, WatchSubscription
from .kubectl import KubectlClient
from .models import (
    SERVING_PHASES,
    TERMINAL_FAILURE_PHASES,
    Capability,
    CapabilitySpec,
    Component,
    ComponentPhase,
    ComponentSpec,
    ComponentStatus,
    DeploymentMode,
    NameValuePair,
    RequiredCapability,
    WatchEvent,
    WatchEventType,
)

__all__ = [
    # Models
    "Capability",
    "CapabilitySpec",
    "Component",
    "ComponentPhase",
    "ComponentSpec",
    "ComponentStatus",
    "DeploymentMode",
    "NameValuePair",
    "RequiredCapability",
    "WatchEvent",
    "WatchEventType",
    "SERVING_PHASES",
    "TERMINAL_FAILURE_PHASES",
    # Client protocol and implementation
    "ClusterClient",
    "RemoteProcess",
    "WatchSubscription",
    "KubectlClient",
]
