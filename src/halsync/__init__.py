"""
halsync - inner-loop development against a cluster.

Pushes local component directories into running containers, rebuilds and
restarts them, and binds their required capabilities.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from halsync.core.cluster.models import Component, ComponentPhase, DeploymentMode
from halsync.core.config.models import HalConfig

__all__ = ["HalConfig", "Component", "ComponentPhase", "DeploymentMode", "__version__"]
