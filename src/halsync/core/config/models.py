"""
Configuration data models for halsync.

These models define the structure of .halsync.json and
~/.config/halsync/config.json files, with validation and type safety via
Pydantic.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClusterConfig(BaseModel):
    """
    How to reach the cluster.

    halsync drives the kubectl binary; these settings select the binary,
    the kubeconfig context, the namespace and the resource names used for
    halkyon custom resources.
    """
    namespace: Optional[str] = Field(
        default=None,
        description="Namespace to operate in (defaults to the context's namespace)"
    )
    kubectl: str = Field(
        default="kubectl",
        description="kubectl binary to invoke"
    )
    context: Optional[str] = Field(
        default=None,
        description="kubeconfig context to use"
    )
    component_resource: str = Field(
        default="components.halkyon.io",
        description="Resource name of component custom resources"
    )
    capability_resource: str = Field(
        default="capabilities.halkyon.io",
        description="Resource name of capability custom resources"
    )
    transfer: Literal["exec", "cp"] = Field(
        default="exec",
        description="Upload files by streaming a tar through exec, or via 'kubectl cp'"
    )


class WatchConfig(BaseModel):
    """Readiness watch settings."""
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="How long to wait for a component to reach the desired phase"
    )


class PushConfig(BaseModel):
    """
    Push pipeline settings.

    Local paths are relative to the component directory; remote paths are
    absolute paths inside the component's container.
    """
    excluded_names: list[str] = Field(
        default_factory=lambda: ["target", ".git"],
        description="Top-level names left out of the source archive"
    )
    exclude_hidden: bool = Field(
        default=True,
        description="Leave top-level dot files and directories out of the source archive"
    )
    exclude_globs: list[str] = Field(
        default_factory=list,
        description="Glob patterns excluded from the source archive at any depth"
    )
    descriptor: str = Field(
        default="halkyon.yml",
        description="Descriptor applied when the component doesn't exist yet"
    )
    artifact_dir: str = Field(
        default="target",
        description="Directory searched for the packaged artifact in binary mode"
    )
    artifact_suffix: str = Field(
        default=".jar",
        description="Suffix identifying the packaged artifact"
    )
    deployment_path: str = Field(
        default="/deployments/app.jar",
        description="Where the packaged artifact is deployed in the container"
    )
    marker_path: Optional[str] = Field(
        default=None,
        description="File whose absence forces a push (defaults to deployment_path)"
    )
    source_archive_path: str = Field(
        default="/tmp/src.tar",
        description="Where the source archive is uploaded in the container"
    )
    extracted_source_path: str = Field(
        default="/usr/src",
        description="Directory the source archive is extracted into"
    )
    supervisor: str = Field(
        default="/var/lib/supervisord/bin/supervisord",
        description="In-container supervisor binary"
    )
    run_program: str = Field(
        default="run",
        description="Supervisor program running the application"
    )
    build_program: str = Field(
        default="build",
        description="Supervisor program building the application"
    )

    @property
    def effective_marker_path(self) -> str:
        return self.marker_path or self.deployment_path


class HalConfig(BaseModel):
    """
    Top-level halsync configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = HalConfig(cluster=ClusterConfig(namespace="dev"))
        >>> config.watch.timeout_seconds
        120.0
    """
    cluster: ClusterConfig = Field(
        default_factory=ClusterConfig,
        description="Cluster access"
    )
    watch: WatchConfig = Field(
        default_factory=WatchConfig,
        description="Readiness watch"
    )
    push: PushConfig = Field(
        default_factory=PushConfig,
        description="Push pipeline"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,  # Validate on field assignment
    )

    @field_validator('cluster', mode='before')
    @classmethod
    def validate_cluster(cls, v: object) -> object:
        """Accept a bare namespace string as the cluster section."""
        if isinstance(v, str):
            return {"namespace": v}
        return v
