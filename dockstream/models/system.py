"""Models for the daemon's misc and inspect endpoints.

Only the fields the streaming readers and their callers rely on are typed;
everything else the daemon returns is kept as extra attributes.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Version(_WireModel):
    api_version: str = Field(default="", alias="ApiVersion")
    git_commit: str = Field(default="", alias="GitCommit")
    go_version: str = Field(default="", alias="GoVersion")
    version: str = Field(default="", alias="Version")
    os: str = Field(default="", alias="Os")
    arch: str = Field(default="", alias="Arch")
    kernel_version: str = Field(default="", alias="KernelVersion")


class DockerInfo(_WireModel):
    id: str = Field(default="", alias="ID")
    name: str = Field(default="", alias="Name")
    containers: int = Field(default=0, alias="Containers")
    images: int = Field(default=0, alias="Images")
    driver: str = Field(default="", alias="Driver")
    kernel_version: str = Field(default="", alias="KernelVersion")
    operating_system: str = Field(default="", alias="OperatingSystem")
    ncpu: int = Field(default=0, alias="NCPU")
    mem_total: int = Field(default=0, alias="MemTotal")
    n_events_listener: int = Field(default=0, alias="NEventsListener")
    labels: Optional[List[str]] = Field(default=None, alias="Labels")


class ContainerConfigSummary(_WireModel):
    """Subset of a container's creation config."""

    image: str = Field(default="", alias="Image")
    tty: bool = Field(default=False, alias="Tty")
    labels: Optional[Dict[str, str]] = Field(default=None, alias="Labels")


class ContainerState(_WireModel):
    running: bool = Field(default=False, alias="Running")
    paused: bool = Field(default=False, alias="Paused")
    exit_code: int = Field(default=0, alias="ExitCode")
    pid: int = Field(default=0, alias="Pid")


class ContainerDetail(_WireModel):
    """Result of inspecting one container."""

    id: str = Field(default="", alias="Id")
    name: str = Field(default="", alias="Name")
    image: str = Field(default="", alias="Image")
    config: ContainerConfigSummary = Field(
        default_factory=ContainerConfigSummary, alias="Config"
    )
    state: ContainerState = Field(default_factory=ContainerState, alias="State")

    @property
    def tty(self) -> bool:
        """Whether output logs are raw (tty) rather than framed."""
        return self.config.tty
