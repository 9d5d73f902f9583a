"""Event models for the daemon's event stream."""

# Standard library imports
from typing import Dict, Optional

# Third-party imports
from pydantic import BaseModel, ConfigDict, Field

# Container actions
EVENT_CREATE = "create"
EVENT_DESTROY = "destroy"
EVENT_DIE = "die"
EVENT_EXEC_CREATE = "exec_create"
EVENT_EXEC_START = "exec_start"
EVENT_EXPORT = "export"
EVENT_KILL = "kill"
EVENT_OOM = "oom"
EVENT_PAUSE = "pause"
EVENT_RESTART = "restart"
EVENT_START = "start"
EVENT_STOP = "stop"
EVENT_UNPAUSE = "unpause"
EVENT_RENAME = "rename"

# Image actions
EVENT_IMAGE_UNTAG = "untag"
EVENT_IMAGE_DELETE = "delete"

# Event types
CONTAINER_EVENT_TYPE = "container"
DAEMON_EVENT_TYPE = "daemon"
IMAGE_EVENT_TYPE = "image"
NETWORK_EVENT_TYPE = "network"
PLUGIN_EVENT_TYPE = "plugin"
VOLUME_EVENT_TYPE = "volume"


class Actor(BaseModel):
    """Something that generates events: a container, network, volume...

    For containers the attributes are its labels; other actors derive them
    from their own properties.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", alias="ID")
    attributes: Dict[str, str] = Field(default_factory=dict, alias="Attributes")


class SwarmNode(BaseModel):
    """Node block attached to events relayed by a swarm manager."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", alias="ID")
    ip: str = Field(default="", alias="IP")
    addr: str = Field(default="", alias="Addr")
    name: str = Field(default="", alias="Name")


class Event(BaseModel):
    """One decoded unit of the events stream.

    ``status``, ``id`` and ``from_`` are the legacy fields only container
    events carry; ``type``/``action``/``actor`` is the newer shape.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status: str = Field(default="")
    id: str = Field(default="")
    from_: str = Field(default="", alias="from")

    type: str = Field(default="", alias="Type")
    action: str = Field(default="", alias="Action")
    actor: Actor = Field(default_factory=Actor, alias="Actor")

    time: int = Field(default=0)
    time_nano: int = Field(default=0, alias="timeNano")

    node: Optional[SwarmNode] = Field(default=None)

    def has_signal(self) -> bool:
        """Whether the event carries a status or an action."""
        return bool(self.status or self.action)
