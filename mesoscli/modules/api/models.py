"""
mesoscli shared data models.

Records fetched from the cluster (tasks, agents, executors) are immutable
once parsed. The task-info models mirror the JSON form of the Mesos
TaskInfo protobuf and are the mutable build target for new tasks.
"""

import json
import time
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Enums


class TaskState(str, Enum):
    """Lifecycle state of a Mesos task."""

    STAGING = "TASK_STAGING"
    STARTING = "TASK_STARTING"
    RUNNING = "TASK_RUNNING"
    KILLING = "TASK_KILLING"
    FINISHED = "TASK_FINISHED"
    FAILED = "TASK_FAILED"
    KILLED = "TASK_KILLED"
    ERROR = "TASK_ERROR"
    LOST = "TASK_LOST"
    DROPPED = "TASK_DROPPED"
    UNREACHABLE = "TASK_UNREACHABLE"
    GONE = "TASK_GONE"
    GONE_BY_OPERATOR = "TASK_GONE_BY_OPERATOR"
    UNKNOWN = "TASK_UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {
        TaskState.FINISHED,
        TaskState.FAILED,
        TaskState.KILLED,
        TaskState.ERROR,
        TaskState.LOST,
        TaskState.DROPPED,
        TaskState.GONE,
        TaskState.GONE_BY_OPERATOR,
    }
)


class ContainerType(str, Enum):
    """Containerizer used to launch a task."""

    MESOS = "MESOS"
    DOCKER = "DOCKER"


class NetworkMode(str, Enum):
    """Docker network mode."""

    HOST = "HOST"
    BRIDGE = "BRIDGE"
    NONE = "NONE"
    USER = "USER"


class VolumeMode(str, Enum):
    RW = "RW"
    RO = "RO"


class ResourceType(str, Enum):
    SCALAR = "SCALAR"
    RANGES = "RANGES"


# Cluster Records (API Output)


class ResourceSummary(BaseModel):
    """Resource totals as reported by the master endpoints."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    cpus: float = 0.0
    mem: float = 0.0
    gpus: float = 0.0
    disk: float = 0.0


class TaskRecord(BaseModel):
    """A task as listed by the master."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    name: str = ""
    framework_id: str = ""
    agent_id: str = Field("", alias="slave_id")
    state: TaskState = TaskState.UNKNOWN
    resources: ResourceSummary = Field(default_factory=ResourceSummary)


class TaskPage(BaseModel):
    """One page of the master task listing."""

    tasks: List[TaskRecord] = Field(default_factory=list)
    next_token: Optional[int] = Field(None, description="Offset of the next page, None when exhausted")


class AgentRecord(BaseModel):
    """An agent registered with the master."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    hostname: str
    port: int = 5051
    version: str = ""
    registered_time: float = 0.0
    resources: ResourceSummary = Field(default_factory=ResourceSummary)
    used_resources: ResourceSummary = Field(default_factory=ResourceSummary)

    @property
    def fqdn(self) -> str:
        return f"{self.hostname}:{self.port}"

    @property
    def uptime(self) -> timedelta:
        """Time since the agent registered, truncated to whole seconds."""
        if not self.registered_time:
            return timedelta(0)
        return timedelta(seconds=int(max(time.time() - self.registered_time, 0)))


class ExecutorRecord(BaseModel):
    """An executor running (or having run) on an agent."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    framework_id: str = ""
    directory: str = ""
    tasks: List[str] = Field(default_factory=list, description="IDs of tasks run by this executor")

    def runs(self, task_id: str) -> bool:
        """Check whether this executor belongs to the task."""
        return self.id == task_id or task_id in self.tasks


class AgentState(BaseModel):
    """The subset of an agent's /state document used for sandbox lookup."""

    id: str = ""
    hostname: str = ""
    executors: List[ExecutorRecord] = Field(default_factory=list)

    @classmethod
    def from_state(cls, data: Dict[str, Any]) -> "AgentState":
        """
        Flatten the executors of active and completed frameworks.

        Args:
            data: Decoded agent /state JSON

        Returns:
            AgentState with one ExecutorRecord per executor
        """
        executors = []
        frameworks = data.get("frameworks", []) + data.get("completed_frameworks", [])
        for framework in frameworks:
            for executor in framework.get("executors", []) + framework.get("completed_executors", []):
                task_ids = [
                    task["id"]
                    for key in ("tasks", "queued_tasks", "completed_tasks")
                    for task in executor.get(key, [])
                    if "id" in task
                ]
                executors.append(
                    ExecutorRecord(
                        id=executor.get("id", ""),
                        framework_id=framework.get("id", ""),
                        directory=executor.get("directory", ""),
                        tasks=task_ids,
                    )
                )
        return cls(id=data.get("id", ""), hostname=data.get("hostname", ""), executors=executors)


class TaskStatus(BaseModel):
    """Status update delivered to the scheduler for a launched task."""

    model_config = ConfigDict(extra="ignore")

    task_id: str
    state: TaskState
    message: Optional[str] = None
    agent_id: Optional[str] = None
    uuid: Optional[str] = None

    @classmethod
    def from_update(cls, status: Dict[str, Any]) -> "TaskStatus":
        return cls(
            task_id=status.get("task_id", {}).get("value", ""),
            state=status.get("state", TaskState.UNKNOWN.value),
            message=status.get("message"),
            agent_id=(status.get("agent_id") or {}).get("value"),
            uuid=status.get("uuid"),
        )


# Task Specification (wire schema of a TaskInfo)


class Value(BaseModel):
    value: str


class Scalar(BaseModel):
    value: float


class Range(BaseModel):
    begin: int
    end: int


class Ranges(BaseModel):
    range: List[Range] = Field(default_factory=list)


class Resource(BaseModel):
    """A scalar or ranges resource requested by a task."""

    name: str
    type: ResourceType = ResourceType.SCALAR
    role: Optional[str] = "*"
    scalar: Optional[Scalar] = None
    ranges: Optional[Ranges] = None

    @classmethod
    def scalar_of(cls, name: str, value: float) -> "Resource":
        return cls(name=name, type=ResourceType.SCALAR, scalar=Scalar(value=value))

    @classmethod
    def port(cls, port: int) -> "Resource":
        """A ports resource covering exactly one host port."""
        return cls(
            name="ports",
            type=ResourceType.RANGES,
            ranges=Ranges(range=[Range(begin=port, end=port)]),
        )


class EnvironmentVariable(BaseModel):
    name: str
    value: str = ""


class Environment(BaseModel):
    variables: List[EnvironmentVariable] = Field(default_factory=list)


class CommandInfo(BaseModel):
    """Command to run; either a shell string or an argv vector."""

    shell: Optional[bool] = None
    value: Optional[str] = None
    arguments: List[str] = Field(default_factory=list)
    user: Optional[str] = None
    environment: Environment = Field(default_factory=Environment)


class Parameter(BaseModel):
    key: str
    value: str = ""


class PortMapping(BaseModel):
    host_port: int
    container_port: int
    protocol: Optional[str] = None


class DockerInfo(BaseModel):
    image: str = ""
    network: NetworkMode = NetworkMode.HOST
    port_mappings: List[PortMapping] = Field(default_factory=list)
    privileged: bool = False
    parameters: List[Parameter] = Field(default_factory=list)
    force_pull_image: bool = False


class MesosInfo(BaseModel):
    """Mesos-native container; image support is not exposed by the client."""

    model_config = ConfigDict(extra="allow")


class Volume(BaseModel):
    container_path: str
    host_path: Optional[str] = None
    mode: VolumeMode = VolumeMode.RW


class ContainerInfo(BaseModel):
    type: ContainerType = ContainerType.MESOS
    volumes: List[Volume] = Field(default_factory=list)
    mesos: Optional[MesosInfo] = None
    docker: Optional[DockerInfo] = None


class Label(BaseModel):
    key: str
    value: Optional[str] = None


class Labels(BaseModel):
    labels: List[Label] = Field(default_factory=list)


class TaskInfo(BaseModel):
    """Specification of a task to launch."""

    name: str = ""
    task_id: Optional[Value] = None
    agent_id: Optional[Value] = None
    resources: List[Resource] = Field(default_factory=list)
    command: CommandInfo = Field(default_factory=CommandInfo)
    container: Optional[ContainerInfo] = None
    labels: Labels = Field(default_factory=Labels)

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, v):
        """Ensure scalar resources carry a value and ranges carry ranges."""
        for resource in v:
            if resource.type == ResourceType.SCALAR and resource.scalar is None:
                raise ValueError(f"Scalar resource {resource.name} has no value")
            if resource.type == ResourceType.RANGES and resource.ranges is None:
                raise ValueError(f"Ranges resource {resource.name} has no ranges")
        return v

    def scalar(self, name: str) -> float:
        """Sum of the named scalar resource."""
        return sum(r.scalar.value for r in self.resources if r.name == name and r.scalar is not None)

    def to_wire(self) -> Dict[str, Any]:
        """JSON form accepted by the scheduler API."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_file(cls, path: str) -> "TaskInfo":
        """Parse a TaskInfo JSON file."""
        return cls.model_validate(json.loads(Path(path).read_text()))


__all__ = [
    # Enums
    "TaskState",
    "TERMINAL_STATES",
    "ContainerType",
    "NetworkMode",
    "VolumeMode",
    "ResourceType",
    # Cluster records
    "ResourceSummary",
    "TaskRecord",
    "TaskPage",
    "AgentRecord",
    "ExecutorRecord",
    "AgentState",
    "TaskStatus",
    # Task specification
    "Value",
    "Scalar",
    "Range",
    "Ranges",
    "Resource",
    "EnvironmentVariable",
    "Environment",
    "CommandInfo",
    "Parameter",
    "PortMapping",
    "DockerInfo",
    "MesosInfo",
    "Volume",
    "ContainerInfo",
    "Label",
    "Labels",
    "TaskInfo",
]
