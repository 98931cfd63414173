"""
API Module - Black Box Interface

Purpose: Shared records exchanged with the Mesos HTTP APIs
Interface: Task, agent and executor records; TaskInfo specification models
Hidden: Wire field names, aliases and flattening of nested documents

Every other module speaks in these types rather than raw JSON.
"""

from .models import (
    TERMINAL_STATES,
    AgentRecord,
    AgentState,
    CommandInfo,
    ContainerInfo,
    ContainerType,
    DockerInfo,
    Environment,
    EnvironmentVariable,
    ExecutorRecord,
    Label,
    Labels,
    MesosInfo,
    NetworkMode,
    Parameter,
    PortMapping,
    Resource,
    ResourceSummary,
    ResourceType,
    TaskInfo,
    TaskPage,
    TaskRecord,
    TaskState,
    TaskStatus,
    Value,
    Volume,
    VolumeMode,
)

__all__ = [
    "TERMINAL_STATES",
    "AgentRecord",
    "AgentState",
    "CommandInfo",
    "ContainerInfo",
    "ContainerType",
    "DockerInfo",
    "Environment",
    "EnvironmentVariable",
    "ExecutorRecord",
    "Label",
    "Labels",
    "MesosInfo",
    "NetworkMode",
    "Parameter",
    "PortMapping",
    "Resource",
    "ResourceSummary",
    "ResourceType",
    "TaskInfo",
    "TaskPage",
    "TaskRecord",
    "TaskState",
    "TaskStatus",
    "Value",
    "Volume",
    "VolumeMode",
]
