"""
Task specification builder.

Setters only record options; build() derives a TaskInfo from a base
specification by running BUILD_STEPS in order:

1. start from a copy of the base with a fresh task ID
2. replace everything with the task file, when given
3. command: a shell string wins over positional arguments
4. name, user and scalar resources
5. environment, labels, volumes and port resources
6. containerizer: docker when an image is set, mesos otherwise
7. reject specifications with nothing to run
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from pydantic import ValidationError as ModelValidationError

from mesoscli.errors import UsageError, ValidationError
from mesoscli.modules.api import (
    CommandInfo,
    ContainerInfo,
    ContainerType,
    DockerInfo,
    Environment,
    EnvironmentVariable,
    Label,
    Labels,
    MesosInfo,
    NetworkMode,
    Parameter,
    PortMapping,
    Resource,
    TaskInfo,
    Value,
    Volume,
    VolumeMode,
)

logger = logging.getLogger(__name__)

DEFAULT_CPUS = 0.1


def default_task_info() -> TaskInfo:
    """A minimal CPU-only task in a Mesos-native container."""
    return TaskInfo(
        task_id=Value(value=str(uuid.uuid4())),
        resources=[Resource.scalar_of("cpus", DEFAULT_CPUS)],
        command=CommandInfo(environment=Environment()),
        container=ContainerInfo(type=ContainerType.MESOS, mesos=MesosInfo()),
        labels=Labels(),
    )


# Flag parsers


def _split_pair(raw: str, what: str):
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise ValidationError(f"Invalid {what} {raw!r}, expected KEY=VALUE")
    return key, value


def parse_env(raw: str) -> EnvironmentVariable:
    name, value = _split_pair(raw, "environment variable")
    return EnvironmentVariable(name=name, value=value)


def parse_parameter(raw: str) -> Parameter:
    key, value = _split_pair(raw, "docker parameter")
    return Parameter(key=key, value=value)


def parse_label(raw: str) -> Label:
    key, value = _split_pair(raw, "label")
    return Label(key=key, value=value)


def parse_volume(raw: str) -> Volume:
    """Parse HOST:CONTAINER[:ro|rw], or a bare CONTAINER path."""
    parts = raw.split(":")
    if len(parts) == 1 and parts[0]:
        return Volume(container_path=parts[0])
    if len(parts) in (2, 3) and all(parts[:2]):
        mode = VolumeMode.RW
        if len(parts) == 3:
            try:
                mode = VolumeMode(parts[2].upper())
            except ValueError as e:
                raise ValidationError(f"Invalid volume mode in {raw!r}, expected ro or rw") from e
        return Volume(host_path=parts[0], container_path=parts[1], mode=mode)
    raise ValidationError(f"Invalid volume {raw!r}, expected HOST:CONTAINER[:ro|rw]")


def _port_number(value: str, raw: str) -> int:
    try:
        port = int(value)
    except ValueError as e:
        raise ValidationError(f"Invalid port mapping {raw!r}, ports must be integers") from e
    if not 0 < port < 65536:
        raise ValidationError(f"Invalid port mapping {raw!r}, port {port} out of range")
    return port


def parse_port(raw: str) -> PortMapping:
    """
    Parse CONTAINER:HOST[/protocol].

    The host port must fall inside the ports the agents offer
    (31000-32000 by Mesos default); picking one is up to the caller.
    """
    mapping, _, protocol = raw.partition("/")
    parts = mapping.split(":")
    if len(parts) != 2:
        raise ValidationError(f"Invalid port mapping {raw!r}, expected CONTAINER:HOST[/protocol]")
    return PortMapping(
        container_port=_port_number(parts[0], raw),
        host_port=_port_number(parts[1], raw),
        protocol=protocol or None,
    )


def parse_network(raw: str) -> NetworkMode:
    try:
        return NetworkMode(raw.upper())
    except ValueError as e:
        choices = ", ".join(mode.value.lower() for mode in NetworkMode)
        raise ValidationError(f"Invalid network mode {raw!r}, expected one of {choices}") from e


# Options


@dataclass
class TaskOptions:
    """Options recorded by the builder; scalars override, lists append."""
    name: Optional[str] = None
    user: Optional[str] = None
    cpus: Optional[float] = None
    mem: Optional[float] = None
    disk: Optional[float] = None
    shell: Optional[str] = None
    arguments: List[str] = field(default_factory=list)
    task_file: Optional[str] = None
    image: Optional[str] = None
    privileged: Optional[bool] = None
    force_pull_image: Optional[bool] = None
    network: Optional[NetworkMode] = None
    parameters: List[Parameter] = field(default_factory=list)
    volumes: List[Volume] = field(default_factory=list)
    ports: List[PortMapping] = field(default_factory=list)
    env: List[EnvironmentVariable] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)

    @property
    def argv(self) -> List[str]:
        """Positional arguments joined and split on whitespace."""
        return " ".join(self.arguments).split()

    @property
    def runnable(self) -> bool:
        return bool(self.image or self.task_file or self.argv or self.shell)


# Build steps


def _fresh_id(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    task.task_id = Value(value=str(uuid.uuid4()))
    return task


def _load_task_file(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    if not options.task_file:
        return task
    try:
        loaded = TaskInfo.from_file(options.task_file)
    except OSError as e:
        raise ValidationError(f"Cannot read task file {options.task_file}: {e}") from e
    except (ValueError, ModelValidationError) as e:
        raise ValidationError(f"Invalid task file {options.task_file}: {e}") from e
    if loaded.task_id is None:
        loaded.task_id = task.task_id
    logger.debug(f"loaded task {loaded.task_id.value} from {options.task_file}")
    return loaded


def _apply_command(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    command = task.command
    if options.shell:
        command.shell = True
        command.value = options.shell
        command.arguments = []
    elif options.argv:
        argv = options.argv
        command.shell = False
        command.value = argv[0]
        command.arguments = argv
    elif options.image and not command.value:
        # Run the image entrypoint
        command.shell = False
    return task


def _set_scalar(task: TaskInfo, name: str, value: float) -> None:
    for resource in task.resources:
        if resource.name == name and resource.scalar is not None:
            resource.scalar.value = value
            return
    task.resources.append(Resource.scalar_of(name, value))


def _apply_scalars(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    if options.name is not None:
        task.name = options.name
    if not task.name:
        task.name = task.task_id.value
    if options.user is not None:
        task.command.user = options.user
    for name in ("cpus", "mem", "disk"):
        value = getattr(options, name)
        if value is not None:
            _set_scalar(task, name, value)
    return task


def _apply_lists(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    task.command.environment.variables.extend(options.env)
    task.labels.labels.extend(options.labels)
    if options.volumes:
        if task.container is None:
            task.container = ContainerInfo(type=ContainerType.MESOS, mesos=MesosInfo())
        task.container.volumes.extend(options.volumes)
    for mapping in options.ports:
        task.resources.append(Resource.port(mapping.host_port))
    return task


def _port_reserved(task: TaskInfo, port: int) -> bool:
    return any(
        r.begin <= port <= r.end
        for resource in task.resources
        if resource.name == "ports" and resource.ranges is not None
        for r in resource.ranges.range
    )


def _apply_container(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    container = task.container
    existing = container.docker if container is not None else None
    image = options.image or (existing.image if existing is not None else "")

    if not image:
        if container is not None:
            container.docker = None
            if container.type == ContainerType.DOCKER:
                container.type = ContainerType.MESOS
        return task

    if container is None:
        container = task.container = ContainerInfo()
    docker = existing or DockerInfo()
    docker.image = image
    if options.privileged is not None:
        docker.privileged = options.privileged
    if options.force_pull_image is not None:
        docker.force_pull_image = options.force_pull_image
    if options.network is not None:
        docker.network = options.network
    docker.parameters.extend(options.parameters)
    docker.port_mappings.extend(options.ports)
    # Mappings from a task file need their host port reserved too
    for mapping in docker.port_mappings:
        if not _port_reserved(task, mapping.host_port):
            task.resources.append(Resource.port(mapping.host_port))

    container.type = ContainerType.DOCKER
    container.docker = docker
    container.mesos = None
    return task


def _require_command(task: TaskInfo, options: TaskOptions) -> TaskInfo:
    if not options.runnable:
        raise UsageError("nothing to run: give an image, a task file, a shell command or arguments")
    return task


BuildStep = Callable[[TaskInfo, TaskOptions], TaskInfo]

BUILD_STEPS: List[BuildStep] = [
    _fresh_id,
    _load_task_file,
    _apply_command,
    _apply_scalars,
    _apply_lists,
    _apply_container,
    _require_command,
]


class TaskSpecBuilder:
    """Incrementally records task options and builds a validated TaskInfo."""

    def __init__(self, base: Optional[TaskInfo] = None):
        """
        Initialize builder.

        Args:
            base: Starting specification (a profile default); never mutated
        """
        self.base = base
        self.options = TaskOptions()

    def name(self, value: Optional[str]) -> "TaskSpecBuilder":
        if value:
            self.options.name = value
        return self

    def user(self, value: Optional[str]) -> "TaskSpecBuilder":
        if value:
            self.options.user = value
        return self

    def cpus(self, value: Optional[float]) -> "TaskSpecBuilder":
        if value is not None:
            self.options.cpus = value
        return self

    def mem(self, value: Optional[float]) -> "TaskSpecBuilder":
        if value is not None:
            self.options.mem = value
        return self

    def disk(self, value: Optional[float]) -> "TaskSpecBuilder":
        if value is not None:
            self.options.disk = value
        return self

    def shell(self, value: Optional[str]) -> "TaskSpecBuilder":
        if value:
            self.options.shell = value
        return self

    def arguments(self, values) -> "TaskSpecBuilder":
        self.options.arguments.extend(values or [])
        return self

    def task_file(self, path: Optional[str]) -> "TaskSpecBuilder":
        if path:
            self.options.task_file = path
        return self

    def image(self, value: Optional[str]) -> "TaskSpecBuilder":
        if value:
            self.options.image = value
        return self

    def privileged(self, value: Optional[bool]) -> "TaskSpecBuilder":
        if value is not None:
            self.options.privileged = value
        return self

    def force_pull_image(self, value: Optional[bool]) -> "TaskSpecBuilder":
        if value is not None:
            self.options.force_pull_image = value
        return self

    def network(self, value: Optional[str]) -> "TaskSpecBuilder":
        if value:
            self.options.network = parse_network(value)
        return self

    def parameters(self, values) -> "TaskSpecBuilder":
        self.options.parameters.extend(parse_parameter(v) for v in values or [])
        return self

    def volumes(self, values) -> "TaskSpecBuilder":
        self.options.volumes.extend(parse_volume(v) for v in values or [])
        return self

    def ports(self, values) -> "TaskSpecBuilder":
        self.options.ports.extend(parse_port(v) for v in values or [])
        return self

    def env(self, values) -> "TaskSpecBuilder":
        self.options.env.extend(parse_env(v) for v in values or [])
        return self

    def labels(self, values) -> "TaskSpecBuilder":
        self.options.labels.extend(parse_label(v) for v in values or [])
        return self

    def build(self) -> TaskInfo:
        """
        Derive the task specification.

        Raises:
            ValidationError: If the task file is unreadable or invalid
            UsageError: If nothing runnable was given
        """
        base = self.base if self.base is not None else default_task_info()
        task = base.model_copy(deep=True)
        for step in BUILD_STEPS:
            task = step(task, self.options)
        return task
