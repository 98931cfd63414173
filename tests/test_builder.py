"""
Unit tests for the Builder Module.

Tests cover:
- Default specification and fresh task IDs
- Shell versus argv commands
- Docker versus Mesos containerizer selection
- Port mappings and their ports resources
- Scalar overrides and list appends
- Task files with flags layered on top
- Malformed flag values and nothing-to-run
"""

import json

import pytest

from mesoscli.errors import UsageError, ValidationError
from mesoscli.modules.api import (
    ContainerType,
    EnvironmentVariable,
    NetworkMode,
    ResourceType,
    TaskInfo,
    VolumeMode,
)
from mesoscli.modules.builder import (
    TaskSpecBuilder,
    default_task_info,
    parse_port,
    parse_volume,
)


def resource_names(task):
    return [resource.name for resource in task.resources]


@pytest.fixture
def task_file(tmp_path):
    """Write a TaskInfo JSON file and return its path."""

    def _write(data):
        path = tmp_path / "task.json"
        path.write_text(json.dumps(data))
        return str(path)

    return _write


class TestDefaults:
    """Tests for the default task specification."""

    def test_default_task_info(self):
        task = default_task_info()
        assert task.task_id is not None
        assert task.scalar("cpus") == pytest.approx(0.1)
        assert task.container.type == ContainerType.MESOS
        assert task.container.mesos is not None
        assert task.container.docker is None

    def test_every_build_gets_a_fresh_id(self):
        builder = TaskSpecBuilder().shell("true")
        first, second = builder.build(), builder.build()
        assert first.task_id.value != second.task_id.value

    def test_base_is_not_mutated(self):
        base = default_task_info()
        before = base.model_dump()
        TaskSpecBuilder(base).image("alpine").env(["A=1"]).ports(["80:31000"]).build()
        assert base.model_dump() == before

    def test_name_defaults_to_task_id(self):
        task = TaskSpecBuilder().shell("true").build()
        assert task.name == task.task_id.value


class TestCommand:
    """Tests for command selection."""

    def test_shell_command(self):
        task = TaskSpecBuilder().shell("echo hi").build()
        assert task.command.shell is True
        assert task.command.value == "echo hi"
        assert task.command.arguments == []
        assert task.container.docker is None
        assert task.container.type == ContainerType.MESOS

    def test_arguments_become_argv(self):
        task = TaskSpecBuilder().arguments(["sleep", "10"]).build()
        assert task.command.shell is False
        assert task.command.value == "sleep"
        assert task.command.arguments == ["sleep", "10"]

    @pytest.mark.parametrize("blank", [[""], [" "], ["", "  "]])
    def test_blank_arguments_are_not_runnable(self, blank):
        with pytest.raises(UsageError):
            TaskSpecBuilder().arguments(blank).build()

    def test_blank_arguments_ignored_beside_image(self):
        task = TaskSpecBuilder().image("nginx").arguments([" "]).build()
        assert task.command.value is None
        assert task.command.arguments == []

    def test_arguments_are_split_on_whitespace(self):
        task = TaskSpecBuilder().arguments(["ls -la", "/tmp"]).build()
        assert task.command.arguments == ["ls", "-la", "/tmp"]

    def test_shell_wins_over_arguments(self):
        task = TaskSpecBuilder().arguments(["sleep", "10"]).shell("date").build()
        assert task.command.shell is True
        assert task.command.value == "date"
        assert task.command.arguments == []

    def test_image_without_command_runs_entrypoint(self):
        task = TaskSpecBuilder().image("nginx").build()
        assert task.command.shell is False
        assert task.command.value is None

    def test_nothing_to_run(self):
        with pytest.raises(UsageError):
            TaskSpecBuilder().name("idle").cpus(1).build()

    def test_usage_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            TaskSpecBuilder().build()


class TestContainer:
    """Tests for containerizer selection."""

    def test_image_selects_docker(self):
        task = TaskSpecBuilder().image("alpine:3.19").shell("echo hi").build()
        assert task.container.type == ContainerType.DOCKER
        assert task.container.docker.image == "alpine:3.19"
        assert task.container.mesos is None

    def test_docker_options(self):
        task = (
            TaskSpecBuilder()
            .image("alpine")
            .privileged(True)
            .force_pull_image(True)
            .network("bridge")
            .parameters(["memory-swap=-1", "init=true"])
            .build()
        )
        docker = task.container.docker
        assert docker.privileged is True
        assert docker.force_pull_image is True
        assert docker.network == NetworkMode.BRIDGE
        assert [(p.key, p.value) for p in docker.parameters] == [("memory-swap", "-1"), ("init", "true")]

    def test_no_image_drops_docker(self):
        task = TaskSpecBuilder().shell("true").privileged(True).build()
        assert task.container.docker is None

    def test_docker_task_file_keeps_its_image(self, task_file):
        path = task_file({
            "name": "from-file",
            "resources": [{"name": "cpus", "type": "SCALAR", "scalar": {"value": 1}}],
            "command": {"shell": False},
            "container": {"type": "DOCKER", "docker": {"image": "redis:7"}},
        })
        task = TaskSpecBuilder().task_file(path).build()
        assert task.container.type == ContainerType.DOCKER
        assert task.container.docker.image == "redis:7"

    def test_invalid_network(self):
        with pytest.raises(ValidationError, match="network mode"):
            TaskSpecBuilder().network("overlay")


class TestPorts:
    """Tests for port mappings."""

    def test_port_mapping_adds_one_ports_resource(self):
        task = TaskSpecBuilder().image("nginx").ports(["8080:31000"]).build()

        assert resource_names(task) == ["cpus", "ports"]
        ports = task.resources[-1]
        assert ports.type == ResourceType.RANGES
        assert [(r.begin, r.end) for r in ports.ranges.range] == [(31000, 31000)]

        mapping = task.container.docker.port_mappings[0]
        assert (mapping.container_port, mapping.host_port) == (8080, 31000)

    def test_protocol(self):
        mapping = parse_port("53:31053/udp")
        assert mapping.protocol == "udp"
        assert mapping.host_port == 31053

    def test_task_file_mappings_get_ports_resources(self, task_file):
        path = task_file({
            "resources": [
                {"name": "cpus", "type": "SCALAR", "scalar": {"value": 1}},
                {"name": "ports", "type": "RANGES", "ranges": {"range": [{"begin": 31000, "end": 31000}]}},
            ],
            "container": {
                "type": "DOCKER",
                "docker": {
                    "image": "nginx",
                    "port_mappings": [
                        {"container_port": 80, "host_port": 31000},
                        {"container_port": 443, "host_port": 31443},
                    ],
                },
            },
        })
        task = TaskSpecBuilder().task_file(path).ports(["8080:31080"]).build()

        ports = [
            (r.begin, r.end)
            for resource in task.resources
            if resource.name == "ports"
            for r in resource.ranges.range
        ]
        assert sorted(ports) == [(31000, 31000), (31080, 31080), (31443, 31443)]
        assert len(task.container.docker.port_mappings) == 3

    @pytest.mark.parametrize("raw", ["8080", "a:31000", "8080:70000", "1:2:3", "0:31000"])
    def test_malformed_ports(self, raw):
        with pytest.raises(ValidationError):
            parse_port(raw)


class TestScalarsAndLists:
    """Tests for scalar overrides and list appends."""

    def test_scalars_override(self):
        task = TaskSpecBuilder().shell("true").cpus(2).cpus(0.5).mem(256).disk(1024).build()
        assert task.scalar("cpus") == pytest.approx(0.5)
        assert task.scalar("mem") == 256
        assert task.scalar("disk") == 1024
        assert resource_names(task) == ["cpus", "mem", "disk"]

    def test_name_and_user(self):
        task = TaskSpecBuilder().shell("whoami").name("who").user("nobody").build()
        assert task.name == "who"
        assert task.command.user == "nobody"

    def test_lists_append_to_base(self):
        base = default_task_info()
        base.command.environment.variables.append(EnvironmentVariable(name="BASE", value="1"))
        task = TaskSpecBuilder(base).shell("env").env(["A=1"]).env(["B=x=y"]).labels(["team=infra"]).build()

        variables = [(v.name, v.value) for v in task.command.environment.variables]
        assert variables == [("BASE", "1"), ("A", "1"), ("B", "x=y")]
        assert [(label.key, label.value) for label in task.labels.labels] == [("team", "infra")]

    def test_volumes(self):
        task = TaskSpecBuilder().shell("ls /data").volumes(["/srv/data:/data:ro", "/scratch"]).build()
        first, second = task.container.volumes
        assert (first.host_path, first.container_path, first.mode) == ("/srv/data", "/data", VolumeMode.RO)
        assert (second.host_path, second.container_path, second.mode) == (None, "/scratch", VolumeMode.RW)

    @pytest.mark.parametrize("raw", ["NOVALUE", "=value"])
    def test_malformed_env(self, raw):
        with pytest.raises(ValidationError, match="KEY=VALUE"):
            TaskSpecBuilder().env([raw])

    @pytest.mark.parametrize("raw", ["/a:/b:rx", ":/b", "/a:/b:ro:x", ""])
    def test_malformed_volumes(self, raw):
        with pytest.raises(ValidationError):
            parse_volume(raw)


class TestTaskFile:
    """Tests for --task files."""

    def test_file_replaces_base_and_flags_apply_on_top(self, task_file):
        path = task_file({
            "name": "from-file",
            "task_id": {"value": "fixed-id"},
            "resources": [{"name": "mem", "type": "SCALAR", "scalar": {"value": 64}}],
            "command": {"shell": True, "value": "echo file"},
        })
        task = TaskSpecBuilder().task_file(path).mem(128).env(["A=1"]).build()

        assert task.task_id.value == "fixed-id"
        assert task.name == "from-file"
        assert task.command.value == "echo file"
        assert resource_names(task) == ["mem"]
        assert task.scalar("mem") == 128
        assert task.command.environment.variables[0].name == "A"

    def test_file_without_id_gets_fresh_id(self, task_file):
        path = task_file({"command": {"shell": True, "value": "true"}})
        task = TaskSpecBuilder().task_file(path).build()
        assert task.task_id is not None
        assert task.task_id.value

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="Cannot read task file"):
            TaskSpecBuilder().task_file(str(tmp_path / "missing.json")).build()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ValidationError, match="Invalid task file"):
            TaskSpecBuilder().task_file(str(path)).build()

    def test_wire_form_round_trips(self):
        task = TaskSpecBuilder().image("alpine").shell("echo hi").ports(["80:31080"]).build()
        assert TaskInfo.model_validate(task.to_wire()) == task
