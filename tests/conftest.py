"""
Shared pytest fixtures for mesoscli tests.

This module provides common fixtures including:
- FakeOperatorClient: In-memory task source with page-level call recording
- FakeMesos: httpx.MockTransport serving master and agent endpoints
- DockerMocker: Mock docker subprocess calls with canned responses
- Record factories for tasks and agents
"""

import json
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch

import httpx
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mesoscli.errors import TransportError
from mesoscli.modules.api import AgentRecord, TaskPage, TaskRecord, TaskState
from mesoscli.modules.client import OperatorClient, master_endpoint


# =============================================================================
# Record Factories
# =============================================================================

def make_task(
    task_id: str,
    state: TaskState = TaskState.RUNNING,
    name: Optional[str] = None,
    agent_id: str = "agent-1",
    framework_id: str = "framework-0001",
) -> TaskRecord:
    """Build a TaskRecord with sensible defaults."""
    return TaskRecord(
        id=task_id,
        name=name if name is not None else task_id,
        framework_id=framework_id,
        agent_id=agent_id,
        state=state,
        resources={"cpus": 0.1, "mem": 32, "gpus": 0, "disk": 0},
    )


def task_json(task: TaskRecord) -> Dict[str, Any]:
    """Wire form of a TaskRecord as served by /master/tasks."""
    return {
        "id": task.id,
        "name": task.name,
        "framework_id": task.framework_id,
        "slave_id": task.agent_id,
        "state": task.state.value,
        "resources": task.resources.model_dump(),
    }


def agent_json(agent_id: str, hostname: str, port: int = 5051) -> Dict[str, Any]:
    return {
        "id": agent_id,
        "hostname": hostname,
        "port": port,
        "pid": f"slave(1)@10.0.0.1:{port}",
        "version": "1.11.0",
        "registered_time": 1700000000.0,
        "resources": {"cpus": 4.0, "mem": 8192.0, "gpus": 0.0, "disk": 10240.0, "ports": "[31000-32000]"},
        "used_resources": {"cpus": 1.5, "mem": 512.0, "gpus": 0.0, "disk": 0.0},
    }


def agent_state_json(agent_id: str, hostname: str, executors: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "id": agent_id,
        "hostname": hostname,
        "frameworks": [{"id": "framework-0001", "executors": executors, "completed_executors": []}],
        "completed_frameworks": [],
    }


# =============================================================================
# In-memory Task Source
# =============================================================================

class FakeOperatorClient:
    """
    Serves predefined pages of tasks and records every list_tasks call.

    Usage:
        def test_short_page(fake_client_factory):
            client = fake_client_factory([[t1, t2], [t3]])
            list(TaskPaginator(client, limit=2).paginate([accept_all]))
            assert len(client.calls) == 2
    """

    def __init__(self, pages: List[List[TaskRecord]], fail_on_call: Optional[int] = None):
        self.pages = pages
        self.fail_on_call = fail_on_call
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def __enter__(self) -> "FakeOperatorClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.closed = True

    def list_tasks(self, token=None, limit=100, order="desc") -> TaskPage:
        index = len(self.calls)
        self.calls.append({"token": token, "limit": limit, "order": order})
        if self.fail_on_call is not None and index == self.fail_on_call:
            raise TransportError("GET /master/tasks failed: connection refused")
        tasks = self.pages[index] if index < len(self.pages) else []
        offset = token or 0
        next_token = offset + len(tasks) if len(tasks) >= limit else None
        return TaskPage(tasks=tasks, next_token=next_token)


@pytest.fixture
def fake_client_factory():
    return FakeOperatorClient


# =============================================================================
# HTTP Mocking Infrastructure
# =============================================================================

@dataclass
class FakeMesos:
    """
    In-memory master and agents behind an httpx.MockTransport.

    tasks are served from /master/tasks honouring offset and limit,
    agents from /master/slaves, and agent states from
    http://<agent host>:<port>/slave(1)/state.
    """
    tasks: List[Dict[str, Any]] = field(default_factory=list)
    agents: List[Dict[str, Any]] = field(default_factory=list)
    agent_states: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    fail_paths: Dict[str, int] = field(default_factory=dict)
    requests: List[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.fail_paths:
            return httpx.Response(self.fail_paths[path], text="unavailable")
        if path == "/master/tasks":
            offset = int(request.url.params.get("offset", 0))
            limit = int(request.url.params.get("limit", 100))
            return httpx.Response(200, json={"tasks": self.tasks[offset:offset + limit]})
        if path == "/master/slaves":
            return httpx.Response(200, json={"slaves": self.agents})
        if path == "/slave(1)/state" and request.url.host in self.agent_states:
            return httpx.Response(200, json=self.agent_states[request.url.host])
        return httpx.Response(404, text="not found")

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def client(self, master: str = "http://master.mesos:5050") -> OperatorClient:
        http = httpx.Client(transport=httpx.MockTransport(self.handler))
        return OperatorClient(master_endpoint(master), timeout=5.0, http=http)


@pytest.fixture
def fake_mesos():
    return FakeMesos()


# =============================================================================
# Docker Mocking Infrastructure
# =============================================================================

@dataclass
class DockerResponse:
    """Represents a mocked docker command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    def to_completed_process(self) -> MagicMock:
        """Convert to a subprocess.CompletedProcess-like mock."""
        result = MagicMock()
        result.stdout = self.stdout
        result.stderr = self.stderr
        result.returncode = self.returncode
        return result


class DockerMocker:
    """
    Mock docker subprocess calls with prefix-matched responses.

    Responses registered for the same prefix are returned in order, the
    last one repeating, so a container can appear only after "create".
    """

    def __init__(self):
        self._responses: Dict[str, List[DockerResponse]] = {}
        self.calls: List[List[str]] = []

    def register(self, prefix: str, *responses: DockerResponse) -> "DockerMocker":
        self._responses[prefix] = list(responses)
        return self

    def mock_run(self, cmd: List[str], **kwargs) -> MagicMock:
        self.calls.append(cmd)
        args = " ".join(cmd[1:])
        for prefix in sorted(self._responses, key=len, reverse=True):
            if args.startswith(prefix):
                queue = self._responses[prefix]
                response = queue.pop(0) if len(queue) > 1 else queue[0]
                return response.to_completed_process()
        return DockerResponse().to_completed_process()

    def was_called_with(self, prefix: str) -> bool:
        return any(" ".join(cmd[1:]).startswith(prefix) for cmd in self.calls)


def docker_lines(*items: Dict[str, Any]) -> str:
    """Format items the way `docker ... --format '{{json .}}'` prints them."""
    return "\n".join(json.dumps(item) for item in items) + "\n"


@pytest.fixture
def docker_mocker():
    """DockerMocker with subprocess.run patched."""
    mocker = DockerMocker()
    with patch("subprocess.run", side_effect=mocker.mock_run):
        yield mocker


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Tests wiring several modules through a mocked transport"
    )
