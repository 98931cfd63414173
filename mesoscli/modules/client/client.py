"""
Control-plane HTTP client.

Wraps the master and agent JSON endpoints used by the CLI:

- GET /master/tasks   paginated task listing
- GET /master/slaves  registered agents
- GET /slave(1)/state agent state, including executor sandboxes

The master endpoint is rewritten to address a single agent through
redirect_endpoint(); the redirected client is built per call.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as ModelValidationError

from mesoscli.errors import TransportError
from mesoscli.modules.api import AgentRecord, AgentState, TaskPage, TaskRecord

logger = logging.getLogger(__name__)

AGENT_API_PATH = "/slave(1)"
TASKS_PATH = "/master/tasks"
AGENTS_PATH = "/master/slaves"
STATE_PATH = "/state"


def master_endpoint(master: str) -> httpx.URL:
    """
    Build the master base URL.

    A bare host:port is accepted and treated as http.
    """
    if "://" not in master:
        master = f"http://{master}"
    return httpx.URL(master).copy_with(path="/")


def redirect_endpoint(endpoint: httpx.URL, agent: AgentRecord) -> httpx.URL:
    """
    Point an endpoint at an agent's own HTTP API.

    Args:
        endpoint: Master endpoint (scheme and credentials are preserved)
        agent: Agent to address

    Returns:
        New URL with the agent's hostname:port and the agent API path
    """
    return endpoint.copy_with(host=agent.hostname, port=agent.port, path=AGENT_API_PATH)


class OperatorClient:
    """Synchronous client bound to a single master or agent endpoint."""

    def __init__(
        self,
        endpoint: httpx.URL,
        timeout: float = 10.0,
        http: Optional[httpx.Client] = None,
    ):
        """
        Initialize client.

        Args:
            endpoint: Base URL of the master or agent
            timeout: Transport timeout in seconds
            http: Optional shared httpx client (connection pool)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.http = http or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "OperatorClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def for_agent(self, agent: AgentRecord) -> "OperatorClient":
        """Client addressing the given agent directly, sharing this client's pool."""
        return OperatorClient(redirect_endpoint(self.endpoint, agent), self.timeout, self.http)

    def list_tasks(
        self, token: Optional[int] = None, limit: int = 100, order: str = "desc"
    ) -> TaskPage:
        """
        Fetch one page of tasks.

        Args:
            token: Offset of the page (None for the first page)
            limit: Maximum number of tasks in the page
            order: Sort order hint for the master ("asc" or "desc")

        Returns:
            TaskPage whose next_token is None when the page is short
        """
        offset = token or 0
        data = self._get(TASKS_PATH, params={"offset": offset, "limit": limit, "order": order})
        try:
            tasks = [TaskRecord.model_validate(task) for task in data.get("tasks", [])]
        except ModelValidationError as e:
            raise TransportError(f"Unexpected task record from master: {e}") from e
        next_token = offset + len(tasks) if len(tasks) >= limit else None
        return TaskPage(tasks=tasks, next_token=next_token)

    def list_agents(self) -> List[AgentRecord]:
        """Fetch every agent registered with the master."""
        data = self._get(AGENTS_PATH)
        try:
            return [AgentRecord.model_validate(agent) for agent in data.get("slaves", [])]
        except ModelValidationError as e:
            raise TransportError(f"Unexpected agent record from master: {e}") from e

    def get_agent_state(self) -> AgentState:
        """Fetch the state of the agent this client is bound to."""
        return AgentState.from_state(self._get(STATE_PATH))

    def _url(self, path: str) -> httpx.URL:
        base = self.endpoint.path.rstrip("/")
        return self.endpoint.copy_with(path=f"{base}{path}")

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = self._url(path)
        logger.debug(f"http request: GET {url} params={params}")
        try:
            response = self.http.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{e.request.method} {e.request.url} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}") from e
        except json.JSONDecodeError as e:
            raise TransportError(f"GET {url} returned invalid JSON: {e}") from e
