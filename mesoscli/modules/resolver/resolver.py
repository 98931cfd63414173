"""
Agent and executor resolution.

Locates the agent that owns a task, then asks that agent directly for
its state to find the executor sandbox the task writes its logs to.
"""

import logging
from typing import List, Optional, Tuple

from mesoscli.errors import AmbiguousError, NotFoundError
from mesoscli.modules.api import AgentRecord, AgentState, ExecutorRecord, TaskRecord
from mesoscli.modules.client import OperatorClient
from mesoscli.modules.filter import id_filter
from mesoscli.modules.paginator import TaskPaginator

logger = logging.getLogger(__name__)

SCAN_PAGE_SIZE = 100


def find_tasks(client: OperatorClient, task_id: str) -> List[TaskRecord]:
    """
    Scan every task on the master for an ID.

    Exact matches win; otherwise every task whose ID starts with task_id
    is returned.
    """
    paginator = TaskPaginator(client, limit=SCAN_PAGE_SIZE, max_results=0)
    candidates = list(paginator.paginate([id_filter(task_id, prefix=True)]))
    exact = [task for task in candidates if task.id == task_id]
    return exact or candidates


def _unique(tasks: List[TaskRecord], task_id: str) -> TaskRecord:
    if not tasks:
        raise NotFoundError(f"no task matching {task_id}")
    task_ids = sorted({task.id for task in tasks})
    if len(task_ids) > 1:
        raise AmbiguousError(f"{task_id} matches several tasks: {', '.join(task_ids)}")
    return tasks[0]


def find_task(client: OperatorClient, task_id: str) -> TaskRecord:
    """
    Find the single task an ID or ID prefix refers to.

    Raises:
        NotFoundError: Nothing matches
        AmbiguousError: Several distinct tasks match
    """
    return _unique(find_tasks(client, task_id), task_id)


def _resolve(client: OperatorClient, task_id: str) -> Tuple[str, AgentRecord]:
    tasks = find_tasks(client, task_id)
    resolved_id = _unique(tasks, task_id).id

    agent_ids = {task.agent_id for task in tasks}
    agents = [agent for agent in client.list_agents() if agent.id in agent_ids]
    if not agents:
        raise NotFoundError(f"no agent found for task {resolved_id}")
    if len(agents) > 1:
        raise AmbiguousError(
            f"task {resolved_id} is reported on several agents: "
            f"{', '.join(agent.id for agent in agents)}"
        )

    logger.debug(f"task {resolved_id} runs on agent {agents[0].id} ({agents[0].fqdn})")
    return resolved_id, agents[0]


def resolve_agent(client: OperatorClient, task_id: str) -> AgentRecord:
    """
    Find the unique agent whose roster includes the task.

    Args:
        client: Client bound to the master
        task_id: Task ID or unique ID prefix

    Returns:
        AgentRecord of the owning agent

    Raises:
        NotFoundError: No task or no owning agent
        AmbiguousError: The ID matches several tasks or several agents
    """
    return _resolve(client, task_id)[1]


def find_executor(agent_state: AgentState, task_id: str) -> Optional[ExecutorRecord]:
    """Linear scan of an agent's executors for the one running the task."""
    for executor in agent_state.executors:
        if executor.runs(task_id):
            return executor
    return None


def sandbox_directory(client: OperatorClient, task_id: str) -> str:
    """
    Resolve the sandbox directory of a task on its agent.

    Logic:
    1. Resolve the task and its owning agent through the master
    2. Redirect a client to the agent and fetch its state once
    3. Search the agent's executors for the task

    Raises:
        NotFoundError: If the executor cannot be resolved
    """
    resolved_id, agent = _resolve(client, task_id)
    agent_state = client.for_agent(agent).get_agent_state()
    executor = find_executor(agent_state, resolved_id)
    if executor is None:
        raise NotFoundError("could not resolve executor")
    return executor.directory
