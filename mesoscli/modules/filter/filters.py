"""
Predicates over task records.

A listing keeps a task only when every predicate in its chain holds.
"""

import re
from typing import Callable, Iterable, List, Optional

from mesoscli.errors import PatternError
from mesoscli.modules.api import TaskRecord, TaskState

Predicate = Callable[[TaskRecord], bool]


def accept_all(task: TaskRecord) -> bool:
    return True


def state_filter(*states: TaskState) -> Predicate:
    """Match tasks in any of the given states."""
    selected = frozenset(states)

    def predicate(task: TaskRecord) -> bool:
        return task.state in selected

    return predicate


def name_filter(pattern: str) -> Predicate:
    """
    Match tasks whose display name contains a match of the regex.

    Raises:
        PatternError: If the pattern does not compile
    """
    try:
        expression = re.compile(pattern)
    except re.error as e:
        raise PatternError(f"Invalid --name pattern {pattern!r}: {e}") from e

    def predicate(task: TaskRecord) -> bool:
        return expression.search(task.name) is not None

    return predicate


def id_filter(task_id: str, prefix: bool = False) -> Predicate:
    """Match tasks by exact ID, or by ID prefix."""
    if prefix:
        return lambda task: task.id.startswith(task_id)
    return lambda task: task.id == task_id


def build_filters(
    name: Optional[str] = None,
    all_tasks: bool = False,
    running: bool = False,
    failed: bool = False,
    killed: bool = False,
    finished: bool = False,
) -> List[Predicate]:
    """
    Build the predicate chain for a task listing.

    Args:
        name: Regex matched against task names
        all_tasks: Accept every task; replaces the whole chain
        running: Select running tasks
        failed: Select failed tasks
        killed: Select killed tasks
        finished: Select finished tasks

    Returns:
        Predicates that must all hold for a task to be listed

    Logic:
    1. Compile the name pattern first so a bad regex always fails the command
    2. --all short-circuits to a single always-true predicate
    3. State flags are additive and form one union predicate
    4. No state flag selects running tasks
    """
    filters: List[Predicate] = []
    if name:
        filters.append(name_filter(name))

    if all_tasks:
        return [accept_all]

    states = [
        state
        for state, selected in (
            (TaskState.RUNNING, running),
            (TaskState.FAILED, failed),
            (TaskState.KILLED, killed),
            (TaskState.FINISHED, finished),
        )
        if selected
    ]
    filters.append(state_filter(*(states or [TaskState.RUNNING])))
    return filters


def matches(task: TaskRecord, predicates: Iterable[Predicate]) -> bool:
    """Check a task against every predicate, stopping at the first miss."""
    return all(predicate(task) for predicate in predicates)
