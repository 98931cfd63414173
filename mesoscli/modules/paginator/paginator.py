"""
Task listing across master pages.

TaskPaginator walks the offset-based /master/tasks listing; stream_tasks
runs it on a background thread and hands records to the renderer through
a TaskStream.
"""

import logging
from queue import Queue
from threading import Thread
from typing import Iterator, List, Optional, Protocol, Set

from mesoscli.errors import ValidationError
from mesoscli.modules.api import TaskPage, TaskRecord
from mesoscli.modules.filter import Predicate, matches

logger = logging.getLogger(__name__)

SORT_ORDERS = ("asc", "desc")


class TaskSource(Protocol):
    """Anything that can list tasks page by page."""

    def list_tasks(
        self, token: Optional[int] = None, limit: int = 100, order: str = "desc"
    ) -> TaskPage:
        ...


class TaskPaginator:
    """
    Walks the master task listing one bounded page at a time.

    The sort order is passed to the master as a hint only. Records are
    forwarded in the order the master returns them and are never re-sorted.
    """

    def __init__(
        self,
        client: TaskSource,
        limit: int = 100,
        max_results: int = 250,
        order: str = "desc",
    ):
        """
        Initialize paginator.

        Args:
            client: Task source (normally an OperatorClient)
            limit: Page size requested from the master
            max_results: Maximum number of records to forward (<= 0 for no cap)
            order: "asc" or "desc"

        Raises:
            ValidationError: On a page size below 1 or an unknown order
        """
        if limit < 1:
            raise ValidationError(f"--limit must be at least 1, got {limit}")
        if order not in SORT_ORDERS:
            raise ValidationError(f"order must be one of {', '.join(SORT_ORDERS)}, got {order!r}")
        self.client = client
        self.limit = limit
        self.max_results = max_results
        self.order = order

    def paginate(self, predicates: List[Predicate]) -> Iterator[TaskRecord]:
        """
        Lazily yield matching tasks across pages.

        Each task ID is forwarded at most once. Stops fetching when a page
        comes back short or when max_results records have been forwarded.
        A fetch error propagates immediately.
        """
        token: Optional[int] = None
        seen: Set[str] = set()
        while True:
            page = self.client.list_tasks(token=token, limit=self.limit, order=self.order)
            logger.debug(f"fetched {len(page.tasks)} tasks at offset {token or 0}")
            for task in page.tasks:
                # Offsets shift when tasks come and go between fetches
                if task.id in seen or not matches(task, predicates):
                    continue
                seen.add(task.id)
                yield task
                if 0 < self.max_results <= len(seen):
                    return
            if len(page.tasks) < self.limit or page.next_token is None:
                return
            token = page.next_token


class TaskStream:
    """
    Handoff between the paginator thread and the renderer.

    Single writer, single reader. The writer closes the stream exactly once,
    optionally with the error that ended pagination; the reader sees every
    record put before the close and then the error, if any.
    """

    _CLOSED = object()

    def __init__(self):
        self._queue: Queue = Queue(maxsize=1)
        self._closed = False
        self._error: Optional[BaseException] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, task: TaskRecord) -> None:
        if self._closed:
            raise RuntimeError("put on closed task stream")
        self._queue.put(task)

    def close(self, error: Optional[BaseException] = None) -> None:
        if self._closed:
            raise RuntimeError("task stream already closed")
        self._closed = True
        self._error = error
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[TaskRecord]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                break
            yield item
        if self._error is not None:
            raise self._error


def stream_tasks(paginator: TaskPaginator, predicates: List[Predicate]) -> TaskStream:
    """
    Run the paginator on a background thread.

    Returns:
        TaskStream the caller iterates until it is closed
    """
    stream = TaskStream()

    def produce() -> None:
        error: Optional[BaseException] = None
        try:
            for task in paginator.paginate(predicates):
                stream.put(task)
        except Exception as e:
            logger.debug(f"pagination aborted: {e}")
            error = e
        finally:
            stream.close(error)

    Thread(target=produce, name="task-paginator", daemon=True).start()
    return stream
