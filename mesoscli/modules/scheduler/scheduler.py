"""
Task submission through the Mesos v1 scheduler HTTP API.

A short-lived framework subscribes to the master, launches the task on
the first offer that can hold it, follows its status updates and tears
itself down once the task reaches a terminal state.
"""

import getpass
import json
import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

import httpx

from mesoscli.errors import TransportError
from mesoscli.modules.api import ResourceType, TaskInfo, TaskStatus

logger = logging.getLogger(__name__)

SCHEDULER_API_PATH = "/api/v1/scheduler"
FRAMEWORK_NAME = "mesos-cli"
REFUSE_SECONDS = 5.0


def read_records(chunks: Iterable[bytes]) -> Iterator[Dict[str, Any]]:
    """
    Decode a RecordIO stream ("<length>\\n<json>" repeated).

    Args:
        chunks: Raw byte chunks as received from the transport

    Yields:
        One decoded event per record
    """
    buffer = b""
    for chunk in chunks:
        buffer += chunk
        while True:
            newline = buffer.find(b"\n")
            if newline < 0:
                break
            try:
                length = int(buffer[:newline])
            except ValueError as e:
                raise TransportError(f"Invalid RecordIO length {buffer[:newline]!r}") from e
            end = newline + 1 + length
            if len(buffer) < end:
                break
            record, buffer = buffer[newline + 1:end], buffer[end:]
            try:
                yield json.loads(record)
            except json.JSONDecodeError as e:
                raise TransportError(f"Invalid event from scheduler API: {e}") from e


def _offered_scalars(offer: Dict[str, Any]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for resource in offer.get("resources", []):
        if resource.get("type") == ResourceType.SCALAR.value:
            name = resource["name"]
            totals[name] = totals.get(name, 0.0) + resource.get("scalar", {}).get("value", 0.0)
    return totals


def _offered_ports(offer: Dict[str, Any]) -> List[tuple]:
    return [
        (r["begin"], r["end"])
        for resource in offer.get("resources", [])
        if resource.get("name") == "ports"
        for r in resource.get("ranges", {}).get("range", [])
    ]


def offer_fits(offer: Dict[str, Any], task_info: TaskInfo) -> bool:
    """Check that an offer covers the task's scalar resources and host ports."""
    offered = _offered_scalars(offer)
    for resource in task_info.resources:
        if resource.scalar is not None:
            if offered.get(resource.name, 0.0) < task_info.scalar(resource.name):
                return False
    ranges = _offered_ports(offer)
    for resource in task_info.resources:
        if resource.name != "ports" or resource.ranges is None:
            continue
        for wanted in resource.ranges.range:
            if not any(begin <= wanted.begin and wanted.end <= end for begin, end in ranges):
                return False
    return True


class TaskSubmitter:
    """Launches a single task as a throwaway framework."""

    def __init__(
        self,
        endpoint: httpx.URL,
        timeout: float = 10.0,
        http: Optional[httpx.Client] = None,
        user: Optional[str] = None,
    ):
        """
        Initialize submitter.

        Args:
            endpoint: Master base URL
            timeout: Timeout for individual calls in seconds
            http: Optional shared httpx client
            user: User the framework registers as (defaults to the current user)
        """
        self.url = endpoint.copy_with(path=SCHEDULER_API_PATH)
        self.timeout = timeout
        self.http = http or httpx.Client(timeout=timeout)
        self.user = user or getpass.getuser()
        self.framework_id: Optional[str] = None
        self.stream_id: Optional[str] = None
        self.launched = False

    def submit(self, task_info: TaskInfo) -> TaskStatus:
        """
        Launch a task and wait for it to reach a terminal state.

        Returns:
            The terminal TaskStatus

        Raises:
            TransportError: On any API failure, an ERROR event, or a stream
                that ends before the task does
        """
        subscribe = {
            "type": "SUBSCRIBE",
            "subscribe": {"framework_info": {"user": self.user, "name": FRAMEWORK_NAME}},
        }
        logger.debug(f"http request: POST {self.url} body={json.dumps(subscribe)}")
        self.launched = False
        try:
            with self.http.stream(
                "POST",
                self.url,
                json=subscribe,
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout, read=None),
            ) as response:
                response.raise_for_status()
                self.stream_id = response.headers.get("Mesos-Stream-Id")
                for event in read_records(response.iter_bytes()):
                    status = self._handle(event, task_info)
                    if status is not None:
                        return status
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"scheduler subscription returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"scheduler subscription failed: {e}") from e
        raise TransportError("scheduler stream closed before the task finished")

    def _handle(self, event: Dict[str, Any], task_info: TaskInfo) -> Optional[TaskStatus]:
        kind = event.get("type")
        if kind == "SUBSCRIBED":
            self.framework_id = event["subscribed"]["framework_id"]["value"]
            logger.info(f"subscribed as framework {self.framework_id}")
        elif kind == "OFFERS":
            self._offers(event["offers"].get("offers", []), task_info)
        elif kind == "UPDATE":
            return self._update(event["update"]["status"])
        elif kind == "ERROR":
            raise TransportError(f"scheduler error: {event.get('error', {}).get('message', '')}")
        elif kind == "HEARTBEAT":
            logger.debug("heartbeat")
        return None

    def _offers(self, offers: List[Dict[str, Any]], task_info: TaskInfo) -> None:
        """Accept the first fitting offer unless already launched; decline the rest."""
        declined = []
        for offer in offers:
            if not self.launched and offer_fits(offer, task_info):
                task = task_info.to_wire()
                task["agent_id"] = offer["agent_id"]
                self._call(
                    {
                        "type": "ACCEPT",
                        "accept": {
                            "offer_ids": [offer["id"]],
                            "operations": [{"type": "LAUNCH", "launch": {"task_infos": [task]}}],
                            "filters": {"refuse_seconds": REFUSE_SECONDS},
                        },
                    }
                )
                logger.info(f"launching task {task_info.task_id.value} on {offer.get('hostname', '')}")
                self.launched = True
            else:
                declined.append(offer["id"])
        if declined:
            self._call({"type": "DECLINE", "decline": {"offer_ids": declined}})

    def _update(self, raw_status: Dict[str, Any]) -> Optional[TaskStatus]:
        status = TaskStatus.from_update(raw_status)
        logger.info(f"task {status.task_id} is {status.state.value}")
        if status.uuid:
            self._call(
                {
                    "type": "ACKNOWLEDGE",
                    "acknowledge": {
                        "agent_id": raw_status.get("agent_id"),
                        "task_id": raw_status.get("task_id"),
                        "uuid": status.uuid,
                    },
                }
            )
        if status.state.is_terminal:
            self._call({"type": "TEARDOWN"})
            return status
        return None

    def _call(self, call: Dict[str, Any]) -> None:
        call = {"framework_id": {"value": self.framework_id}, **call}
        headers = {"Mesos-Stream-Id": self.stream_id} if self.stream_id else {}
        logger.debug(f"http request: POST {self.url} body={json.dumps(call)}")
        try:
            response = self.http.post(self.url, json=call, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(f"{call['type']} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{call['type']} failed: {e}") from e
