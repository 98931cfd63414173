"""
Local single-node cluster bootstrap.

Runs the vektorcloud/mesos image (master and agent in one container,
"mesos-local") through the docker CLI.
"""

import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional

from mesoscli.errors import LocalClusterError, NotFoundError

logger = logging.getLogger(__name__)

REPOSITORY = "quay.io/vektorcloud/mesos:latest"
CONTAINER_NAME = "mesos_cli"


@dataclass
class ContainerStatus:
    """A container as listed by the engine."""
    id: str
    names: List[str]
    state: str

    @property
    def running(self) -> bool:
        return self.state == "running"


class LocalCluster:
    """Manages the local cluster container."""

    def __init__(
        self,
        repository: str = REPOSITORY,
        name: str = CONTAINER_NAME,
        docker: str = "docker",
        timeout: int = 600,
    ):
        """
        Initialize local cluster manager.

        Args:
            repository: Image to run, with tag
            name: Container name
            docker: Container engine executable
            timeout: Seconds allowed for a single engine command (pulls are slow)
        """
        self.repository = repository
        self.name = name
        self.docker = docker
        self.timeout = timeout

    def _run(self, *args: str) -> str:
        cmd = [self.docker, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            process = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise LocalClusterError(f"{self.docker} is not installed") from e
        except subprocess.TimeoutExpired as e:
            raise LocalClusterError(f"{' '.join(cmd)} timed out") from e
        if process.returncode != 0:
            raise LocalClusterError(
                f"{' '.join(cmd)} failed ({process.returncode}): {process.stderr.strip()}"
            )
        return process.stdout

    def _list(self, *args: str) -> List[Dict]:
        output = self._run(*args, "--format", "{{json .}}")
        return [json.loads(line) for line in output.splitlines() if line.strip()]

    def find_image(self) -> Optional[str]:
        """Return the ID of the local image matching the repository tag."""
        for image in self._list("images", "--all"):
            if f"{image.get('Repository')}:{image.get('Tag')}" == self.repository:
                return image.get("ID")
        return None

    def find_container(self) -> Optional[ContainerStatus]:
        for container in self._list("ps", "--all"):
            names = [n.lstrip("/") for n in container.get("Names", "").split(",")]
            if self.name in names:
                return ContainerStatus(
                    id=container.get("ID", ""),
                    names=names,
                    state=container.get("State", ""),
                )
        return None

    def up(self, remove: bool = False, force: bool = False) -> ContainerStatus:
        """
        Start the local cluster.

        Args:
            remove: Remove any existing cluster container first
            force: Pull the image even if it is present

        Logic:
        1. Pull the image if it is absent or a pull is forced
        2. Remove the existing container when asked
        3. Create the container with host networking and the docker socket mounted
        4. Start it
        """
        if force or self.find_image() is None:
            logger.info(f"Pulling {self.repository}")
            self._run("pull", self.repository)
            if self.find_image() is None:
                raise LocalClusterError(f"Cannot pull image {self.repository}")

        container = self.find_container()
        if container is not None and remove:
            self._run("rm", "--force", container.id)
            container = None

        if container is None:
            self._run(
                "create",
                "--name", self.name,
                "--network", "host",
                "--volume", "/var/run/docker.sock:/var/run/docker.sock:rw",
                self.repository,
                "mesos-local",
            )
            container = self.find_container()
            if container is None:
                raise LocalClusterError(f"Container {self.name} was not created")

        self._run("start", container.id)
        return self.find_container() or container

    def down(self) -> ContainerStatus:
        """Stop the running cluster container."""
        container = self.find_container()
        if container is None:
            raise NotFoundError("no container found")
        if not container.running:
            raise LocalClusterError(f"container is in invalid state: {container.state}")
        self._run("stop", container.id)
        return container

    def status(self) -> Optional[ContainerStatus]:
        return self.find_container()

    def remove(self) -> ContainerStatus:
        container = self.find_container()
        if container is None:
            raise NotFoundError("no container found")
        self._run("rm", "--force", container.id)
        return container
