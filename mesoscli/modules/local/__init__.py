"""
Local Module - Black Box Interface

Purpose: Bootstrap a single-node cluster for testing
Interface: LocalCluster.up(), down(), status(), remove()
Hidden: Container engine commands, image and container lookup

Not used by any other module; only the `local` command drives it.
"""

from .local import CONTAINER_NAME, REPOSITORY, ContainerStatus, LocalCluster

__all__ = ["CONTAINER_NAME", "REPOSITORY", "ContainerStatus", "LocalCluster"]
