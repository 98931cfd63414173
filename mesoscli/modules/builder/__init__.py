"""
Builder Module - Black Box Interface

Purpose: Construct launchable task specifications from flags and files
Interface: TaskSpecBuilder, default_task_info()
Hidden: Flag parsing, build order, containerizer exclusivity, port resources

Can be driven by any flag source; the builder never touches the network.
"""

from .builder import (
    BUILD_STEPS,
    TaskOptions,
    TaskSpecBuilder,
    default_task_info,
    parse_env,
    parse_label,
    parse_network,
    parse_parameter,
    parse_port,
    parse_volume,
)

__all__ = [
    "BUILD_STEPS",
    "TaskOptions",
    "TaskSpecBuilder",
    "default_task_info",
    "parse_env",
    "parse_label",
    "parse_network",
    "parse_parameter",
    "parse_port",
    "parse_volume",
]
