#!/usr/bin/env python3
"""
mesoscli - Main Entry Point

This is the thin orchestration layer that:
1. Loads settings and the selected profile
2. Wires modules together per command
3. Renders results

All business logic is in the modules, following black box principles.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from mesoscli import __version__
from mesoscli.config.provider import CLISettings, EnvConfigProvider, Profile, load_profile
from mesoscli.errors import EXIT_OK, EXIT_RUNTIME, EXIT_USAGE, MesosCLIError, UsageError
from mesoscli.logging_config import configure_logging
from mesoscli.modules.api import AgentRecord, TaskRecord, TaskState
from mesoscli.modules.builder import TaskSpecBuilder
from mesoscli.modules.client import OperatorClient, master_endpoint
from mesoscli.modules.filter import build_filters
from mesoscli.modules.local import LocalCluster
from mesoscli.modules.paginator import TaskPaginator, stream_tasks
from mesoscli.modules.resolver import sandbox_directory
from mesoscli.modules.scheduler import TaskSubmitter

logger = logging.getLogger(__name__)

console = Console()


@dataclass
class CLIContext:
    """Per-invocation state threaded into every command."""
    settings: CLISettings
    profile_name: str
    config_path: str

    def profile(self, master: Optional[str] = None) -> Profile:
        """Load the selected profile, applying --master or MESOS_MASTER."""
        profile = load_profile(self.config_path, self.profile_name)
        return profile.with_master(master or self.settings.master)


def fail_on_error(func):
    """Report MesosCLIError as a single line and exit with its code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MesosCLIError as e:
            logger.debug("command failed", exc_info=True)
            click.echo(f"Encountered Error: {e}", err=True)
            click.get_current_context().exit(e.exit_code)

    return wrapper


def trunc_str(s: str, length: int) -> str:
    return s[:length]


def task_table() -> Table:
    table = Table(box=None, pad_edge=False, header_style="bold")
    for column in ("ID", "FRAMEWORK", "STATE", "CPUS", "MEM", "GPUS", "DISK"):
        table.add_column(column, no_wrap=True)
    return table


def add_task_row(table: Table, task: TaskRecord) -> None:
    table.add_row(
        task.id,
        trunc_str(task.framework_id, 8),
        task.state.value,
        str(task.resources.cpus),
        str(task.resources.mem),
        str(task.resources.gpus),
        str(task.resources.disk),
    )


def agent_table(agents) -> Table:
    table = Table(box=None, pad_edge=False, header_style="bold")
    for column in ("ID", "FQDN", "VERSION", "UPTIME", "CPUS", "MEM", "GPUS", "DISK"):
        table.add_column(column, no_wrap=True)
    for agent in agents:
        table.add_row(
            agent.id,
            agent.fqdn,
            agent.version,
            str(agent.uptime),
            *(usage(agent, name) for name in ("cpus", "mem", "gpus", "disk")),
        )
    return table


def usage(agent: AgentRecord, name: str) -> str:
    return f"{getattr(agent.used_resources, name):.2f}/{getattr(agent.resources, name):.2f}"


master_option = click.option("--master", default=None, help="Mesos Master")


@click.group()
@click.option("--profile", "profile_name", default=None, help="Profile to load from the config file")
@click.option("--config", "config_path", default=None, help="Path to the config file")
@click.option("--debug", is_flag=True, help="Log HTTP requests and internals to stderr")
@click.version_option(__version__)
@click.pass_context
@fail_on_error
def cli(ctx, profile_name: Optional[str], config_path: Optional[str], debug: bool):
    """Mesos command line client."""
    settings = EnvConfigProvider().get_settings()
    configure_logging("DEBUG" if debug else settings.log_level)
    ctx.obj = CLIContext(
        settings=settings,
        profile_name=profile_name or settings.profile,
        config_path=config_path or settings.config_path,
    )


@cli.command()
@master_option
@click.option("--limit", default=100, show_default=True, help="maximum number of tasks to return per request")
@click.option("--max", "max_results", default=250, show_default=True, help="maximum number of tasks to list")
@click.option("--name", default=None, help="regular expression to match the task name")
@click.option("-a", "--all", "all_tasks", is_flag=True, help="show all tasks")
@click.option("-r", "--running", is_flag=True, help="show running tasks")
@click.option("-fa", "--failed", is_flag=True, help="show failed tasks")
@click.option("-k", "--killed", is_flag=True, help="show killed tasks")
@click.option("-f", "--finished", is_flag=True, help="show finished tasks")
@click.argument("order", required=False, default="desc")
@click.pass_obj
@fail_on_error
def ps(obj: CLIContext, master, limit, max_results, name, all_tasks, running, failed, killed, finished, order):
    """List tasks. ORDER is asc or desc (a hint to the master)."""
    predicates = build_filters(
        name=name,
        all_tasks=all_tasks,
        running=running,
        failed=failed,
        killed=killed,
        finished=finished,
    )
    profile = obj.profile(master)
    with OperatorClient(master_endpoint(profile.master), obj.settings.timeout) as client:
        paginator = TaskPaginator(client, limit=limit, max_results=max_results, order=order)
        table = task_table()
        try:
            for task in stream_tasks(paginator, predicates):
                add_task_row(table, task)
        finally:
            # Records streamed before a failure are still shown
            console.print(table)


@cli.command()
@master_option
@click.argument("task_id", metavar="ID")
@click.pass_obj
@fail_on_error
def ls(obj: CLIContext, master, task_id):
    """Print the sandbox directory of a task."""
    profile = obj.profile(master)
    with OperatorClient(master_endpoint(profile.master), obj.settings.timeout) as client:
        click.echo(sandbox_directory(client, task_id))


@cli.command()
@master_option
@click.pass_obj
@fail_on_error
def agents(obj: CLIContext, master):
    """List agents and their resource usage."""
    profile = obj.profile(master)
    with OperatorClient(master_endpoint(profile.master), obj.settings.timeout) as client:
        console.print(agent_table(client.list_agents()))


@cli.command()
@master_option
@click.option("--task", "task_path", default=None, help="Path to a Mesos TaskInfo JSON file")
@click.option("--param", "parameters", multiple=True, help="Docker parameters (KEY=VALUE)")
@click.option("-i", "--image", default=None, help="Docker image to run")
@click.option("-v", "--volume", "volumes", multiple=True, help="Volume mappings (HOST:CONTAINER[:ro|rw])")
@click.option("-p", "--ports", "ports", multiple=True, help="Port mappings (CONTAINER:HOST[/protocol])")
@click.option("-e", "--env", "envs", multiple=True, help="Environment Variables (KEY=VALUE)")
@click.option("-l", "--label", "labels", multiple=True, help="Task labels (KEY=VALUE)")
@click.option("-s", "--shell", default=None, help="Shell command to execute")
@click.option("-n", "--name", default=None, help="Task Name")
@click.option("-u", "--user", default=None, help="User to run as")
@click.option("-c", "--cpus", type=float, default=None, help="CPU Resources to allocate")
@click.option("-m", "--mem", type=float, default=None, help="Memory Resources (mb) to allocate")
@click.option("-d", "--disk", type=float, default=None, help="Disk Resources (mb) to allocate")
@click.option("--privileged", is_flag=True, help="Give extended privileges to this container")
@click.option("-f", "--force-pull-image", is_flag=True, help="Always pull the container image")
@click.option("--network", default=None, help="Docker network mode (host, bridge, none, user)")
@click.argument("arguments", nargs=-1, metavar="[ARG...]")
@click.pass_context
@fail_on_error
def run(ctx, master, task_path, parameters, image, volumes, ports, envs, labels, shell, name, user,
        cpus, mem, disk, privileged, force_pull_image, network, arguments):
    """Build a task from flags, a task file or a shell string and launch it."""
    obj: CLIContext = ctx.obj
    profile = obj.profile(master)
    builder = (
        TaskSpecBuilder(profile.task_info)
        .task_file(task_path)
        .shell(shell)
        .arguments(arguments)
        .name(name)
        .user(user)
        .cpus(cpus)
        .mem(mem)
        .disk(disk)
        .env(envs)
        .labels(labels)
        .volumes(volumes)
        .parameters(parameters)
        .ports(ports)
        .image(image)
        .privileged(privileged or None)
        .force_pull_image(force_pull_image or None)
        .network(network)
    )
    try:
        task = builder.build()
    except UsageError:
        click.echo(ctx.get_help())
        ctx.exit(EXIT_USAGE)

    submitter = TaskSubmitter(master_endpoint(profile.master), obj.settings.timeout)
    try:
        status = submitter.submit(task)
    finally:
        submitter.http.close()

    message = f": {status.message}" if status.message else ""
    click.echo(f"{status.task_id} {status.state.value}{message}")
    ctx.exit(EXIT_OK if status.state == TaskState.FINISHED else EXIT_RUNTIME)


@cli.group()
def local():
    """Manage a local single-node cluster."""


@local.command()
@click.option("--rm", "--remove", "remove", is_flag=True, help="Remove any existing local cluster")
@click.option("-f", "--force", is_flag=True, help="Force pull a new image from vektorcloud")
@fail_on_error
def up(remove, force):
    """Start the local cluster."""
    container = LocalCluster().up(remove=remove, force=force)
    click.echo(f"{container.id}: {container.state}")


@local.command()
@fail_on_error
def down():
    """Stop the local cluster."""
    container = LocalCluster().down()
    click.echo(f"stopped container {container.id}")


@local.command()
@fail_on_error
def status():
    """Display the status of the local cluster."""
    container = LocalCluster().status()
    if container is None:
        click.echo("no container found")
    else:
        click.echo(f"{container.id}: {container.state}")


@local.command()
@fail_on_error
def rm():
    """Remove the local cluster."""
    container = LocalCluster().remove()
    click.echo(f"removed container {container.id}")


def main():
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
