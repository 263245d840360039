"""Shared command implementations for the pvedash CLI.

VM and CT commands are nearly identical, so the guest sub-apps are built
from one parameterized implementation here. The other helpers resolve the
server profile, open a backend, and report errors the same way everywhere.
"""

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncIterator, Callable, Coroutine

import typer
from pydantic import BaseModel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from typer.core import TyperGroup

from ..api.base import ProxmoxBackend
from ..api.exceptions import PVEDashError
from ..api.registry import open_client
from ..config import ConfigManager
from ..models.config import OutputConfig, ServerProfile
from ..models.guest import GuestResource
from ..utils import (
    confirm,
    console,
    format_bytes,
    format_percentage,
    format_uptime,
    print_cancelled,
    print_error,
    print_success,
    print_warning,
    status_markup,
)

SERVER_OPTION_HELP = "Server profile to use"
MOCK_OPTION_HELP = "Use synthetic sample data instead of a live server"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def cli_command(func: Callable[..., Coroutine[Any, Any, Any]]) -> Callable[..., Any]:
    """Run an async command and turn pvedash errors into exit code 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return asyncio.run(func(*args, **kwargs))
        except PVEDashError as e:
            print_error(str(e))
            raise typer.Exit(1)

    return wrapper


def ordered_group(order: list[str]) -> type[TyperGroup]:
    """Create a TyperGroup subclass that orders commands."""

    class _OrderedGroup(TyperGroup):
        def list_commands(self, ctx: Any) -> list[str]:
            commands = super().list_commands(ctx)
            rank = {n: i for i, n in enumerate(order)}
            return sorted(commands, key=lambda n: rank.get(n, 99))

    return _OrderedGroup


def resolve_server(config_manager: ConfigManager, server: str | None, mock: bool) -> ServerProfile:
    """Find the server profile for a command.

    With ``--mock`` and no configuration, a placeholder profile is used so
    the CLI works without any setup.
    """
    if mock and server is None and not config_manager.exists():
        return ServerProfile(name="mock", hostname="mock")
    return config_manager.get_server(server)


def output_settings() -> OutputConfig:
    """Output preferences from the config file, defaults when there is none."""
    return ConfigManager().get_or_default().output


def wants_json(flag: bool) -> bool:
    return flag or output_settings().format == "json"


def print_model(model: BaseModel) -> None:
    """Print a result model as JSON."""
    console.print_json(model.model_dump_json())


@asynccontextmanager
async def backend_for(server: str | None, mock: bool) -> AsyncIterator[ProxmoxBackend]:
    """Open the backend for a command and close it afterwards."""
    config_manager = ConfigManager()
    profile = resolve_server(config_manager, server, mock)
    session = config_manager.get_or_default().session
    async with open_client(profile, force_mock=mock, ticket_lifetime=session.ticket_lifetime) as client:
        if client.mock and not mock:
            print_warning(f"'{profile.hostname}' is a placeholder host, showing sample data")
        yield client


async def run_with_spinner(
    client: ProxmoxBackend,
    node: str,
    action_desc: str,
    coro: Coroutine,
    wait_desc: str | None = None,
    timeout: int | None = None,
) -> str:
    """Run an API action with a Progress spinner and optionally wait for completion.

    Args:
        client: Backend instance.
        node: Node name.
        action_desc: Initial spinner description (e.g. "Starting VM 100...").
        coro: Coroutine that returns a UPID string.
        wait_desc: Spinner text while waiting; no waiting when None.
        timeout: Optional timeout for wait_for_task.

    Returns:
        The UPID string.

    Raises:
        PVEDashError: If the task ends with a failure status
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task_id = progress.add_task(description=action_desc, total=None)
        upid = await coro
        if wait_desc:
            progress.update(task_id, description=wait_desc)
            kwargs = {"timeout": timeout} if timeout else {}
            status = await client.wait_for_task(node, upid, **kwargs)
            if not status.succeeded:
                raise PVEDashError(f"Task failed with status: {status.exitstatus}")
    return upid


# ---------------------------------------------------------------------------
# Guest (VM / CT) commands
# ---------------------------------------------------------------------------

POWER_VERBS = {
    "start": ("Starting", "started"),
    "stop": ("Stopping", "stopped"),
    "shutdown": ("Shutting down", "shut down"),
    "reboot": ("Rebooting", "rebooted"),
}


def guest_table(guests: list[GuestResource], title: str) -> Table:
    """Render a VM or container listing."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Node")
    table.add_column("Status")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Uptime")

    for guest in sorted(guests, key=lambda g: g.vmid):
        # stopped guests report no usage; show a dash rather than 0
        cpu = format_percentage(guest.cpu * 100) if guest.cpu is not None else "-"
        if guest.mem is not None and guest.maxmem:
            mem = f"{format_bytes(guest.mem)} / {format_bytes(guest.maxmem)}"
        elif guest.maxmem:
            mem = f"- / {format_bytes(guest.maxmem)}"
        else:
            mem = "-"
        table.add_row(
            str(guest.vmid),
            guest.name or "-",
            guest.node or "-",
            status_markup(guest.status),
            cpu,
            mem,
            format_uptime(guest.uptime) if guest.uptime else "-",
        )
    return table


def build_guest_app(kind: str, label: str) -> typer.Typer:
    """Build the ``vm`` or ``ct`` sub-app.

    Args:
        kind: ``qemu`` or ``lxc``
        label: Human label ("VM" or "Container")

    Returns:
        Typer app with list and power commands
    """
    app = typer.Typer(
        help=f"Manage {label.lower()}s",
        no_args_is_help=True,
        cls=ordered_group(["list", "start", "shutdown", "stop", "reboot"]),
    )

    async def _list_all(client: ProxmoxBackend) -> list[GuestResource]:
        if kind == "qemu":
            return list(await client.get_all_vms())
        return list(await client.get_all_containers())

    @app.command("list")
    @cli_command
    async def list_guests(
        node: str = typer.Option(None, "--node", "-n", help="Only show guests on this node"),
        server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
        mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
    ) -> None:
        async with backend_for(server, mock) as client:
            guests = await _list_all(client)
            if node:
                guests = [g for g in guests if g.node == node]
            if not guests:
                console.print(f"No {label.lower()}s found")
                return
            console.print(guest_table(guests, f"{label}s"))

    list_guests.__doc__ = f"List {label.lower()}s."

    def _power_command(action: str) -> None:
        present, past = POWER_VERBS[action]

        @cli_command
        async def command(
            vmid: int = typer.Argument(..., help=f"{label} ID"),
            wait: bool = typer.Option(False, "--wait", "-w", help="Wait for the task to finish"),
            yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
            server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
            mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
        ) -> None:
            async with backend_for(server, mock) as client:
                guest = next((g for g in await _list_all(client) if g.vmid == vmid), None)
                if guest is None or not guest.node:
                    print_error(f"{label} {vmid} not found")
                    raise typer.Exit(1)

                if action == "start" and guest.running:
                    print_warning(f"{label} {vmid} is already running")
                    return
                if action in ("stop", "shutdown") and guest.status == "stopped":
                    print_warning(f"{label} {vmid} is already stopped")
                    return
                if action == "stop" and not yes and output_settings().confirm_destructive:
                    if not confirm(f"Hard stop {label} {vmid}?", default=False):
                        print_cancelled()
                        return

                upid = await run_with_spinner(
                    client,
                    guest.node,
                    f"{present} {label} {vmid}...",
                    client.guest_power_action(kind, guest.node, vmid, action),
                    f"Waiting for {label} {vmid}..." if wait else None,
                )
                if wait:
                    print_success(f"{label} {vmid} {past}")
                else:
                    print_success(f"{action.capitalize()} submitted for {label} {vmid} ({upid})")

        command.__doc__ = f"{action.capitalize()} a {label.lower()} (returns once submitted unless --wait)."
        app.command(action)(command)

    for action in POWER_VERBS:
        _power_command(action)

    return app
