"""Server profile commands."""

from getpass import getpass

import typer
from rich.panel import Panel
from rich.table import Table

from ..api.exceptions import PVEDashError
from ..api.mock import is_mock_host
from ..api.registry import open_client
from ..config import ConfigManager
from ..models.config import ServerProfile
from ..utils import confirm, console, print_cancelled, print_error, print_info, print_success, print_warning, prompt
from ._shared import cli_command, ordered_group

app = typer.Typer(
    help="Manage Proxmox server profiles",
    no_args_is_help=True,
    cls=ordered_group(["add", "list", "show", "default", "test", "remove"]),
)


# ── Shared helpers ───────────────────────────────────────────────────────


def _render_server_panel(profile: ServerProfile) -> Panel:
    """Build a Rich Panel for a server profile."""
    lines = []
    lines.append("[bold]── Connection ──[/bold]")
    lines.append(f"[bold]Host:[/bold]        {profile.hostname or '-'}:{profile.port}")
    lines.append(f"[bold]User:[/bold]        {profile.userid}")
    lines.append(f"[bold]Password:[/bold]    {'set' if profile.password else 'not set'}")
    lines.append(f"[bold]SSL:[/bold]         {'Yes' if profile.use_ssl else 'No'}")
    lines.append(f"[bold]Verify cert:[/bold] {'Yes' if profile.verify_tls else 'No'}")
    lines.append(f"[bold]Timeout:[/bold]     {profile.timeout}s")

    if is_mock_host(profile.hostname):
        lines.append("")
        lines.append("[yellow]Placeholder host, sample data is shown instead of live data[/yellow]")

    if profile.is_default:
        lines.append("")
        lines.append("[green]Default server[/green]")

    return Panel("\n".join(lines), title=f"Server: {profile.name}", border_style="blue")


# ── server add ───────────────────────────────────────────────────────────


@app.command("add")
def add_server(
    name: str = typer.Argument(..., help="Server name"),
    hostname: str = typer.Option(None, "--host", "-H", help="Proxmox host (IP or hostname)"),
    port: int = typer.Option(8006, "--port", "-P", help="Proxmox port"),
    username: str = typer.Option("root", "--user", "-u", help="Username (without realm)"),
    realm: str = typer.Option("pam", "--realm", "-r", help="Authentication realm"),
    password: str = typer.Option(None, "--password", "-p", help="Password (prompted when omitted)"),
    no_ssl: bool = typer.Option(False, "--no-ssl", help="Use plain HTTP"),
    ignore_cert: bool = typer.Option(False, "--ignore-cert", help="Skip certificate verification"),
    timeout: int = typer.Option(30, "--timeout", help="Request timeout in seconds"),
    default: bool = typer.Option(False, "--default", "-d", help="Make this the default server"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Save without confirmation"),
) -> None:
    """Add or replace a server profile."""
    config_manager = ConfigManager()

    try:
        if hostname is None:
            while not (hostname := prompt("Proxmox host (IP or hostname)")):
                print_error("Host is required")

        if password is None and not is_mock_host(hostname):
            while not (password := getpass("Password: ")):
                print_error("Password is required")

        profile = ServerProfile(
            name=name,
            hostname=hostname,
            port=port,
            username=username,
            realm=realm,
            password=password,
            use_ssl=not no_ssl,
            ignore_cert=ignore_cert,
            timeout=timeout,
            is_default=default,
        )

        console.print()
        console.print(_render_server_panel(profile))

        if not yes and not confirm("\nSave this server?", default=True):
            print_cancelled()
            raise typer.Exit()

        existing = config_manager.get_or_default().servers
        if name in existing:
            print_warning(f"Replacing existing server '{name}'")
        config_manager.add_server(profile)

        if config_manager.get().default_server == name:
            print_success(f"Server '{name}' added (set as default)")
        else:
            print_success(f"Server '{name}' added")

    except KeyboardInterrupt:
        console.print()
        print_cancelled()
    except ValueError as e:
        print_error(f"Invalid server settings: {e}")
        raise typer.Exit(1)
    except PVEDashError as e:
        print_error(str(e))
        raise typer.Exit(1)


# ── server list / show ───────────────────────────────────────────────────


@app.command("list")
def list_servers() -> None:
    """List configured servers."""
    config_manager = ConfigManager()

    try:
        config = config_manager.get_or_default()
        if not config.servers:
            print_info("No servers configured. Run 'pvedash server add' to create one.")
            return

        table = Table(title="Servers", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="cyan")
        table.add_column("Host")
        table.add_column("User")
        table.add_column("TLS")
        table.add_column("Default", justify="center")

        for name in sorted(config.servers):
            server = config.servers[name]
            if not server.use_ssl:
                tls = "[red]off[/red]"
            elif server.ignore_cert:
                tls = "[yellow]unverified[/yellow]"
            else:
                tls = "[green]verified[/green]"
            table.add_row(
                name,
                f"{server.hostname or '-'}:{server.port}",
                server.userid,
                tls,
                "[green]✓[/green]" if name == config.default_server else "",
            )

        console.print(table)

    except PVEDashError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("show")
def show_server(
    name: str = typer.Argument(None, help="Server name (default server when omitted)"),
) -> None:
    """Show a server profile."""
    try:
        console.print(_render_server_panel(ConfigManager().get_server(name)))
    except PVEDashError as e:
        print_error(str(e))
        raise typer.Exit(1)


# ── server default / remove ──────────────────────────────────────────────


@app.command("default")
def set_default(name: str = typer.Argument(..., help="Server name")) -> None:
    """Set the default server."""
    try:
        ConfigManager().set_default_server(name)
        print_success(f"Default server set to '{name}'")
    except PVEDashError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("remove")
def remove_server(
    name: str = typer.Argument(..., help="Server name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove a server profile."""
    config_manager = ConfigManager()

    try:
        config_manager.get_server(name)
        if not yes and not confirm(f"Remove server '{name}'?", default=False):
            print_cancelled()
            return

        config_manager.remove_server(name)
        print_success(f"Server '{name}' removed")

        default = config_manager.get().default_server
        if default:
            print_info(f"Default server is now '{default}'")

    except PVEDashError as e:
        print_error(str(e))
        raise typer.Exit(1)


# ── server test ──────────────────────────────────────────────────────────


@app.command("test")
@cli_command
async def test_server(
    name: str = typer.Argument(None, help="Server name (default server when omitted)"),
) -> None:
    """Log in to a server and report its version."""
    config_manager = ConfigManager()
    profile = config_manager.get_server(name)
    session = config_manager.get().session

    async with open_client(profile, ticket_lifetime=session.ticket_lifetime) as client:
        with console.status(f"Connecting to {profile.hostname}..."):
            result = await client.test_connection()

    if result.success:
        suffix = " (sample data)" if client.mock else ""
        print_success(f"Connected to '{profile.name}': Proxmox VE {result.version}{suffix}")
        return

    print_error(f"Connection to '{profile.name}' failed [{result.kind}]: {result.error}")
    raise typer.Exit(1)
