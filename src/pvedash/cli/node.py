"""Node commands."""

import typer
from rich.panel import Panel
from rich.table import Table

from ..models.metrics import NodeMetrics
from ..utils import console, format_bytes, format_gib, format_percentage, format_uptime, status_markup, usage_bar
from ._shared import (
    MOCK_OPTION_HELP,
    SERVER_OPTION_HELP,
    backend_for,
    cli_command,
    ordered_group,
    print_model,
    wants_json,
)

app = typer.Typer(help="Inspect cluster nodes", no_args_is_help=True, cls=ordered_group(["list", "metrics"]))


@app.command("list")
@cli_command
async def list_nodes(
    server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
    mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
) -> None:
    """List all cluster nodes."""
    async with backend_for(server, mock) as client:
        nodes = await client.get_nodes()

    if not nodes:
        console.print("No nodes found")
        return

    table = Table(title="Cluster Nodes", show_header=True, header_style="bold cyan")
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Disk", justify="right")
    table.add_column("Uptime")

    for node in sorted(nodes, key=lambda n: n.node):
        if node.cpu is not None:
            cpu = f"{format_percentage(node.cpu * 100)} ({node.maxcpu or 0} cores)"
        else:
            cpu = "-"

        if node.maxmem:
            mem_used = node.mem or 0
            mem = f"{format_bytes(mem_used)} / {format_bytes(node.maxmem)} ({format_percentage(mem_used / node.maxmem * 100)})"
        else:
            mem = "-"

        if node.maxdisk:
            disk_used = node.disk or 0
            disk = f"{format_bytes(disk_used)} / {format_bytes(node.maxdisk)} ({format_percentage(disk_used / node.maxdisk * 100)})"
        else:
            disk = "-"

        table.add_row(
            node.node,
            status_markup(node.status),
            cpu,
            mem,
            disk,
            format_uptime(node.uptime) if node.uptime else "-",
        )

    console.print(table)


@app.command("metrics")
@cli_command
async def node_metrics(
    node: str = typer.Argument(..., help="Node name"),
    server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
    mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of a panel"),
) -> None:
    """Show aggregated resource usage for a node."""
    async with backend_for(server, mock) as client:
        metrics = await client.get_node_resource_metrics(node)

    if wants_json(json_output):
        print_model(metrics)
        return

    console.print(_render_node_panel(node, metrics))


def _render_node_panel(node: str, metrics: NodeMetrics) -> Panel:
    """Build a Rich Panel for a single node."""
    lines = []

    lines.append("[bold]── General ──[/bold]")
    lines.append(f"[bold]Status:[/bold]     {status_markup(metrics.status)}")
    lines.append(f"[bold]Uptime:[/bold]     {format_uptime(metrics.uptime) if metrics.uptime else '-'}")

    lines.append("")
    lines.append("[bold]── Usage ──[/bold]")
    lines.append(
        f"[bold]CPU:[/bold]        {usage_bar(metrics.cpu.percentage, 20)}  "
        f"{metrics.cpu.used:g} / {metrics.cpu.total:g} cores"
    )
    lines.append(
        f"[bold]Memory:[/bold]     {usage_bar(metrics.memory.percentage, 20)}  "
        f"{format_gib(metrics.memory.used)} / {format_gib(metrics.memory.total)}"
    )
    lines.append(
        f"[bold]Storage:[/bold]    {usage_bar(metrics.storage.percentage, 20)}  "
        f"{format_gib(metrics.storage.used)} / {format_gib(metrics.storage.total)}"
    )

    lines.append("")
    lines.append("[bold]── Guest traffic ──[/bold]")
    lines.append(f"[bold]In:[/bold]         {metrics.network.inbound:.1f} MiB")
    lines.append(f"[bold]Out:[/bold]        {metrics.network.outbound:.1f} MiB")

    return Panel("\n".join(lines), title=f"[bold cyan]{node}[/bold cyan]", expand=False)
