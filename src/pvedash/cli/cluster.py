"""Cluster-wide commands."""

import typer
from rich.panel import Panel
from rich.table import Table

from ..utils import console, format_gib, format_percentage, format_uptime, status_markup, usage_bar
from ._shared import (
    MOCK_OPTION_HELP,
    SERVER_OPTION_HELP,
    backend_for,
    cli_command,
    ordered_group,
    print_model,
    wants_json,
)

app = typer.Typer(help="Cluster metrics and health", no_args_is_help=True, cls=ordered_group(["health", "metrics"]))


@app.command("metrics")
@cli_command
async def cluster_metrics(
    server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
    mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of a panel"),
) -> None:
    """Show aggregated cluster resource usage."""
    async with backend_for(server, mock) as client:
        metrics = await client.get_cluster_resource_metrics()

    if wants_json(json_output):
        print_model(metrics)
        return

    lines = [
        f"[bold]Nodes:[/bold]      {metrics.nodes.online}/{metrics.nodes.total} online",
        f"[bold]CPU:[/bold]        {usage_bar(metrics.cpu.percentage, 20)}  "
        f"{metrics.cpu.used:g} / {metrics.cpu.total:g} cores",
        f"[bold]Memory:[/bold]     {usage_bar(metrics.memory.percentage, 20)}  "
        f"{format_gib(metrics.memory.used)} / {format_gib(metrics.memory.total)}",
        f"[bold]Storage:[/bold]    {usage_bar(metrics.storage.percentage, 20)}  "
        f"{format_gib(metrics.storage.used)} / {format_gib(metrics.storage.total)}",
        f"[bold]Traffic:[/bold]    in {metrics.network.inbound:.1f} MiB, out {metrics.network.outbound:.1f} MiB",
    ]
    console.print(Panel("\n".join(lines), title="[bold cyan]Cluster Resources[/bold cyan]", expand=False))


@app.command("health")
@cli_command
async def cluster_health(
    server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
    mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
    json_output: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
) -> None:
    """Show cluster health and per-node state."""
    async with backend_for(server, mock) as client:
        health = await client.get_cluster_health()

    if wants_json(json_output):
        print_model(health)
        return

    summary = health.summary
    console.print(
        f"Cluster is {status_markup(health.status)} "
        f"(quorum: {'yes' if health.quorum else '[red]no[/red]'}, "
        f"{summary.online_nodes}/{summary.total_nodes} nodes online, "
        f"avg CPU {format_percentage(summary.avg_cpu_usage)}, "
        f"avg memory {format_percentage(summary.avg_memory_usage)})"
    )

    if not health.nodes:
        return

    table = Table(title="Nodes", show_header=True, header_style="bold cyan")
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Uptime")

    for node in health.nodes:
        table.add_row(
            node.name,
            status_markup(node.status),
            format_percentage(node.cpu_usage),
            format_percentage(node.memory_usage),
            format_uptime(node.uptime) if node.uptime else "-",
        )

    console.print(table)
