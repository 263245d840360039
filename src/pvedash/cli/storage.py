"""Storage commands."""

import typer
from rich.table import Table

from ..utils import console, format_bytes, format_percentage, print_info
from ._shared import MOCK_OPTION_HELP, SERVER_OPTION_HELP, backend_for, cli_command

app = typer.Typer(help="Inspect storage", no_args_is_help=True)


@app.command("list")
@cli_command
async def list_storage(
    node: str = typer.Option(None, "--node", "-n", help="Show storage for specific node"),
    server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
    mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
) -> None:
    """List storage pools."""
    async with backend_for(server, mock) as client:
        pools = await client.get_storage()

    if node:
        pools = [p for p in pools if p.node == node]
    if not pools:
        print_info("No storage found")
        return

    table = Table(
        title=f"Storage on {node}" if node else "Cluster Storage",
        show_header=True,
        header_style="bold cyan",
    )
    if not node:
        table.add_column("Node", style="cyan")
    table.add_column("Storage", style="cyan")
    table.add_column("Type")
    table.add_column("Content")
    table.add_column("Status")
    table.add_column("Total", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Usage %", justify="right")

    for pool in sorted(pools, key=lambda p: (p.node or "", p.storage)):
        row = []
        if not node:
            row.append(pool.node or "-")

        if pool.enabled is False:
            status = "[red]disabled[/red]"
        elif pool.status and pool.status != "available":
            status = f"[yellow]{pool.status}[/yellow]"
        else:
            status = "[green]active[/green]"

        row.extend([pool.storage, pool.type or pool.plugintype or "-", pool.content or "-", status])

        if pool.capacity:
            row.extend([
                format_bytes(pool.capacity),
                format_bytes(pool.usage),
                format_percentage(pool.usage / pool.capacity * 100),
            ])
        else:
            row.extend(["-", "-", "-"])

        table.add_row(*row)

    console.print(table)
