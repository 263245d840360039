"""Whitelisted script commands."""

import typer

from ..api.tasks import TaskExecutor
from ..config import ConfigManager
from ..models.task import TaskState
from ..services import SCRIPT_CATALOG, get_script
from ..utils import confirm, console, create_table, print_cancelled, print_error, print_success, print_warning
from ._shared import MOCK_OPTION_HELP, SERVER_OPTION_HELP, backend_for, cli_command, ordered_group

app = typer.Typer(help="Run whitelisted scripts on nodes", no_args_is_help=True, cls=ordered_group(["list", "run"]))


@app.command("list")
def list_scripts() -> None:
    """List the scripts that may be run."""
    rows = [
        [script.id, script.name, "[yellow]yes[/yellow]" if script.privileged else "", f"[dim]{script.command}[/dim]"]
        for script in SCRIPT_CATALOG.values()
    ]
    console.print(
        create_table(
            title="Scripts",
            columns=[("ID", "cyan"), ("Name", ""), ("Privileged", ""), ("Command", "")],
            rows=rows,
        )
    )


@app.command("run")
@cli_command
async def run_script(
    script_id: str = typer.Argument(..., help="Script ID (see 'pvedash script list')"),
    node: str = typer.Argument(..., help="Node to run on"),
    timeout: int = typer.Option(None, "--timeout", "-t", help="Timeout in seconds"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    server: str = typer.Option(None, "--server", "-s", help=SERVER_OPTION_HELP),
    mock: bool = typer.Option(False, "--mock", help=MOCK_OPTION_HELP),
) -> None:
    """Run a script on a node and stream its output."""
    script = get_script(script_id)
    executor_config = ConfigManager().get_or_default().executor

    if script.privileged and not yes and not confirm(f"Run '{script.name}' on {node}?", default=False):
        print_cancelled()
        return

    async with backend_for(server, mock) as client:
        executor = TaskExecutor(
            client,
            poll_interval=executor_config.poll_interval,
            cancel_grace=executor_config.cancel_grace,
        )
        console.print(f"[bold]Running[/bold] {script.name} on [cyan]{node}[/cyan]\n")
        result = await executor.execute_and_await(
            node,
            script.command,
            timeout_seconds=timeout or executor_config.timeout_seconds,
            username=executor_config.username,
            on_output=lambda line: console.print(line, markup=False, highlight=False),
        )

    console.print()
    if result.state is TaskState.UNOBSERVABLE:
        print_warning(f"Lost track of task {result.upid}; output may be incomplete")
    if result.success:
        print_success(f"{script.name} finished in {result.duration_seconds}s")
        return

    print_error(f"{script.name} failed with exit status '{result.exit_code}' after {result.duration_seconds}s")
    raise typer.Exit(1)
