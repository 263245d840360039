"""Main CLI application."""

import typer

from .. import __version__
from ..utils import console
from ..utils.log import setup_logging
from . import cluster, ct, node, script, server, storage, vm

app = typer.Typer(
    name="pvedash",
    help="Proxmox VE cluster dashboard for the terminal",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(server.app, name="server")
app.add_typer(node.app, name="node")
app.add_typer(vm.app, name="vm")
app.add_typer(ct.app, name="ct")
app.add_typer(storage.app, name="storage")
app.add_typer(cluster.app, name="cluster")
app.add_typer(script.app, name="script")


def version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: Whether version flag was set
    """
    if value:
        console.print(f"pvedash version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and task polling"),
) -> None:
    """pvedash - Proxmox VE cluster dashboard for the terminal.

    Get started:
        pvedash server add lab --host pve.lab.local   # Set up your first server
        pvedash cluster health                        # Check the cluster
        pvedash vm list --mock                        # Try it with sample data
    """
    setup_logging(verbose)


if __name__ == "__main__":
    app()
