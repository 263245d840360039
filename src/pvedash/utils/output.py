"""Terminal output for the CLI, built on Rich."""

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

console = Console()
# errors and log records go to stderr so --json output stays parseable
err_console = Console(stderr=True)

STATUS_COLORS = {
    "green": ("running", "online", "available", "active", "healthy", "completed", "ok"),
    "yellow": ("paused", "suspended", "warning", "pending", "cancelled", "unknown"),
    "red": ("stopped", "offline", "disabled", "critical", "failed", "error"),
}

BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")


def print_error(msg: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {msg}")


def print_success(msg: str) -> None:
    console.print(f"[bold green]✓[/bold green] {msg}")


def print_warning(msg: str) -> None:
    err_console.print(f"[bold yellow]Warning:[/bold yellow] {msg}")


def print_info(msg: str) -> None:
    console.print(f"[cyan]{msg}[/cyan]")


def print_cancelled(msg: str = "Cancelled") -> None:
    console.print(f"[yellow]{msg}[/yellow]")


def create_table(
    title: str | None = None,
    columns: list[tuple[str, str]] | None = None,
    rows: list[list[str]] | None = None,
) -> Table:
    """Build a table in the CLI's house style.

    Args:
        title: Table title
        columns: ``(header, style)`` pairs; an empty style means plain text
        rows: Cell values, one list per row

    Returns:
        Rich table
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for header, style in columns or []:
        table.add_column(header, style=style or None)
    for row in rows or []:
        table.add_row(*row)
    return table


def confirm(message: str, default: bool = False) -> bool:
    return Confirm.ask(message, default=default, console=console)


def prompt(message: str, default: str | None = None) -> str:
    """Ask for a line of text; an empty answer is returned as-is."""
    if default is None:
        return Prompt.ask(message, console=console)
    return Prompt.ask(message, default=default, console=console)


def format_bytes(value: float | None) -> str:
    """Format a byte count with binary units (``1.5 GiB``)."""
    size = float(value or 0)
    for unit in BYTE_UNITS:
        if size < 1024 or unit == BYTE_UNITS[-1]:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {BYTE_UNITS[-1]}"


def format_gib(value: float) -> str:
    """Format a GiB figure from the metrics records (``12.5 GiB``, ``1.20 TiB``)."""
    if value >= 1024:
        return f"{value / 1024:.2f} TiB"
    return f"{value:.1f} GiB"


def format_uptime(seconds: int | None) -> str:
    """Format an uptime as ``15d 3h 22m``."""
    days, remainder = divmod(int(seconds or 0), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    parts = [f"{n}{unit}" for n, unit in ((days, "d"), (hours, "h")) if n]
    if minutes or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


def usage_bar(percent: float, width: int = 10, label: str = "") -> str:
    """Render a usage percentage as a coloured bar.

    Args:
        percent: Usage between 0 and 100 (clamped)
        width: Bar width in characters
        label: Text appended after the percentage

    Returns:
        Rich markup string
    """
    percent = max(0.0, min(100.0, percent))
    filled = round(percent / 100 * width)
    color = "green" if percent < 60 else "yellow" if percent < 85 else "red"
    bar = f"[{color}]{'━' * filled}[/{color}][dim]{'━' * (width - filled)}[/dim] {percent:.0f}%"
    return f"{bar} {label}" if label else bar


def get_status_color(status: str) -> str:
    """Map a guest, node, health or execution status to a Rich colour."""
    status = status.lower()
    for color, names in STATUS_COLORS.items():
        if status in names:
            return color
    return "white"


def status_markup(status: str) -> str:
    color = get_status_color(status)
    return f"[{color}]{status}[/{color}]"
