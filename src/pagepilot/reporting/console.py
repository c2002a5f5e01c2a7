"""Rich-powered console output."""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pagepilot.models import AuthStatus, RequestRecord

_console = Console()


def print_banner(start_url: str) -> None:
    """Display the startup banner."""
    _console.print(
        Panel.fit(
            f"[bold cyan]PagePilot[/bold cyan]  —  {start_url}",
            border_style="cyan",
        )
    )


def print_verdict(status: AuthStatus | None, detail: str = "") -> None:
    """Print the outcome of an authentication run."""
    style_map = {
        AuthStatus.AUTHENTICATED: "bold green",
        AuthStatus.CANCELLED: "bold yellow",
        AuthStatus.TIMED_OUT: "bold red",
    }
    status = status or AuthStatus.TIMED_OUT
    style = style_map[status]
    line = f"  Auth: [{style}]{status.value}[/{style}]"
    if detail:
        line += f"  ({detail})"
    _console.print(line)


def print_request_table(records: Sequence[RequestRecord], limit: int = 50) -> None:
    """Display the most recent intercepted requests."""
    table = Table(
        title=f"Intercepted Requests ({len(records)})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Method", style="cyan")
    table.add_column("Status", justify="right")
    table.add_column("Type")
    table.add_column("URL", overflow="fold")

    start = max(len(records) - limit, 0)
    for index, record in enumerate(records[start:], start=start + 1):
        status = record.response.status
        style = "green" if 200 <= status < 400 else "red"
        table.add_row(
            str(index),
            record.method,
            f"[{style}]{status}[/{style}]",
            record.resource_type or "—",
            record.url,
        )

    _console.print()
    _console.print(table)
    _console.print()
