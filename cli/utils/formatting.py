"""Rich Formatting Utilities for CLI Output"""

import json
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "queued": "yellow",
    "processing": "blue",
    "completed": "green",
    "failed": "red",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def create_job_panel(job: dict[str, Any]) -> Panel:
    """Panel describing one job's status, result and error"""
    status = job.get("status", "unknown")
    style = STATUS_STYLES.get(status, "white")

    lines = [
        f"• Status: [{style}]{status}[/{style}]",
        f"• Created: [cyan]{job.get('created_at', '—')}[/cyan]",
        f"• Updated: [cyan]{job.get('updated_at', '—')}[/cyan]",
    ]
    if job.get("error"):
        lines.append(f"• Error: [red]{job['error']}[/red]")
    if job.get("result") is not None:
        lines.append("")
        lines.append(json.dumps(job["result"], indent=2))

    return Panel(
        "\n".join(lines),
        title=f"Job {job.get('id', '')}",
        border_style=style,
    )


def create_stats_table(pending_count: int, by_status: dict[str, int]) -> Table:
    """Table of job counts per status"""
    table = Table(title="Queue", box=box.ROUNDED)

    table.add_column("Status", justify="left", style="cyan")
    table.add_column("Jobs", justify="right", style="white")

    for status, count in sorted(by_status.items()):
        style = STATUS_STYLES.get(status, "white")
        table.add_row(f"[{style}]{status}[/{style}]", str(count))

    table.add_section()
    table.add_row("[bold]eligible for claim[/bold]", f"[bold]{pending_count}[/bold]")
    return table
