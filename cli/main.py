"""LiftLog CLI - Main Entry Point"""

import asyncio
import signal

import typer
from rich.console import Console
from rich.panel import Panel

from liftlog.config.logging import setup_logging
from liftlog.config.settings import Settings
from liftlog.v1.infra.jobs.runtime import QueueRuntime

from .commands import jobs
from .utils.formatting import print_error, print_info, print_success

console = Console()

# Create main Typer app
app = typer.Typer(
    name="liftlog",
    help="🏋️ LiftLog - workout log queue CLI",
    rich_markup_mode="rich",
)

# Add command subapps
app.add_typer(jobs.app, name="jobs")


@app.command()
def worker(
    workers: int | None = typer.Option(
        None, "--workers", "-w", min=1, help="Worker count (default: WORKER_COUNT)"
    ),
):
    """⚙️ Run the notification listener and worker pool until interrupted"""
    settings = Settings()
    setup_logging(settings, role="worker")

    async def run():
        async with QueueRuntime(settings) as runtime:
            pool = await runtime.start_workers(workers)
            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop.set)
            console.print(
                Panel(
                    f"🚀 [green]{pool.worker_count} workers running[/green]\n\n"
                    f"• Channel: [cyan]{settings.notify_channel}[/cyan]\n"
                    f"• Re-poll every: [yellow]{settings.poll_interval_s}s[/yellow]\n\n"
                    "Press Ctrl+C to stop",
                    title="LiftLog Worker",
                    border_style="green",
                )
            )
            await stop.wait()
            print_info("Shutting down workers...")

    asyncio.run(run())
    print_success("Workers stopped")


@app.command("init-db")
def init_db():
    """🗄️ Create tables and the job notification trigger"""
    settings = Settings()

    async def run():
        async with QueueRuntime(settings) as runtime:
            await runtime.init_schema()

    try:
        asyncio.run(run())
    except Exception as e:
        print_error(f"Failed to initialize database: {e}")
        raise typer.Exit(1) from None

    print_success("Database schema ready")


if __name__ == "__main__":
    app()
