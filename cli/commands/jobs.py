"""Job Commands - submit workout logs and inspect the queue"""

import asyncio
from uuid import UUID

import typer
from rich.console import Console

from liftlog.config.settings import Settings
from liftlog.v1.core.exceptions import StoreError
from liftlog.v1.infra.jobs.policy import is_dead_lettered
from liftlog.v1.infra.jobs.runtime import QueueRuntime
from liftlog.v1.infra.jobs.schemas import JobStatusResponse

from ..utils.formatting import (
    create_job_panel,
    create_stats_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)

console = Console()
app = typer.Typer(name="jobs", help="Submit workout logs and inspect jobs")


@app.command("enqueue")
def enqueue(
    message: str = typer.Argument(..., help="Free-text workout log"),
    owner: str = typer.Option("cli", "--owner", "-o", help="Submitting user ID"),
):
    """📝 Queue a workout log message for processing"""

    async def run():
        async with QueueRuntime(Settings()) as runtime:
            return await runtime.store.create({"message": message}, owner)

    try:
        job = asyncio.run(run())
    except StoreError as e:
        print_error(f"Failed to enqueue job: {e.message}")
        raise typer.Exit(1) from None

    print_success(f"Enqueued job {job.id}")
    print_info(f"Check progress with: liftlog jobs status {job.id}")


@app.command("status")
def status(job_id: UUID = typer.Argument(..., help="Job ID")):
    """🔎 Show a job's status and result"""

    async def run():
        async with QueueRuntime(Settings()) as runtime:
            return await runtime.store.get(job_id)

    try:
        job = asyncio.run(run())
    except StoreError as e:
        print_error(f"Failed to fetch job: {e.message}")
        raise typer.Exit(1) from None

    if job is None:
        print_error(f"Job {job_id} not found")
        raise typer.Exit(1)

    data = JobStatusResponse.model_validate(job).model_dump(mode="json")
    console.print(create_job_panel(data))
    if is_dead_lettered(job.status, job.retry_count):
        print_warning("Retries exhausted, this job will not run again")


@app.command("stats")
def stats():
    """📊 Show queue depth by status"""

    async def run():
        async with QueueRuntime(Settings()) as runtime:
            return (
                await runtime.store.pending_count(),
                await runtime.store.count_by_status(),
            )

    try:
        pending_count, by_status = asyncio.run(run())
    except StoreError as e:
        print_error(f"Failed to read queue stats: {e.message}")
        raise typer.Exit(1) from None

    console.print(create_stats_table(pending_count, by_status))
