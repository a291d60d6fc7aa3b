"""
Worker pool for the workout log queue.

Each worker is a two-state machine. In ACTIVE_POLL it claims and
processes jobs until the queue is empty, then moves to LISTEN and waits
for the first of: shutdown, a hint from the notification listener, or
the periodic re-poll timer. Every wake-up goes back through claim(), so
Postgres row locks alone decide which worker gets which job.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from enum import Enum

from liftlog.config.logging import get_logger
from liftlog.config.settings import Settings
from liftlog.v1.core.exceptions import (
    InvalidTransitionError,
    LiftLogException,
    StoreError,
)
from liftlog.v1.infra.jobs.listener import HintChannel
from liftlog.v1.infra.jobs.models import Job
from liftlog.v1.infra.jobs.policy import Outcome, disposition, next_status
from liftlog.v1.infra.jobs.processor import JobProcessor
from liftlog.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Attempts at writing a finished job back before giving up on it.
UPDATE_ATTEMPTS = 3


class WorkerState(str, Enum):
    ACTIVE_POLL = "active_poll"
    LISTEN = "listen"
    STOPPED = "stopped"


class Backoff:
    """Doubling delay between a floor and a ceiling. One per worker."""

    def __init__(self, floor_s: float, ceiling_s: float):
        self.floor_s = floor_s
        self.ceiling_s = ceiling_s
        self.current_s = floor_s

    def next_delay(self) -> float:
        delay = self.current_s
        self.current_s = min(self.current_s * 2, self.ceiling_s)
        return delay

    def reset(self) -> None:
        self.current_s = self.floor_s


class WorkerPool:
    """N independent workers sharing a JobStore and a hint channel."""

    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        processor: JobProcessor,
        hints: HintChannel | None = None,
        worker_count: int | None = None,
        sleep: Sleep | None = None,
    ):
        self.settings = settings
        self.store = store
        self.processor = processor
        self.hints = hints
        self.worker_count = worker_count or settings.worker_count
        self.poll_interval_s = settings.poll_interval_s
        self._sleep = sleep
        self._shutdown = asyncio.Event()
        self._workers: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def _backoff(self) -> Backoff:
        return Backoff(
            self.settings.backoff_floor_ms / 1000, self.settings.backoff_ceiling_s
        )

    async def start(self) -> None:
        """Start all workers together."""
        if self._workers:
            raise RuntimeError("Worker pool is already running")

        self._shutdown.clear()
        self._workers = [
            asyncio.create_task(self.run_worker(index), name=f"worker-{index}")
            for index in range(self.worker_count)
        ]
        logger.info(
            "Started worker pool",
            worker_count=self.worker_count,
            poll_interval_s=self.poll_interval_s,
            listening=self.hints is not None,
        )

    def request_shutdown(self) -> None:
        """Signal every worker; each stops at its next wait point."""
        self._shutdown.set()

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop the pool, waiting a bounded time for in-flight jobs."""
        timeout = timeout if timeout is not None else self.settings.shutdown_timeout_s
        logger.info("Stopping worker pool", timeout_s=timeout)
        self.request_shutdown()
        if not self._workers:
            return

        _, pending = await asyncio.wait(self._workers, timeout=timeout)
        if pending:
            logger.warning(
                "Shutdown timeout: some workers may still be running",
                still_running=sorted(task.get_name() for task in pending),
            )
        else:
            logger.info("All workers gracefully stopped")

    async def run_worker(self, index: int) -> None:
        """One worker's state machine, until shutdown is observed."""
        worker_id = f"worker-{index}"
        backoff = self._backoff()
        state = WorkerState.ACTIVE_POLL
        logger.info("Worker started", worker_id=worker_id)

        while state is not WorkerState.STOPPED:
            if state is WorkerState.ACTIVE_POLL:
                state = await self._active_poll(worker_id, backoff)
            else:
                state = await self._listen(worker_id)

        logger.info("Worker shutting down", worker_id=worker_id)

    async def _active_poll(self, worker_id: str, backoff: Backoff) -> WorkerState:
        if self._shutdown.is_set():
            return WorkerState.STOPPED

        try:
            job = await self.store.claim()
        except StoreError as e:
            delay = backoff.next_delay()
            logger.warning(
                "Error claiming job", worker_id=worker_id, error=e.message, retry_in_s=delay
            )
            await self._pause(delay)
            return WorkerState.ACTIVE_POLL
        except Exception:
            delay = backoff.next_delay()
            logger.exception(
                "Unexpected error claiming job", worker_id=worker_id, retry_in_s=delay
            )
            await self._pause(delay)
            return WorkerState.ACTIVE_POLL

        if job is None:
            return WorkerState.LISTEN

        try:
            await self.handle_job(job, worker_id)
        except Exception:
            logger.exception(
                "Unexpected error handling job", worker_id=worker_id, job_id=str(job.id)
            )
        backoff.reset()
        return WorkerState.ACTIVE_POLL

    async def _pause(self, delay: float) -> None:
        """Back off for delay seconds, returning early on shutdown."""
        if self._sleep is not None:
            await self._sleep(delay)
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._shutdown.wait(), delay)

    async def _listen(self, worker_id: str) -> WorkerState:
        shutdown = asyncio.create_task(self._shutdown.wait())
        waiters = {shutdown}
        hint = None
        if self.hints is not None:
            hint = asyncio.create_task(self.hints.get())
            waiters.add(hint)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.poll_interval_s,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        if shutdown in done:
            return WorkerState.STOPPED
        if hint is not None and hint in done:
            logger.debug(
                "Woken by job notification",
                worker_id=worker_id,
                hinted_job_id=str(hint.result().id),
            )
        else:
            logger.debug("Periodic check for pending jobs", worker_id=worker_id)
        return WorkerState.ACTIVE_POLL

    async def handle_job(self, job: Job, worker_id: str) -> Job:
        """Process a claimed job and write its final state back."""
        log = logger.bind(worker_id=worker_id, job_id=str(job.id))
        log.info("Processing job", retry_count=job.retry_count)

        try:
            result = await self.processor.process(job)
        except Exception as e:
            if not isinstance(e, LiftLogException):
                log.exception("Unexpected error processing job")
            outcome = Outcome.FAILED
            job.result = None
            job.error = str(e)
        else:
            outcome = Outcome.SUCCEEDED
            job.result = result
            job.error = None

        try:
            fate = disposition(job.status, job.retry_count, outcome)
            job.status = next_status(job.status, job.retry_count, outcome).value
        except InvalidTransitionError as e:
            log.error("Refusing to update job", status=job.status, error=e.message)
            return job

        if outcome is Outcome.FAILED:
            log.warning("Job processing failed", error=job.error, disposition=fate.value)
        else:
            log.info("Job processing completed")

        await self._write_back(job, log)
        return job

    async def _write_back(self, job: Job, log) -> None:
        backoff = self._backoff()
        for attempt in range(1, UPDATE_ATTEMPTS + 1):
            try:
                await self.store.update(job)
            except StoreError as e:
                if attempt == UPDATE_ATTEMPTS:
                    log.error(
                        "Giving up updating job", status=job.status, error=e.message
                    )
                    return
                delay = backoff.next_delay()
                log.warning(
                    "Error updating job", attempt=attempt, error=e.message, retry_in_s=delay
                )
                await (self._sleep or asyncio.sleep)(delay)
            except LiftLogException as e:
                log.error("Error updating job", status=job.status, error=e.message)
                return
            else:
                log.info(
                    "Job updated", status=job.status, retry_count=job.retry_count
                )
                return
