"""
LISTEN/NOTIFY wake-up hints for idle workers.

The listener holds one dedicated asyncpg connection outside the
SQLAlchemy pool. It never claims or writes jobs; it only fetches the
announced row and offers it to a bounded buffer, dropping the hint when
the buffer is full. Notifications are handled one at a time by a single
consumer task, so a burst never holds more than one pooled connection.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

import asyncpg
from pydantic import ValidationError as PydanticValidationError

from liftlog.config.logging import get_logger
from liftlog.config.settings import Settings
from liftlog.v1.core.exceptions import StoreError
from liftlog.v1.infra.jobs.models import Job
from liftlog.v1.infra.jobs.schemas import NotificationHint
from liftlog.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)

Connect = Callable[[str], Awaitable[Any]]


class HintChannel:
    """Read-only view of the hint buffer handed to workers."""

    def __init__(self, queue: asyncio.Queue[Job]):
        self._queue = queue

    async def get(self) -> Job:
        return await self._queue.get()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()


class NotificationListener:
    """Forwards job notifications from Postgres to a bounded hint buffer."""

    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        connect: Connect | None = None,
    ):
        self.store = store
        self.channel = settings.notify_channel
        self.dsn = settings.listener_dsn
        self.reconnect_delay_s = settings.listener_reconnect_delay_s
        self._connect = connect or asyncpg.connect
        self._queue: asyncio.Queue[Job] = asyncio.Queue(
            maxsize=settings.hint_buffer_size
        )
        self.hints = HintChannel(self._queue)
        self.dropped_hints = 0
        self._connection: Any | None = None
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()
        self._lost = asyncio.Event()
        self._subscribed = asyncio.Event()
        # Raw payloads waiting for the single consumer
        self._notifications: asyncio.Queue[str] = asyncio.Queue(
            maxsize=settings.hint_buffer_size
        )

    @property
    def subscribed(self) -> bool:
        return self._subscribed.is_set()

    async def start(self) -> None:
        """Start the subscription loop in the background."""
        if self._task is not None:
            raise RuntimeError("Listener is already running")
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="notification-listener")

    async def wait_subscribed(self, timeout: float | None = None) -> bool:
        """Wait until a subscription is live; False on timeout."""
        try:
            await asyncio.wait_for(self._subscribed.wait(), timeout)
        except TimeoutError:
            return False
        return True

    async def stop(self) -> None:
        """Stop listening; intentional shutdown is never treated as a failure."""
        logger.info("Stopping notification listener", channel=self.channel)
        self._stopping.set()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self._close_connection()
        logger.info("Notification listener stopped", channel=self.channel)

    async def _run(self) -> None:
        consumer = asyncio.create_task(
            self._consume(), name="notification-consumer"
        )
        try:
            await self._subscription_loop()
        finally:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

    async def _consume(self) -> None:
        """Handle queued notifications one at a time, in arrival order."""
        while True:
            payload = await self._notifications.get()
            try:
                await self.handle_notification(payload)
            except Exception:
                logger.exception("Error handling job notification", payload=payload)

    async def _subscription_loop(self) -> None:
        first_attempt = True
        while not self._stopping.is_set():
            try:
                await self._subscribe()
            except Exception as e:
                if first_attempt:
                    logger.warning(
                        "Notification listener unavailable, workers will rely on periodic polling",
                        channel=self.channel,
                        error=str(e),
                    )
                else:
                    logger.warning(
                        "Listener reconnect failed",
                        channel=self.channel,
                        error=str(e),
                        retry_in_s=self.reconnect_delay_s,
                    )
                first_attempt = False
                await self._sleep_unless_stopping(self.reconnect_delay_s)
                continue

            if first_attempt:
                logger.info("Notification listener started", channel=self.channel)
            else:
                logger.info("Listener reconnected", channel=self.channel)
            first_attempt = False

            await self._wait_for_loss()
            if self._stopping.is_set():
                break
            logger.warning("Listener connection lost, reconnecting", channel=self.channel)
            await self._close_connection()

    async def _subscribe(self) -> None:
        self._lost.clear()
        connection = await self._connect(self.dsn)
        try:
            connection.add_termination_listener(self._on_terminated)
            await connection.add_listener(self.channel, self._on_notification)
        except BaseException:
            await connection.close()
            raise
        self._connection = connection
        self._subscribed.set()

    async def _wait_for_loss(self) -> None:
        lost = asyncio.create_task(self._lost.wait())
        stopping = asyncio.create_task(self._stopping.wait())
        try:
            await asyncio.wait({lost, stopping}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (lost, stopping):
                task.cancel()
            await asyncio.gather(lost, stopping, return_exceptions=True)

    async def _sleep_unless_stopping(self, delay: float) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stopping.wait(), delay)

    async def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        self._subscribed.clear()
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.debug("Error closing listener connection", error=str(e))

    def _on_terminated(self, connection: Any) -> None:
        self._subscribed.clear()
        self._lost.set()

    def _on_notification(
        self, connection: Any, pid: int, channel: str, payload: str
    ) -> None:
        try:
            self._notifications.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped_hints += 1
            logger.warning("Notification backlog full, dropped notification")

    async def handle_notification(self, payload: str) -> bool:
        """Turn one notification into a hint. Returns True if a hint was buffered."""
        try:
            hint = NotificationHint.model_validate_json(payload)
        except PydanticValidationError as e:
            logger.warning("Malformed job notification", payload=payload, error=str(e))
            return False

        logger.debug(
            "Job notification received",
            job_id=str(hint.id),
            status=hint.status,
            operation=hint.operation,
        )
        if not hint.announces_work():
            return False
        if self._queue.full():
            self._drop(hint.id)
            return False

        try:
            job = await self.store.get(hint.id)
        except StoreError as e:
            logger.warning(
                "Could not fetch notified job", job_id=str(hint.id), error=e.message
            )
            return False

        if job is None:
            return False
        return self.offer(job)

    def offer(self, job: Job) -> bool:
        """Buffer a hint without blocking; the newest hint is dropped when full."""
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self._drop(job.id)
            return False
        return True

    def _drop(self, job_id: UUID) -> None:
        self.dropped_hints += 1
        logger.warning("Hint buffer full, dropped hint", job_id=str(job_id))
