"""Periodic background jobs: retention sweep and delivery pass.

Each job runs as its own asyncio task. The synchronous job body runs in a
worker thread so database and SMTP I/O never block the event loop. A stop
event is checked between runs only, so a batch in progress always
finishes before the loop exits.
"""
import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from app.clock import Clock, utcnow
from app.config import Settings
from app.database import get_db_context
from app.services.artwork import LocalArtworkStore
from app.services.delivery import run_delivery_pass
from app.services.notifications import NotificationSender
from app.services.retention import run_retention_sweep

logger = logging.getLogger(__name__)


async def _wait_for_stop(stop_event: asyncio.Event, timeout: float) -> bool:
    """Sleep up to ``timeout`` seconds. Returns True if stop was requested."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return False
    return True


async def run_periodic(
    name: str,
    job: Callable[[], object],
    interval: float,
    stop_event: asyncio.Event,
    startup_delay: float = 0,
) -> None:
    """Run ``job`` every ``interval`` seconds until ``stop_event`` is set.

    An exception from a run is logged and the loop carries on at the next
    interval.
    """
    logger.info(f"{name} starting...")

    # Give storage a moment to become ready
    if await _wait_for_stop(stop_event, startup_delay):
        logger.info(f"{name} stopped before first run")
        return
    logger.info(f"{name} now active")

    while not stop_event.is_set():
        try:
            result = await asyncio.to_thread(job)
            logger.debug(f"{name} run finished: {result}")
        except Exception:
            logger.exception(f"Error during {name} run")

        if await _wait_for_stop(stop_event, interval):
            break

    logger.info(f"{name} stopped")


def make_retention_job(artwork_store: LocalArtworkStore, clock: Clock = utcnow) -> Callable[[], dict]:
    def job() -> dict:
        with get_db_context() as db:
            return run_retention_sweep(db, artwork_store, clock)
    return job


def make_delivery_job(notification_sender: NotificationSender, clock: Clock = utcnow) -> Callable[[], dict]:
    def job() -> dict:
        with get_db_context() as db:
            return run_delivery_pass(db, notification_sender, clock)
    return job


@dataclass
class BackgroundTasks:
    """Owns the periodic job tasks for the lifetime of the application."""

    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    tasks: list[asyncio.Task] = field(default_factory=list)

    def start(self, name: str, job: Callable[[], object], interval: float, startup_delay: float = 0) -> None:
        task = asyncio.create_task(
            run_periodic(name, job, interval, self.stop_event, startup_delay),
            name=name,
        )
        self.tasks.append(task)

    async def stop(self) -> None:
        """Signal every loop to stop and wait for in-flight runs to finish."""
        self.stop_event.set()
        for task in self.tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.tasks.clear()


def start_background_tasks(
    settings: Settings,
    artwork_store: LocalArtworkStore,
    notification_sender: NotificationSender,
) -> BackgroundTasks:
    """Start the retention sweeper and delivery scheduler loops."""
    background = BackgroundTasks()
    background.start(
        "Data Retention Service",
        make_retention_job(artwork_store),
        interval=settings.retention_interval_seconds,
        startup_delay=settings.background_startup_delay_seconds,
    )
    background.start(
        "Scheduled Sending Service",
        make_delivery_job(notification_sender),
        interval=settings.delivery_interval_seconds,
        startup_delay=settings.background_startup_delay_seconds,
    )
    return background
