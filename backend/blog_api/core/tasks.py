"""Periodic housekeeping jobs run on the event loop."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


def _log_task_exit(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        logger.debug("Periodic task cancelled", task_name=task.get_name())
    elif exc := task.exception():
        logger.error("Periodic task crashed", task_name=task.get_name(), error=str(exc))


def start_periodic_task(
    func: Callable[[], Awaitable[Any]],
    interval_seconds: float,
    *,
    name: str = "periodic-task",
) -> asyncio.Task[Any]:
    """Call ``func`` every ``interval_seconds``, first call after one interval.

    A failing run is logged and the schedule continues. Cancel the returned
    task to stop it.
    """

    async def _loop() -> None:
        runs = 0
        while True:
            await asyncio.sleep(interval_seconds)
            runs += 1
            try:
                await func()
            except Exception as exc:
                logger.warning("Periodic task run failed", task_name=name, run=runs, error=str(exc))

    task = asyncio.create_task(_loop(), name=name)
    task.add_done_callback(_log_task_exit)
    return task
