"""Fixed-interval background tasks."""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

logger = structlog.get_logger()

Job = Callable[[], Union[Any, Awaitable[Any]]]


class PeriodicTask:
    """Runs a job every ``interval`` seconds until stopped.

    A failing run is logged and the schedule continues; the job never runs
    concurrently with itself.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        job: Job,
        run_immediately: bool = False,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.job = job
        self.run_immediately = run_immediately
        self.runs = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name=f"periodic:{self.name}"
        )
        logger.info("Periodic task started", task=self.name, interval=self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Periodic task stopped", task=self.name, runs=self.runs)

    async def run_once(self) -> None:
        try:
            result = self.job()
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            self.failures += 1
            logger.error(
                "Periodic task failed",
                task=self.name,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self.runs += 1

    async def _loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)
