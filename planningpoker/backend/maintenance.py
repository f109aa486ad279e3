"""Periodic background jobs that run beside request handling."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from planningpoker.backend.errors import PokerError
from planningpoker.backend.logging import get_logger
from planningpoker.backend.service import PlanningPokerService

logger = get_logger(__name__)


class PeriodicJob:
    """Runs a blocking job in a worker thread every ``interval_seconds``."""

    def __init__(self, name: str, interval_seconds: float, job: Callable[[], int]) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self._job = job

    async def run_once(self) -> int | None:
        try:
            removed = await asyncio.to_thread(self._job)
        except PokerError as exc:
            logger.error("maintenance.job_failed", job=self.name, code=exc.code, error=exc.message)
            return None
        except Exception:
            logger.exception("maintenance.job_failed", job=self.name)
            return None
        if removed:
            logger.info("maintenance.job_completed", job=self.name, removed=removed)
        return removed

    async def run_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    def start(self) -> asyncio.Task[None]:
        return asyncio.create_task(self.run_forever(), name=f"maintenance:{self.name}")


def build_jobs(service: PlanningPokerService) -> list[PeriodicJob]:
    settings = service.settings
    return [
        PeriodicJob(
            name="host_token_sweep",
            interval_seconds=settings.host_sweep_interval_seconds,
            job=service.sweep_host_tokens,
        ),
        PeriodicJob(
            name="stale_participant_cleanup",
            interval_seconds=settings.user_cleanup_interval_seconds,
            job=service.cleanup_stale_participants,
        ),
    ]


async def stop_jobs(tasks: list[asyncio.Task[None]]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
