"""RecitationEngine — APScheduler lifecycle for the periodic tick and missed sweep."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from recitation.config import settings

if TYPE_CHECKING:
    from recitation.scheduler.core import RecitationScheduler
    from recitation.scheduler.models import Evaluation

logger = logging.getLogger(__name__)

TICK_JOB_ID = "recitation-tick"
SWEEP_JOB_ID = "missed-sweep"


class RecitationEngine:
    """Drives the RecitationScheduler from APScheduler interval jobs.

    Both jobs allow a single running instance and coalesce missed runs, and
    the scheduler serializes them with taps, so evaluations never overlap.

    Args:
        scheduler: The state machine to drive.
        aps: APScheduler instance (shared with the notification gateway when
            given).
        tick_interval_seconds: Evaluation interval, at most 60 (default from
            settings).
        sweep_interval_seconds: Missed sweep interval (default from settings).
    """

    def __init__(
        self,
        scheduler: RecitationScheduler,
        aps: AsyncIOScheduler | None = None,
        *,
        tick_interval_seconds: int | None = None,
        sweep_interval_seconds: int | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._aps = aps or AsyncIOScheduler(timezone=scheduler.clock.timezone)
        self._tick_interval = tick_interval_seconds or settings.tick_interval_seconds
        self._sweep_interval = sweep_interval_seconds or settings.missed_sweep_interval_seconds
        if self._tick_interval > 60:
            msg = f"Tick interval must be at most 60 seconds (got {self._tick_interval})"
            raise ValueError(msg)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> Evaluation | None:
        """Evaluate once, register the interval jobs, and start APScheduler.

        Returns the first evaluation, or None if it failed.
        """
        evaluation = await self._tick()
        self._aps.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self._tick_interval),
            id=TICK_JOB_ID,
            name="Evaluate recitation slots",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._aps.add_job(
            self._sweep,
            trigger=IntervalTrigger(seconds=self._sweep_interval),
            id=SWEEP_JOB_ID,
            name="Remind about missed recitations",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self._aps.running:
            self._aps.start()
        self._running = True
        logger.info(
            "Engine started (tick=%ds, sweep=%ds, tz=%s)",
            self._tick_interval,
            self._sweep_interval,
            self._scheduler.clock.timezone,
        )
        return evaluation

    async def stop(self) -> None:
        """Shut down APScheduler and flush queued notification requests."""
        if self._running:
            self._aps.shutdown(wait=False)
            self._running = False
            await self._scheduler.drain()
            logger.info("Engine stopped")

    # -- Jobs ------------------------------------------------------------------

    async def _tick(self) -> Evaluation | None:
        """Callback invoked by APScheduler on every tick."""
        try:
            evaluation = await self._scheduler.evaluate()
        except Exception:
            logger.exception("Evaluation failed")
            return None
        logger.debug("Tick %s: %s", evaluation.now, evaluation.status_text())
        return evaluation

    async def _sweep(self) -> None:
        """Callback invoked by APScheduler on the slower missed-sweep interval."""
        try:
            await self._scheduler.sweep_missed()
        except Exception:
            logger.exception("Missed sweep failed")
