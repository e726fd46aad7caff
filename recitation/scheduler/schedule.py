"""ScheduleManager — the only way configuration changes reach the scheduler."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from recitation.errors import InvalidSchedule
from recitation.scheduler.models import ScheduleConfig

if TYPE_CHECKING:
    from recitation.clock import ClockReading
    from recitation.scheduler.core import RecitationScheduler
    from recitation.scheduler.models import Evaluation

logger = logging.getLogger(__name__)


class ScheduleManager:
    """Validates and saves schedule changes made by the user.

    A rejected change raises InvalidSchedule and leaves the schedule in
    effect untouched.  An accepted one is persisted and evaluated immediately.
    """

    def __init__(self, scheduler: RecitationScheduler) -> None:
        self._scheduler = scheduler

    @property
    def config(self) -> ScheduleConfig:
        return self._scheduler.state.config

    async def save(
        self, config: ScheduleConfig, now: ClockReading | None = None
    ) -> Evaluation:
        """Validate and apply *config*."""
        try:
            config.validate()
        except InvalidSchedule:
            logger.info("Rejected schedule %s", config.to_dict())
            raise
        return await self._scheduler.apply_config(config, now)

    async def save_times(
        self,
        times: list[str],
        daily_count: int | None = None,
        now: ClockReading | None = None,
    ) -> Evaluation:
        """Replace the recitation times, keeping the sound preferences."""
        current = self.config
        config = ScheduleConfig.from_times(
            times,
            daily_count,
            sound_enabled=current.sound_enabled,
            volume=current.volume,
        )
        return await self.save(config, now)

    async def set_sound(
        self,
        enabled: bool,
        volume: float | None = None,
        now: ClockReading | None = None,
    ) -> Evaluation:
        """Toggle sound cues and optionally change the volume."""
        current = self.config
        config = replace(
            current,
            sound_enabled=enabled,
            volume=current.volume if volume is None else volume,
        )
        return await self.save(config, now)
