"""RecitationApp — wires the clock, store, gateway, scheduler, and counter together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from recitation.clock import Clock
from recitation.config import settings
from recitation.errors import PersistenceWriteError
from recitation.feedback import LogFeedback
from recitation.notifications.gateway import LocalNotificationGateway
from recitation.notifications.log_channel import LogChannel
from recitation.scheduler.core import RecitationScheduler
from recitation.scheduler.counter import TapCounter
from recitation.scheduler.engine import RecitationEngine
from recitation.scheduler.schedule import ScheduleManager
from recitation.scheduler.store import (
    HAS_LAUNCHED_KEY,
    HAS_SEEN_INTRO_KEY,
    StateRepository,
)
from recitation.storage.kv import KeyValueStore

if TYPE_CHECKING:
    from recitation.feedback import FeedbackPlayer
    from recitation.notifications.channels import NotificationChannel
    from recitation.scheduler.models import Evaluation
    from recitation.storage.base import PersistenceStore

logger = logging.getLogger(__name__)


class RecitationApp:
    """Owns one scheduler and everything that feeds it.

    Args:
        store: Key/value store (the shared SQLite store when omitted).
        clock: Time source (settings timezone when omitted).
        channel: Notification channel registered as default (log when omitted).
        feedback: Haptic/sound player for taps.
    """

    def __init__(
        self,
        store: PersistenceStore | None = None,
        clock: Clock | None = None,
        channel: NotificationChannel | None = None,
        feedback: FeedbackPlayer | None = None,
    ) -> None:
        self.clock = clock or Clock()
        self.aps = AsyncIOScheduler(timezone=self.clock.timezone)

        self.gateway = LocalNotificationGateway(self.aps)
        channel = channel or LogChannel(settings.default_notification_channel)
        self.gateway.register_channel(channel)
        self.gateway.set_default_channel(channel.name)

        self.repository = StateRepository(store or KeyValueStore.get_instance())
        self.scheduler = RecitationScheduler(self.repository, self.gateway, self.clock)
        self.schedule = ScheduleManager(self.scheduler)
        self.counter = TapCounter(self.scheduler, feedback or LogFeedback())
        self.engine = RecitationEngine(self.scheduler, self.aps)
        self.should_show_intro = False

    async def start(self) -> Evaluation | None:
        """Load persisted state, run first-launch bookkeeping, and start ticking."""
        await self.scheduler.load()
        await self._first_launch()
        return await self.engine.start()

    async def stop(self) -> None:
        await self.engine.stop()
        await self.counter.drain()

    async def _first_launch(self) -> None:
        try:
            if await self.repository.mark_flag(HAS_LAUNCHED_KEY):
                logger.info("First launch")
            self.should_show_intro = await self.repository.mark_flag(HAS_SEEN_INTRO_KEY)
        except PersistenceWriteError:
            logger.warning("Could not record first-launch flags", exc_info=True)
