"""NotificationGateway — immediate and deferred notification requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.triggers.date import DateTrigger

from recitation.errors import NotificationError

if TYPE_CHECKING:
    from datetime import datetime

    from apscheduler.schedulers.asyncio import AsyncIOScheduler

    from recitation.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)

JOBSTORE = "notifications"


@dataclass(frozen=True)
class ScheduledNotification:
    identifier: str
    fire_time: datetime
    title: str
    body: str


@runtime_checkable
class NotificationGateway(Protocol):
    """What the scheduler needs from the delivery layer."""

    async def send_immediate(self, title: str, body: str) -> bool:
        ...

    async def schedule_at(
        self, identifier: str, fire_time: datetime, title: str, body: str
    ) -> None:
        ...

    async def cancel(self, identifier: str) -> bool:
        ...

    async def list_scheduled(self) -> list[ScheduledNotification]:
        ...


class LocalNotificationGateway:
    """Delivers notifications through registered channels.

    Deferred notifications become APScheduler ``DateTrigger`` jobs whose job id
    is the notification identifier, so scheduling the same identifier twice
    replaces the earlier request and cancel is targeted.

    Args:
        scheduler: APScheduler instance that hosts deferred deliveries. Its
            owner starts and stops it.
    """

    def __init__(self, scheduler: AsyncIOScheduler) -> None:
        self._scheduler = scheduler
        self._scheduler.add_jobstore(MemoryJobStore(), alias=JOBSTORE)
        self._channels: dict[str, NotificationChannel] = {}
        self._default: str = ""
        self._pending: dict[str, ScheduledNotification] = {}

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    # -- Channels --------------------------------------------------------------

    def register_channel(self, channel: NotificationChannel) -> None:
        """Register a notification channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def set_default_channel(self, name: str) -> None:
        """Set the default channel by name. Raises KeyError if not registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def _resolve_channel(self) -> NotificationChannel | None:
        """Resolve a channel: default → only registered channel."""
        if self._default:
            return self._channels.get(self._default)
        if len(self._channels) == 1:
            return next(iter(self._channels.values()))
        return None

    # -- NotificationGateway ---------------------------------------------------

    async def send_immediate(self, title: str, body: str) -> bool:
        """Deliver now. Raises NotificationError if the channel fails."""
        ch = self._resolve_channel()
        if ch is None:
            logger.warning("No channel resolved for notification: %s", title)
            return False
        try:
            return await ch.send(title, body)
        except Exception as exc:
            msg = f"Channel '{ch.name}' failed to deliver '{title}'"
            raise NotificationError(msg) from exc

    async def schedule_at(
        self, identifier: str, fire_time: datetime, title: str, body: str
    ) -> None:
        """Schedule a delivery at *fire_time*, replacing any request with the same id."""
        await self.cancel(identifier)
        try:
            self._scheduler.add_job(
                self._deliver,
                trigger=DateTrigger(run_date=fire_time),
                id=identifier,
                name=title,
                args=[identifier],
                jobstore=JOBSTORE,
                misfire_grace_time=None,
            )
        except Exception as exc:
            msg = f"Failed to schedule notification {identifier}"
            raise NotificationError(msg) from exc
        self._pending[identifier] = ScheduledNotification(identifier, fire_time, title, body)
        logger.info("Scheduled notification %s for %s", identifier, fire_time.isoformat())

    async def cancel(self, identifier: str) -> bool:
        """Cancel a pending delivery. Returns True if one was pending."""
        self._pending.pop(identifier, None)
        try:
            self._scheduler.remove_job(identifier, jobstore=JOBSTORE)
        except JobLookupError:
            logger.debug("Notification %s not scheduled (may already be delivered)", identifier)
            return False
        logger.info("Cancelled notification %s", identifier)
        return True

    async def list_scheduled(self) -> list[ScheduledNotification]:
        """Return pending deliveries ordered by fire time."""
        live = {job.id for job in self._scheduler.get_jobs(jobstore=JOBSTORE)}
        pending = [n for ident, n in self._pending.items() if ident in live]
        return sorted(pending, key=lambda n: n.fire_time)

    # -- Internal --------------------------------------------------------------

    async def _deliver(self, identifier: str) -> None:
        """Callback invoked by APScheduler when a deferred notification is due."""
        notification = self._pending.pop(identifier, None)
        if notification is None:
            return
        try:
            delivered = await self.send_immediate(notification.title, notification.body)
        except NotificationError:
            logger.exception("Deferred notification %s failed", identifier)
            return
        if delivered:
            logger.info("Delivered notification %s", identifier)
