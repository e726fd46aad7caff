"""RecitationScheduler — decides which slot is due, missed, or done right now."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import TYPE_CHECKING

from recitation.clock import Clock, ClockReading, TimeOfDay
from recitation.config import settings
from recitation.errors import InvalidSlot, NotificationError, PersistenceWriteError
from recitation.scheduler.ledger import CompletionLedger, Session, prepend_session
from recitation.scheduler.models import Evaluation, ScheduleConfig, SlotState, SlotStatus

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import date, datetime

    from recitation.notifications.gateway import NotificationGateway
    from recitation.scheduler.store import StateRepository

logger = logging.getLogger(__name__)

TAPS_PER_RECITATION = 95

GENERIC_REMINDER_ID = "missed-recitation-reminder"

TIME_REACHED_TITLE = "Recitation time"
REMINDER_TITLE = "Recitation reminder"


def reminder_id(slot: TimeOfDay) -> str:
    """Stable notification identifier for a slot's missed reminder."""
    return f"missed-{slot}"


def _current_of(slots: tuple[SlotState, ...]) -> TimeOfDay | None:
    """Earliest missed slot, else the active one, else None."""
    for wanted in (SlotStatus.MISSED, SlotStatus.ACTIVE):
        for state in slots:
            if state.status is wanted:
                return state.time
    return None


@dataclass
class SchedulerState:
    """Everything the scheduler knows about today.

    Attributes:
        config: Schedule in effect.
        ledger: Today's completions.
        reset_date: Date of the last rollover (None before the first one).
        notified: Slots whose missed reminder has been requested today.
        reached: Slots whose "time reached" notice has been requested today.
        observed: Status of each slot at the previous evaluation; used to
            detect the Upcoming → Active/Missed crossing.
        current_slot: Cached result of the last evaluation.
        sessions: Recent finished recitations, most recent first.
        generic_reminder: Whether the generic missed reminder is pending.
    """

    config: ScheduleConfig
    ledger: CompletionLedger
    reset_date: date | None = None
    notified: frozenset[TimeOfDay] = frozenset()
    reached: frozenset[TimeOfDay] = frozenset()
    observed: dict[TimeOfDay, SlotStatus] = field(default_factory=dict)
    current_slot: TimeOfDay | None = None
    sessions: tuple[Session, ...] = ()
    generic_reminder: bool = False


class RecitationScheduler:
    """Single source of truth for what the user should be reciting now.

    Every public mutator runs under one lock, so ticks, sweeps, taps, and
    schedule changes are applied one at a time.  Persisted state is written
    before the in-memory state is updated.  Notification requests are queued
    in order on a background task and never delay evaluation.

    Args:
        repository: Typed access to persisted state.
        gateway: Notification delivery layer.
        clock: Time source in the reference zone.
        reminder_delay_minutes: Delay of missed reminders (default from settings).
        sweep_window_minutes: How long after its time a missed slot keeps the
            generic reminder alive (default from settings).
    """

    def __init__(
        self,
        repository: StateRepository,
        gateway: NotificationGateway,
        clock: Clock | None = None,
        *,
        reminder_delay_minutes: int | None = None,
        sweep_window_minutes: int | None = None,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._clock = clock or Clock()
        self._reminder_delay = timedelta(
            minutes=settings.missed_reminder_delay_minutes
            if reminder_delay_minutes is None
            else reminder_delay_minutes
        )
        self._sweep_window = (
            settings.missed_sweep_window_minutes
            if sweep_window_minutes is None
            else sweep_window_minutes
        )
        today = self._clock.now().date
        self._state = SchedulerState(ScheduleConfig.default(), CompletionLedger(today))
        self._lock = asyncio.Lock()
        self._outbox: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._warning: str | None = None
        self._warned = False

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def current_slot(self) -> TimeOfDay | None:
        return self._state.current_slot

    @property
    def clock(self) -> Clock:
        return self._clock

    # -- Lifecycle -------------------------------------------------------------

    async def load(self) -> None:
        """Replace in-memory state with whatever is persisted."""
        async with self._lock:
            repo = self._repository
            config = await repo.load_config()
            reset_date = await repo.load_reset_date()
            ledger_date = reset_date or self._clock.now().date
            self._state = SchedulerState(
                config=config,
                ledger=await repo.load_ledger(ledger_date),
                reset_date=reset_date,
                notified=await repo.load_notified(),
                sessions=await repo.load_sessions(),
            )
            logger.info(
                "Loaded schedule %s (count=%d), %d completion(s) for %s",
                [str(t) for t in config.active_slots],
                config.daily_count,
                len(self._state.ledger),
                ledger_date.isoformat(),
            )

    async def drain(self) -> None:
        """Wait for every queued notification request to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def consume_warning(self) -> str | None:
        """Return the pending persistence warning once, then None."""
        warning, self._warning = self._warning, None
        return warning

    # -- Public operations -----------------------------------------------------

    async def evaluate(self, now: ClockReading | None = None) -> Evaluation:
        """Recompute every slot's status and request any due notifications."""
        async with self._lock:
            return await self._evaluate(now or self._clock.now())

    async def rollover(self, new_date: date) -> bool:
        """Reset daily state for *new_date*. Returns False if already done."""
        async with self._lock:
            return await self._rollover(new_date)

    async def record_completion(
        self,
        scheduled_time: TimeOfDay,
        now: ClockReading | None = None,
        tap_count: int = TAPS_PER_RECITATION,
    ) -> Evaluation:
        """Mark *scheduled_time* completed today and re-evaluate.

        Raises InvalidSlot unless the slot is the current one at *now*: in
        today's active subset, not yet completed, and the earliest missed
        slot (or the active slot when none is missed).
        """
        async with self._lock:
            now = now or self._clock.now()
            if self._state.reset_date != now.date:
                await self._rollover(now.date)
            state = self._state
            if scheduled_time not in state.config.active_slots:
                msg = f"{scheduled_time} is not a scheduled recitation today"
                raise InvalidSlot(msg)
            if state.ledger.is_completed(scheduled_time):
                msg = f"{scheduled_time} is already completed"
                raise InvalidSlot(msg)
            current = _current_of(self._statuses(now))
            if scheduled_time != current:
                msg = f"{scheduled_time} is not the current recitation (current: {current})"
                raise InvalidSlot(msg)

            ledger = state.ledger.record(scheduled_time, now.time_of_day)
            session = Session(now.date, scheduled_time, now.time_of_day, tap_count)
            sessions = prepend_session(state.sessions, session)
            await self._persist("completions", self._repository.save_ledger, ledger)
            await self._persist("session history", self._repository.save_sessions, sessions)

            self._state = replace(
                state, ledger=ledger, sessions=sessions, current_slot=None
            )
            logger.info(
                "Completed %s recitation at %s (%d/%d today)",
                scheduled_time,
                now.time_of_day,
                len(ledger),
                len(state.config.active_slots),
            )
            if scheduled_time in state.notified:
                self._dispatch([("cancel", self._cancel_op(reminder_id(scheduled_time)))])
            evaluation = await self._evaluate(now)
            if not evaluation.with_status(SlotStatus.MISSED):
                self._drop_generic_reminder()
            return evaluation

    async def sweep_missed(self, now: ClockReading | None = None) -> list[TimeOfDay]:
        """Slow-interval reminder pass for slots that stay missed.

        Runs a normal evaluation (which requests per-slot reminders only for
        slots not yet in the notified set), then moves one generic reminder
        to *now* plus the reminder delay while a missed slot is still recent.
        Past that window the last request is left to fire; it is cancelled
        only once nothing is missed. Returns the missed slots.
        """
        async with self._lock:
            now = now or self._clock.now()
            evaluation = await self._evaluate(now)
            missed = evaluation.with_status(SlotStatus.MISSED)
            recent = [
                slot
                for slot in missed
                if now.minute_of_day - slot.minutes < self._sweep_window
            ]
            if recent:
                fire_time = self._clock.to_datetime(now) + self._reminder_delay
                body = "You have a recitation waiting. Allah'u'Abha!"
                self._dispatch([
                    (
                        "generic reminder",
                        self._schedule_op(GENERIC_REMINDER_ID, fire_time, REMINDER_TITLE, body),
                    )
                ])
                self._state.generic_reminder = True
            elif not missed:
                self._drop_generic_reminder()
            if missed:
                logger.debug("Sweep: %d missed slot(s), %d recent", len(missed), len(recent))
            return missed

    async def apply_config(
        self, config: ScheduleConfig, now: ClockReading | None = None
    ) -> Evaluation:
        """Validate, persist, and switch to *config*, then re-evaluate.

        Raises InvalidSchedule, leaving the previous config in effect.
        """
        config.validate()
        async with self._lock:
            state = self._state
            removed = set(state.config.active_slots) - set(config.active_slots)
            notified = state.notified - removed
            await self._persist("schedule", self._repository.save_config, config)
            if notified != state.notified:
                await self._persist("notified slots", self._repository.save_notified, notified)

            self._state = replace(
                state,
                config=config,
                notified=notified,
                reached=state.reached - removed,
                observed={},
                current_slot=None,
            )
            self._dispatch([
                (f"cancel {slot}", self._cancel_op(reminder_id(slot)))
                for slot in sorted(removed)
            ])
            logger.info(
                "Schedule changed to %s (count=%d)",
                [str(t) for t in config.active_slots],
                config.daily_count,
            )
            return await self._evaluate(now or self._clock.now())

    # -- Evaluation ------------------------------------------------------------

    def _statuses(self, now: ClockReading) -> tuple[SlotState, ...]:
        ledger = self._state.ledger
        minute = now.minute_of_day
        states = []
        for slot in self._state.config.active_slots:
            if ledger.is_completed(slot):
                status = SlotStatus.COMPLETED
            elif minute < slot.minutes:
                status = SlotStatus.UPCOMING
            elif minute == slot.minutes:
                status = SlotStatus.ACTIVE
            else:
                status = SlotStatus.MISSED
            states.append(SlotState(slot, status))
        return tuple(states)

    async def _evaluate(self, now: ClockReading) -> Evaluation:
        if self._state.reset_date != now.date:
            await self._rollover(now.date)

        state = self._state
        slots = self._statuses(now)
        missed = [s.time for s in slots if s.status is SlotStatus.MISSED]
        upcoming = [s.time for s in slots if s.status is SlotStatus.UPCOMING]
        current = _current_of(slots)

        # "Time reached" fires on the crossing out of Upcoming, so a tick that
        # skips the exact minute still announces the slot.
        reached = [
            s.time
            for s in slots
            if s.time not in state.reached
            and (
                s.status is SlotStatus.ACTIVE
                or (
                    s.status is SlotStatus.MISSED
                    and state.observed.get(s.time) is SlotStatus.UPCOMING
                )
            )
        ]
        newly_missed = [slot for slot in missed if slot not in state.notified]

        notified = state.notified | set(newly_missed)
        if newly_missed:
            await self._persist("notified slots", self._repository.save_notified, notified)

        if current != state.current_slot:
            logger.info(
                "Current slot %s -> %s at %s",
                state.current_slot,
                current,
                now.time_of_day,
            )
        self._state = replace(
            state,
            notified=notified,
            reached=state.reached | set(reached),
            observed={s.time: s.status for s in slots},
            current_slot=current,
        )

        ops: list[tuple[str, Callable[[], Awaitable[object]]]] = []
        for slot in reached:
            body = f"It's time for your {slot} recitation."
            ops.append((f"time reached {slot}", self._send_op(TIME_REACHED_TITLE, body)))
        fire_time = self._clock.to_datetime(now) + self._reminder_delay
        for slot in newly_missed:
            body = f"You missed the {slot} recitation. Allah'u'Abha!"
            ops.append((
                f"reminder {slot}",
                self._schedule_op(reminder_id(slot), fire_time, REMINDER_TITLE, body),
            ))
        self._dispatch(ops)

        next_slot = current if current is not None else (upcoming[0] if upcoming else None)
        return Evaluation(now.date, now.time_of_day, slots, current, next_slot)

    async def _rollover(self, new_date: date) -> bool:
        state = self._state
        if state.reset_date == new_date:
            return False

        stale = {reminder_id(slot) for slot in state.notified | set(state.config.active_slots)}
        stale.add(GENERIC_REMINDER_ID)

        ledger = state.ledger.cleared(new_date)
        await self._persist("rollover date", self._repository.save_reset_date, new_date)
        await self._persist("completions", self._repository.save_ledger, ledger)
        await self._persist("notified slots", self._repository.save_notified, frozenset())

        self._state = replace(
            state,
            ledger=ledger,
            reset_date=new_date,
            notified=frozenset(),
            reached=frozenset(),
            observed={},
            current_slot=None,
            generic_reminder=False,
        )
        self._dispatch([("rollover cancel", lambda: self._cancel_stale(stale))])
        logger.info(
            "Rolled over from %s to %s",
            state.reset_date.isoformat() if state.reset_date else "nothing",
            new_date.isoformat(),
        )
        return True

    # -- Persistence -----------------------------------------------------------

    async def _persist(self, what: str, save: Callable[..., Awaitable[None]], value: object) -> None:
        """Write *value*; a failure is logged and surfaced once, never raised."""
        try:
            await save(value)
        except PersistenceWriteError:
            logger.warning("Could not save %s; keeping it in memory only", what, exc_info=True)
            if not self._warned:
                self._warned = True
                self._warning = (
                    "Your progress could not be saved. It is kept until the app closes."
                )

    # -- Notifications ---------------------------------------------------------

    def _send_op(self, title: str, body: str) -> Callable[[], Awaitable[object]]:
        return lambda: self._gateway.send_immediate(title, body)

    def _schedule_op(
        self, identifier: str, fire_time: datetime, title: str, body: str
    ) -> Callable[[], Awaitable[object]]:
        return lambda: self._gateway.schedule_at(identifier, fire_time, title, body)

    def _cancel_op(self, identifier: str) -> Callable[[], Awaitable[object]]:
        return lambda: self._gateway.cancel(identifier)

    def _drop_generic_reminder(self) -> None:
        if self._state.generic_reminder:
            self._dispatch([("cancel generic reminder", self._cancel_op(GENERIC_REMINDER_ID))])
            self._state.generic_reminder = False

    async def _cancel_stale(self, identifiers: set[str]) -> None:
        """Cancel only the previous day's reminders that are still pending."""
        pending = {n.identifier for n in await self._gateway.list_scheduled()}
        for identifier in sorted(identifiers & pending):
            await self._gateway.cancel(identifier)

    def _dispatch(self, ops: list[tuple[str, Callable[[], Awaitable[object]]]]) -> None:
        """Run notification requests in order on a background task."""
        if not ops:
            return
        previous = self._outbox

        async def run() -> None:
            if previous is not None:
                await previous
            for label, op in ops:
                try:
                    await op()
                except NotificationError:
                    logger.warning("Notification request failed: %s", label, exc_info=True)
                except Exception:
                    logger.exception("Unexpected notification failure: %s", label)

        task = asyncio.get_running_loop().create_task(run())
        self._outbox = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
