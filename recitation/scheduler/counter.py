"""TapCounter — counts taps toward the current slot and completes it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from recitation.errors import InvalidSlot, NoActiveSlot
from recitation.feedback import LogFeedback
from recitation.scheduler.core import TAPS_PER_RECITATION

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from datetime import date

    from recitation.clock import ClockReading, TimeOfDay
    from recitation.feedback import FeedbackPlayer
    from recitation.scheduler.core import RecitationScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TapResult:
    """Outcome of one tap.

    Attributes:
        count: Taps counted toward ``slot`` after this tap (0 once completed).
        slot: The slot this tap counted toward.
        completed: True if this tap finished the slot.
        all_done: True if every slot of the day is now completed.
        next_slot: The slot to show next when ``completed`` (missed, active,
            or upcoming), None when nothing remains today.
    """

    count: int
    slot: TimeOfDay
    completed: bool = False
    all_done: bool = False
    next_slot: TimeOfDay | None = None


class TapCounter:
    """Accumulates taps for the scheduler's current slot.

    The count lives in memory only; restarting mid-recitation starts the
    slot over. A new day or a new current slot also starts from zero.

    Args:
        scheduler: Owner of the current slot and the completion ledger.
        feedback: Player for haptic and sound cues (logs only when omitted).
        target: Taps needed to complete a slot.
    """

    def __init__(
        self,
        scheduler: RecitationScheduler,
        feedback: FeedbackPlayer | None = None,
        target: int = TAPS_PER_RECITATION,
    ) -> None:
        self._scheduler = scheduler
        self._feedback = feedback or LogFeedback()
        self._target = target
        self._count = 0
        self._slot: TimeOfDay | None = None
        self._day: date | None = None
        self._cues: set[asyncio.Task] = set()

    @property
    def count(self) -> int:
        return self._count

    @property
    def target(self) -> int:
        return self._target

    @property
    def slot(self) -> TimeOfDay | None:
        return self._slot

    async def tap(self, now: ClockReading | None = None) -> TapResult:
        """Count one tap. Raises NoActiveSlot when no slot is current."""
        now = now or self._scheduler.clock.now()
        evaluation = await self._scheduler.evaluate(now)
        slot = evaluation.current_slot
        if slot is None:
            msg = "No recitation is due right now"
            raise NoActiveSlot(msg)
        if (evaluation.date, slot) != (self._day, self._slot):
            if self._count:
                logger.info(
                    "Current slot changed %s -> %s, dropping %d tap(s)",
                    self._slot,
                    slot,
                    self._count,
                )
            self._day = evaluation.date
            self._slot = slot
            self._count = 0

        self._count += 1
        config = self._scheduler.state.config
        self._cue(self._feedback.haptic())
        if config.sound_enabled:
            self._cue(self._feedback.click(config.volume))

        if self._count < self._target:
            return TapResult(self._count, slot)

        self._count = 0
        self._slot = None
        try:
            done = await self._scheduler.record_completion(
                slot, now, tap_count=self._target
            )
        except InvalidSlot:
            logger.warning("Completion of %s rejected", slot, exc_info=True)
            return TapResult(0, slot)

        if config.sound_enabled:
            self._cue(self._feedback.complete(config.volume))
        return TapResult(
            0,
            slot,
            completed=True,
            all_done=done.all_completed,
            next_slot=done.next_slot,
        )

    def reset(self) -> None:
        self._count = 0
        self._slot = None
        self._day = None

    async def drain(self) -> None:
        """Wait for outstanding feedback cues (tests and shutdown)."""
        if self._cues:
            await asyncio.gather(*list(self._cues), return_exceptions=True)

    def _cue(self, coro: Coroutine) -> None:
        """Fire a feedback cue without waiting for it."""
        task = asyncio.get_running_loop().create_task(coro)
        self._cues.add(task)
        task.add_done_callback(self._cue_done)

    def _cue_done(self, task: asyncio.Task) -> None:
        self._cues.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Feedback cue failed: %r", task.exception())
