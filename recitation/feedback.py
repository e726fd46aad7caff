"""FeedbackPlayer protocol — haptic and sound cues requested on taps."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class FeedbackPlayer(Protocol):
    """Plays short cues. Implementations may be slow or fail; callers never wait on them."""

    async def haptic(self) -> None:
        ...

    async def click(self, volume: float) -> None:
        ...

    async def complete(self, volume: float) -> None:
        ...


class LogFeedback:
    """Feedback player that only records cues in the debug log."""

    async def haptic(self) -> None:
        logger.debug("haptic: light impact")

    async def click(self, volume: float) -> None:
        logger.debug("sound: click (volume=%.2f)", volume)

    async def complete(self, volume: float) -> None:
        logger.debug("sound: complete (volume=%.2f)", volume)
