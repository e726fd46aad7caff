"""LogChannel — delivers notifications to the application log."""

import logging

logger = logging.getLogger(__name__)


class LogChannel:
    """Writes each notification as an INFO log line.

    Used when no OS-level delivery is wired in, and as the default channel.
    """

    def __init__(self, channel_name: str = "log") -> None:
        self._name = channel_name
        self.delivered: int = 0

    @property
    def name(self) -> str:
        return self._name

    async def send(self, title: str, body: str) -> bool:
        logger.info("[%s] %s", title, body)
        self.delivered += 1
        return True
