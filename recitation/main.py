"""Recitation counter entry point."""

import asyncio
import contextlib
import logging

from recitation.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Start the app and keep evaluating until cancelled."""
    from recitation.app import RecitationApp

    app = RecitationApp()
    evaluation = await app.start()
    status = evaluation.status_text() if evaluation else "status unavailable"
    logger.info("Recitation counter running (tz=%s): %s", settings.timezone, status)
    if app.should_show_intro:
        logger.info("Welcome! Taps count toward the current recitation, 95 per recitation.")
    try:
        await asyncio.Event().wait()
    finally:
        await app.stop()


def main() -> None:
    """Run the scheduler in the foreground until interrupted."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())


if __name__ == "__main__":
    main()
