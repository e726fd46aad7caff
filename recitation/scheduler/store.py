"""StateRepository — typed JSON load/save of scheduler state over a PersistenceStore."""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from recitation.clock import TimeOfDay
from recitation.errors import PersistenceReadError, RecitationError
from recitation.scheduler.ledger import CompletionLedger, Session
from recitation.scheduler.models import ScheduleConfig

if TYPE_CHECKING:
    from recitation.storage.base import PersistenceStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "recitationSettings"
COMPLETED_KEY = "completedRecitations"
SESSIONS_KEY = "sessions"
LAST_RESET_KEY = "lastResetDate"
NOTIFIED_KEY = "notifiedRecitations"
HAS_LAUNCHED_KEY = "hasLaunched"
HAS_SEEN_INTRO_KEY = "hasSeenIntro"

_SENTINEL = "true"


class StateRepository:
    """Reads and writes each persisted key in its documented JSON shape.

    Loads never raise: missing, unreadable, or malformed values are logged and
    replaced by defaults.  Saves propagate PersistenceWriteError so the caller
    decides how to surface the failure.

    Args:
        store: Backing key/value store.
    """

    def __init__(self, store: PersistenceStore) -> None:
        self._store = store

    # -- Internal helpers ------------------------------------------------------

    async def _load_json(self, key: str) -> Any | None:
        try:
            raw = await self._store.get(key)
        except PersistenceReadError:
            logger.warning("Could not read %s, using defaults", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed JSON in %s: %r", key, raw[:100])
            return None

    async def _save_json(self, key: str, value: Any) -> None:
        await self._store.set(key, json.dumps(value))

    # -- Schedule --------------------------------------------------------------

    async def load_config(self) -> ScheduleConfig:
        data = await self._load_json(SETTINGS_KEY)
        if data is None:
            return ScheduleConfig.default()
        try:
            return ScheduleConfig.from_dict(data)
        except (ValueError, TypeError, RecitationError):
            logger.warning("Ignoring invalid %s: %r", SETTINGS_KEY, data)
            return ScheduleConfig.default()

    async def save_config(self, config: ScheduleConfig) -> None:
        await self._save_json(SETTINGS_KEY, config.to_dict())

    # -- Ledger ----------------------------------------------------------------

    async def load_ledger(self, ledger_date: date) -> CompletionLedger:
        """Load today's completions; records from other dates are dropped."""
        data = await self._load_json(COMPLETED_KEY)
        if data is None:
            return CompletionLedger(ledger_date)
        try:
            return CompletionLedger.from_list(ledger_date, data)
        except (ValueError, TypeError, KeyError):
            logger.warning("Ignoring invalid %s: %r", COMPLETED_KEY, data)
            return CompletionLedger(ledger_date)

    async def save_ledger(self, ledger: CompletionLedger) -> None:
        await self._save_json(COMPLETED_KEY, ledger.to_list())

    # -- Sessions --------------------------------------------------------------

    async def load_sessions(self) -> tuple[Session, ...]:
        data = await self._load_json(SESSIONS_KEY)
        if not isinstance(data, list):
            if data is not None:
                logger.warning("Ignoring invalid %s: %r", SESSIONS_KEY, data)
            return ()
        sessions: list[Session] = []
        for item in data:
            try:
                sessions.append(Session.from_dict(item))
            except (ValueError, TypeError, KeyError, AttributeError):
                logger.warning("Skipping malformed session: %r", item)
        return tuple(sessions)

    async def save_sessions(self, sessions: tuple[Session, ...]) -> None:
        await self._save_json(SESSIONS_KEY, [s.to_dict() for s in sessions])

    # -- Rollover date ---------------------------------------------------------

    async def load_reset_date(self) -> date | None:
        try:
            raw = await self._store.get(LAST_RESET_KEY)
        except PersistenceReadError:
            logger.warning("Could not read %s", LAST_RESET_KEY, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return date.fromisoformat(raw.strip().strip('"'))
        except ValueError:
            logger.warning("Ignoring malformed %s: %r", LAST_RESET_KEY, raw)
            return None

    async def save_reset_date(self, value: date) -> None:
        await self._store.set(LAST_RESET_KEY, value.isoformat())

    # -- Notified set ----------------------------------------------------------

    async def load_notified(self) -> frozenset[TimeOfDay]:
        data = await self._load_json(NOTIFIED_KEY)
        if data is None:
            return frozenset()
        try:
            return frozenset(TimeOfDay.parse(t) for t in data)
        except (ValueError, TypeError):
            logger.warning("Ignoring invalid %s: %r", NOTIFIED_KEY, data)
            return frozenset()

    async def save_notified(self, notified: frozenset[TimeOfDay]) -> None:
        await self._save_json(NOTIFIED_KEY, sorted(str(t) for t in notified))

    # -- First launch ----------------------------------------------------------

    async def mark_flag(self, key: str) -> bool:
        """Set a ``"true"`` sentinel. Returns True if it was not set before."""
        try:
            seen = await self._store.get(key) == _SENTINEL
        except PersistenceReadError:
            logger.warning("Could not read %s", key, exc_info=True)
            seen = False
        if not seen:
            await self._store.set(key, _SENTINEL)
        return not seen
