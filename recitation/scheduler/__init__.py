"""Recitation scheduling — models, ledger, state machine, counter, and engine."""

from recitation.scheduler.core import (
    TAPS_PER_RECITATION,
    RecitationScheduler,
    SchedulerState,
    reminder_id,
)
from recitation.scheduler.counter import TapCounter, TapResult
from recitation.scheduler.engine import RecitationEngine
from recitation.scheduler.ledger import CompletionLedger, CompletionRecord, Session
from recitation.scheduler.models import (
    Evaluation,
    ScheduleConfig,
    SlotState,
    SlotStatus,
)
from recitation.scheduler.schedule import ScheduleManager
from recitation.scheduler.store import StateRepository

__all__ = [
    "TAPS_PER_RECITATION",
    "CompletionLedger",
    "CompletionRecord",
    "Evaluation",
    "RecitationEngine",
    "RecitationScheduler",
    "ScheduleConfig",
    "ScheduleManager",
    "SchedulerState",
    "Session",
    "SlotState",
    "SlotStatus",
    "StateRepository",
    "TapCounter",
    "TapResult",
    "reminder_id",
]
