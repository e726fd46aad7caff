"""Error taxonomy for the recitation scheduler.

Nothing here is fatal to the process.  Callers recover locally and keep the
last-known-good in-memory state.
"""


class RecitationError(Exception):
    """Base class for all recitation errors."""


class InvalidSchedule(RecitationError):
    """A schedule configuration violates spacing, count, or format rules."""


class InvalidSlot(RecitationError):
    """Completion was attempted for a slot that is not eligible today."""


class NoActiveSlot(RecitationError):
    """A tap arrived while no slot is current."""


class PersistenceError(RecitationError):
    """Base class for key/value storage failures."""


class PersistenceReadError(PersistenceError):
    """Stored state is unavailable or malformed."""


class PersistenceWriteError(PersistenceError):
    """Stored state could not be written."""


class NotificationError(RecitationError):
    """The notification delivery layer failed."""
