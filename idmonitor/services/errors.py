"""Error types raised by the reminder scheduling core."""


class ReminderError(Exception):
    """Base class for reminder scheduling errors."""


class InvalidFrequency(ReminderError, ValueError):
    """A frequency value outside the supported cadences.

    Unreachable with validated configuration; indicates a programming error.
    """


class ConfigInvariantViolation(ReminderError, ValueError):
    """A configuration update would break critical < urgent ordering."""


class StorageFailure(ReminderError):
    """The datastore failed while reading or writing reminder state."""


class DispatchFailure(ReminderError):
    """A notification channel failed to deliver a reminder."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel
