"""Reminder plan generation.

Turns a document expiry date and a reminder configuration into the ordered
list of notification events that should fire for it:

1. One early warning per configured day offset that is still in the future
2. Recurring urgent reminders while inside the urgent window
3. Recurring critical alerts while inside the critical window
4. A single expired notice once the document has expired

Everything here is pure: the caller supplies "today", so the same inputs
always give the same plan.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from idmonitor.models.document import DocumentKind
from idmonitor.models.reminder import ReminderType
from idmonitor.models.reminder_config import ReminderConfig, ReminderFrequency
from idmonitor.services.errors import InvalidFrequency

ONE_DAY = timedelta(days=1)

_INTERVAL_DAYS = {
    ReminderFrequency.DAILY: 1,
    ReminderFrequency.WEEKLY: 7,
    ReminderFrequency.BIWEEKLY: 14,
    ReminderFrequency.MONTHLY: 30,
}


def interval_days(frequency: ReminderFrequency | str) -> int:
    """Number of days between two recurring reminders at a frequency.

    Raises:
        InvalidFrequency: If the value is not a known frequency
    """
    try:
        return _INTERVAL_DAYS[ReminderFrequency(frequency)]
    except (ValueError, KeyError):
        raise InvalidFrequency(f"Unknown reminder frequency: {frequency!r}") from None


@dataclass(frozen=True)
class ReminderEvent:
    """A planned notification, not yet persisted."""

    scheduled_for: datetime
    reminder_type: ReminderType
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "scheduled_for": self.scheduled_for.isoformat(),
            "reminder_type": self.reminder_type.value,
            "message": self.message,
        }


def to_utc_naive(value: datetime | date) -> datetime:
    """Normalize a date or datetime to a naive UTC datetime."""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def whole_days_between(start: datetime | date, end: datetime | date) -> int:
    """Floor of (end - start) in days; negative when end is before start."""
    return (to_utc_naive(end) - to_utc_naive(start)) // ONE_DAY


def _kind_label(document_kind: DocumentKind | str) -> str:
    if isinstance(document_kind, DocumentKind):
        return document_kind.label
    return str(document_kind)


def _recurring_events(
    start: datetime,
    expires_at: datetime,
    frequency: ReminderFrequency,
    stop_before_days: int,
    reminder_type: ReminderType,
    kind: str,
) -> list[ReminderEvent]:
    """Events from start, every interval, strictly before expiry - stop days."""
    step = timedelta(days=interval_days(frequency))
    stop_at = expires_at - timedelta(days=stop_before_days)
    expiry_str = expires_at.date().isoformat()

    events = []
    current = start
    while current < stop_at:
        remaining = whole_days_between(current, expires_at)
        events.append(
            ReminderEvent(
                scheduled_for=current,
                reminder_type=reminder_type,
                message=f"Your {kind} expires in {remaining} days ({expiry_str})",
            )
        )
        current += step
    return events


def generate_plan(
    expires_at: datetime | date,
    today: datetime | date,
    config: ReminderConfig,
    document_kind: DocumentKind | str,
) -> list[ReminderEvent]:
    """Compute every reminder event for a document.

    Early warnings whose date is not strictly after today are treated as
    missed and never scheduled retroactively. The config is assumed valid
    (critical_period_days < urgent_period_days).

    Args:
        expires_at: Document expiry
        today: Reference "now" for the plan
        config: Effective reminder configuration
        document_kind: Kind used in message text

    Returns:
        list[ReminderEvent]: Early warnings, then urgent, critical and
        expired events, in generation order
    """
    expires_at = to_utc_naive(expires_at)
    today = to_utc_naive(today)
    kind = _kind_label(document_kind)
    days_until_expiry = whole_days_between(today, expires_at)
    expiry_str = expires_at.date().isoformat()

    events: list[ReminderEvent] = []

    # Largest offset first so warnings come out in date order
    for days in sorted(set(config.early_reminder_days), reverse=True):
        reminder_date = expires_at - timedelta(days=days)
        if today < reminder_date:
            events.append(
                ReminderEvent(
                    scheduled_for=reminder_date,
                    reminder_type=ReminderType.EARLY_WARNING,
                    message=f"Your {kind} expires in {days} days ({expiry_str})",
                )
            )

    if config.critical_period_days < days_until_expiry <= config.urgent_period_days:
        events.extend(
            _recurring_events(
                today,
                expires_at,
                config.urgent_frequency,
                config.critical_period_days,
                ReminderType.URGENT_REMINDER,
                kind,
            )
        )

    if 0 < days_until_expiry <= config.critical_period_days:
        events.extend(
            _recurring_events(
                today,
                expires_at,
                config.critical_frequency,
                0,
                ReminderType.CRITICAL_ALERT,
                kind,
            )
        )

    if days_until_expiry < 0:
        events.append(
            ReminderEvent(
                scheduled_for=today,
                reminder_type=ReminderType.EXPIRED_NOTICE,
                message=f"URGENT: Your {kind} has expired! Please renew immediately.",
            )
        )

    return events
