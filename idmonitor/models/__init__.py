"""SQLModel entities for the IDMonitor backend."""

from idmonitor.models.audit_log import AuditLog
from idmonitor.models.document import DocumentKind, IdentityDocument, RenewalStatus
from idmonitor.models.reminder import ReminderType, ScheduledReminder
from idmonitor.models.reminder_config import (
    NotificationChannel,
    ReminderConfig,
    ReminderFrequency,
)
from idmonitor.models.user import User

__all__ = [
    "User",
    "IdentityDocument",
    "DocumentKind",
    "RenewalStatus",
    "ReminderConfig",
    "ReminderFrequency",
    "NotificationChannel",
    "ScheduledReminder",
    "ReminderType",
    "AuditLog",
]
