"""Services module for the reminder scheduling core.

Services:
- reminder_plan.py: Frequency policy and pure reminder plan generation
- reminder_config.py: Effective configuration resolution and updates
- reminders.py: Plan persistence and due-reminder lookup
- notifications.py: Notification dispatch collaborator
- documents.py: Document CRUD that triggers rescheduling
- audit.py: API-level audit logging
"""

from idmonitor.services.reminder_config import resolve_config, update_config
from idmonitor.services.reminder_plan import ReminderEvent, generate_plan, interval_days
from idmonitor.services.reminders import ReminderService, get_reminder_service

__all__ = [
    "ReminderEvent",
    "generate_plan",
    "interval_days",
    "resolve_config",
    "update_config",
    "ReminderService",
    "get_reminder_service",
]
