"""Due-reminder worker.

Processes ScheduledReminder rows:
1. Finds unsent reminders whose scheduled time has passed, oldest first
2. Resolves the owner's enabled channels from their effective config
3. Claims each reminder atomically (sent_at set only if still NULL)
4. Dispatches to every enabled channel and logs per-channel outcomes

Delivery is at most once: a reminder is claimed before dispatch and
channel failures never un-claim it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlmodel import Session

from idmonitor.config import get_settings
from idmonitor.models.document import IdentityDocument
from idmonitor.models.reminder import ScheduledReminder
from idmonitor.models.user import User
from idmonitor.services.notifications import (
    LoggingDispatcher,
    NotificationDispatcher,
    dispatch_to_channels,
)
from idmonitor.services.reminder_config import get_channel_flags, resolve_config
from idmonitor.services.reminders import ReminderService, get_reminder_service
from idmonitor.workers.base import WorkerBase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DueReminder:
    """Values of a due ScheduledReminder, read before any commit in the batch."""

    id: UUID
    user_id: UUID
    document_id: UUID
    message: str

    @classmethod
    def from_row(cls, row: ScheduledReminder) -> "DueReminder":
        return cls(
            id=row.id,
            user_id=row.user_id,
            document_id=row.document_id,
            message=row.message,
        )


class DueReminderWorker(WorkerBase[DueReminder]):
    """Worker for dispatching due reminders."""

    def __init__(
        self,
        batch_size: int = 100,
        dispatcher: NotificationDispatcher | None = None,
        reminder_service: ReminderService | None = None,
    ) -> None:
        super().__init__(batch_size=batch_size)
        self.dispatcher = dispatcher or LoggingDispatcher()
        self.reminder_service = reminder_service or get_reminder_service()

    @property
    def worker_name(self) -> str:
        return "DueReminderWorker"

    def fetch_pending(self, session: Session, now: datetime) -> list[DueReminder]:
        """Fetch unsent reminders with scheduled_for <= now, oldest first.

        A reminder deleted by a concurrent reschedule after this point simply
        fails to claim and is skipped.

        Raises:
            StorageFailure: If the query fails
        """
        rows = self.reminder_service.get_due_reminders(
            session, as_of=now, limit=self.batch_size
        )
        return [DueReminder.from_row(row) for row in rows]

    def process_item(
        self, session: Session, item: DueReminder, now: datetime
    ) -> bool:
        """Claim a reminder and dispatch it to the owner's enabled channels.

        Args:
            session: Database session
            item: The due reminder
            now: Timestamp recorded as sent_at

        Returns:
            False if the reminder was already claimed elsewhere
        """
        reminder_id = item.id
        user_id = item.user_id
        message = item.message

        document = session.get(IdentityDocument, item.document_id)
        document_active = document is not None and document.deleted_at is None

        config = resolve_config(
            session, user_id, document.kind if document_active else None
        )
        channels = get_channel_flags(config)
        user = session.get(User, user_id)
        email = user.email if user else None

        if not self.reminder_service.claim_reminder(session, reminder_id, now):
            session.rollback()
            return False
        session.commit()

        if not document_active:
            logger.warning(
                f"Reminder {reminder_id} belongs to a missing or deleted document",
                extra={"reminder_id": str(reminder_id)},
            )
            return True

        if not channels:
            logger.info(
                f"No channels enabled for reminder {reminder_id}",
                extra={"reminder_id": str(reminder_id), "user_id": str(user_id)},
            )
            return True

        outcomes = dispatch_to_channels(
            self.dispatcher, channels, user_id, email, message
        )
        delivered = sum(1 for outcome in outcomes if outcome.success)

        logger.info(
            f"Dispatched reminder {reminder_id} on {delivered}/{len(outcomes)} channels",
            extra={
                "reminder_id": str(reminder_id),
                "user_id": str(user_id),
                "outcomes": [outcome.to_dict() for outcome in outcomes],
            },
        )

        return True

    def get_item_id(self, item: DueReminder) -> UUID:
        return item.id


def process_due_reminders(
    session: Session,
    now: datetime | None = None,
    batch_size: int | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> int:
    """Dispatch one batch of due reminders.

    Args:
        session: Database session
        now: Reminders scheduled at or before this time are due (default: utcnow)
        batch_size: Maximum reminders to handle (default from config)
        dispatcher: Notification dispatcher (default: LoggingDispatcher)

    Returns:
        int: Reminders examined (dispatched or errored), not deliveries

    Raises:
        StorageFailure: If the batch cannot be fetched
    """
    settings = get_settings()
    worker = DueReminderWorker(
        batch_size=batch_size or settings.WORKER_BATCH_SIZE,
        dispatcher=dispatcher,
    )
    result = worker.run(session, now=now)
    return result.examined_count
