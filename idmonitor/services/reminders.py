"""Reminder scheduling service.

This module owns the persisted reminder plan of each document:
1. Compute a fresh plan from the effective configuration
2. Atomically replace the document's unsent reminders with it
3. Find and claim due reminders for the batch processor

Design Principles:
- The plan is computed before any row is touched
- Delete + insert of a plan happen in one transaction
- Sent reminders are history and are never deleted by rescheduling
- A due reminder is claimed with a conditional update, so it is sent at most once
"""

import logging
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, delete, select, update

from idmonitor.models.document import DocumentKind, IdentityDocument
from idmonitor.models.reminder import ScheduledReminder
from idmonitor.services.errors import StorageFailure
from idmonitor.services.reminder_config import resolve_config
from idmonitor.services.reminder_plan import generate_plan, to_utc_naive

logger = logging.getLogger(__name__)


class ReminderService:
    """Service for scheduling and tracking document reminders.

    Thread Safety: All methods are stateless; concurrent calls for the same
    document are serialized by a row lock on the document inside the
    rewrite transaction.
    """

    def schedule_for_document(
        self,
        session: Session,
        document_id: UUID,
        user_id: UUID,
        expires_at: datetime | date,
        kind: DocumentKind,
        now: datetime | None = None,
    ) -> int:
        """Replace the document's unsent reminders with a freshly computed plan.

        On first use the system default configuration is stored as the
        user's global config so later plans stay reproducible.

        Args:
            session: Database session
            document_id: The document ID
            user_id: The owner's user ID
            expires_at: Document expiry
            kind: Document kind
            now: Reference time for the plan (default: utcnow)

        Returns:
            int: Number of reminders persisted

        Raises:
            StorageFailure: If loading config or rewriting the plan fails; the
                previous unsent plan is left in place
        """
        today = to_utc_naive(now) if now else datetime.utcnow()

        config = resolve_config(session, user_id, kind)
        materialize_default = sa_inspect(config).transient

        events = generate_plan(expires_at, today, config, kind)

        try:
            if materialize_default:
                session.add(config)

            # Serialize concurrent rewrites of the same document
            session.exec(
                select(IdentityDocument.id)
                .where(IdentityDocument.id == document_id)
                .with_for_update()
            ).first()

            session.exec(
                delete(ScheduledReminder)
                .where(ScheduledReminder.document_id == document_id)
                .where(ScheduledReminder.sent_at == None)  # noqa: E711
            )
            session.add_all(
                [
                    ScheduledReminder(
                        user_id=user_id,
                        document_id=document_id,
                        scheduled_for=event.scheduled_for,
                        reminder_type=event.reminder_type,
                        message=event.message,
                    )
                    for event in events
                ]
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(
                "Failed to schedule reminders",
                extra={"document_id": str(document_id), "error": str(e)},
                exc_info=True,
            )
            raise StorageFailure(f"Failed to schedule reminders: {e}") from e

        logger.info(
            "Reminders scheduled",
            extra={
                "document_id": str(document_id),
                "user_id": str(user_id),
                "count": len(events),
                "default_config_created": materialize_default,
            },
        )

        return len(events)

    def cancel_document_reminders(
        self,
        session: Session,
        document_id: UUID,
    ) -> int:
        """Delete all unsent reminders for a document.

        Args:
            session: Database session
            document_id: The document ID

        Returns:
            int: Number of reminders removed
        """
        try:
            result = session.exec(
                delete(ScheduledReminder)
                .where(ScheduledReminder.document_id == document_id)
                .where(ScheduledReminder.sent_at == None)  # noqa: E711
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageFailure(f"Failed to cancel reminders: {e}") from e

        count = result.rowcount
        if count > 0:
            logger.info(
                "Reminders cancelled",
                extra={"document_id": str(document_id), "count": count},
            )
        return count

    def get_due_reminders(
        self,
        session: Session,
        as_of: datetime | None = None,
        limit: int = 100,
    ) -> list[ScheduledReminder]:
        """Get unsent reminders due as of a time, oldest first.

        Raises:
            StorageFailure: If the query fails
        """
        check_time = as_of or datetime.utcnow()

        try:
            return list(
                session.exec(
                    select(ScheduledReminder)
                    .where(ScheduledReminder.sent_at == None)  # noqa: E711
                    .where(ScheduledReminder.scheduled_for <= check_time)
                    .order_by(ScheduledReminder.scheduled_for)
                    .limit(limit)
                ).all()
            )
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to fetch due reminders: {e}") from e

    def claim_reminder(
        self,
        session: Session,
        reminder_id: UUID,
        sent_at: datetime,
    ) -> bool:
        """Atomically mark a reminder as sent if nobody else has.

        The caller commits. Returns False when the reminder was already
        claimed (by this or a concurrent run) or no longer exists because a
        reschedule replaced it.
        """
        result = session.exec(
            update(ScheduledReminder)
            .where(ScheduledReminder.id == reminder_id)
            .where(ScheduledReminder.sent_at == None)  # noqa: E711
            .values(sent_at=sent_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def get_upcoming_reminders(
        self,
        session: Session,
        user_id: UUID,
        within_days: int = 30,
    ) -> list[ScheduledReminder]:
        """Get a user's pending reminders scheduled within a look-ahead window."""
        window_end = datetime.utcnow() + timedelta(days=within_days)

        return list(
            session.exec(
                select(ScheduledReminder)
                .where(ScheduledReminder.user_id == user_id)
                .where(ScheduledReminder.sent_at == None)  # noqa: E711
                .where(ScheduledReminder.scheduled_for <= window_end)
                .order_by(ScheduledReminder.scheduled_for)
            ).all()
        )

    def get_document_reminders(
        self,
        session: Session,
        document_id: UUID,
        include_sent: bool = False,
    ) -> list[ScheduledReminder]:
        """Get the reminders of one document, pending only unless include_sent."""
        query = select(ScheduledReminder).where(
            ScheduledReminder.document_id == document_id
        )
        if not include_sent:
            query = query.where(ScheduledReminder.sent_at == None)  # noqa: E711

        return list(session.exec(query.order_by(ScheduledReminder.scheduled_for)).all())


# -----------------------------------------------------------------------------
# Singleton Service Instance
# -----------------------------------------------------------------------------

_service_instance: ReminderService | None = None


def get_reminder_service() -> ReminderService:
    """Get or create the reminder service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ReminderService()
    return _service_instance
