"""Tests for the reminder scheduling service and document lifecycle."""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from idmonitor.models.document import DocumentCreate, DocumentKind, DocumentUpdate
from idmonitor.models.reminder import ReminderType, ScheduledReminder
from idmonitor.models.reminder_config import ReminderConfig, ReminderConfigUpdate
from idmonitor.services.documents import (
    create_document,
    delete_document,
    reschedule_user_documents,
    update_document,
)
from idmonitor.services.errors import StorageFailure
from idmonitor.services.reminder_config import update_config
from idmonitor.services.reminders import ReminderService, get_reminder_service

NOW = datetime(2025, 1, 1, 9, 0)


def pending(session: Session, document_id) -> list[ScheduledReminder]:
    return list(
        session.exec(
            select(ScheduledReminder)
            .where(ScheduledReminder.document_id == document_id)
            .where(ScheduledReminder.sent_at == None)  # noqa: E711
        ).all()
    )


class TestScheduleForDocument:
    """Tests for ReminderService.schedule_for_document."""

    def test_persists_plan(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        service = ReminderService()

        count = service.schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        rows = pending(db_session, document.id)
        assert count == 2 == len(rows)
        assert {r.scheduled_for for r in rows} == {datetime(2025, 6, 18), datetime(2025, 9, 16)}
        assert all(r.user_id == test_user.id for r in rows)
        assert all(r.reminder_type == ReminderType.EARLY_WARNING for r in rows)

    def test_materializes_default_config(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))

        ReminderService().schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        configs = db_session.exec(select(ReminderConfig)).all()
        assert len(configs) == 1
        assert configs[0].user_id == test_user.id
        assert configs[0].document_kind is None
        assert configs[0].early_reminder_days == [365, 180, 90]

    def test_does_not_duplicate_existing_config(self, db_session: Session, test_user, make_document):
        update_config(db_session, test_user.id, ReminderConfigUpdate(early_reminder_days=[30]))
        document = make_document(test_user, datetime(2025, 12, 15))

        count = ReminderService().schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        assert count == 1
        assert len(db_session.exec(select(ReminderConfig)).all()) == 1

    def test_rescheduling_twice_keeps_one_plan(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        service = ReminderService()

        for _ in range(2):
            service.schedule_for_document(
                db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
            )

        rows = pending(db_session, document.id)
        assert len(rows) == 2
        assert len({(r.reminder_type, r.scheduled_for) for r in rows}) == 2

    def test_sent_reminders_survive_rescheduling(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        sent = ScheduledReminder(
            user_id=test_user.id,
            document_id=document.id,
            scheduled_for=datetime(2024, 12, 15),
            reminder_type=ReminderType.EARLY_WARNING,
            message="Your passport expires in 365 days (2025-12-15)",
            sent_at=datetime(2024, 12, 15, 8, 0),
        )
        db_session.add(sent)
        db_session.commit()

        ReminderService().schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        all_rows = db_session.exec(
            select(ScheduledReminder).where(ScheduledReminder.document_id == document.id)
        ).all()
        assert len(all_rows) == 3
        assert db_session.get(ScheduledReminder, sent.id) is not None

    def test_other_documents_untouched(self, db_session: Session, test_user, make_document):
        first = make_document(test_user, datetime(2025, 12, 15))
        second = make_document(test_user, datetime(2025, 12, 15), kind=DocumentKind.VISA)
        service = ReminderService()

        service.schedule_for_document(
            db_session, first.id, test_user.id, first.expires_at, first.kind, now=NOW
        )
        service.schedule_for_document(
            db_session, second.id, test_user.id, second.expires_at, second.kind, now=NOW
        )
        service.schedule_for_document(
            db_session, first.id, test_user.id, first.expires_at, first.kind, now=NOW
        )

        assert len(pending(db_session, first.id)) == 2
        assert len(pending(db_session, second.id)) == 2

    def test_empty_plan_clears_pending(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        service = ReminderService()
        service.schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        # Expiry moved to later today: nothing left to plan
        count = service.schedule_for_document(
            db_session, document.id, test_user.id, datetime(2025, 1, 1, 18, 0), document.kind, now=NOW
        )

        assert count == 0
        assert pending(db_session, document.id) == []

    def test_storage_failure_keeps_old_plan(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        service = ReminderService()
        service.schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        with patch.object(
            db_session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("down"))
        ):
            with pytest.raises(StorageFailure):
                service.schedule_for_document(
                    db_session,
                    document.id,
                    test_user.id,
                    datetime(2025, 1, 20),
                    document.kind,
                    now=NOW,
                )

        rows = pending(db_session, document.id)
        assert {r.scheduled_for for r in rows} == {datetime(2025, 6, 18), datetime(2025, 9, 16)}

    def test_config_failure_aborts_before_delete(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        service = ReminderService()
        service.schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        with patch(
            "idmonitor.services.reminders.resolve_config",
            side_effect=StorageFailure("config store down"),
        ):
            with pytest.raises(StorageFailure):
                service.schedule_for_document(
                    db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
                )

        assert len(pending(db_session, document.id)) == 2


class TestReminderQueries:
    """Tests for due/upcoming lookups and claiming."""

    def test_get_due_reminders_oldest_first(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 1, 20))
        for day in (5, 3, 4, 10):
            db_session.add(
                ScheduledReminder(
                    user_id=test_user.id,
                    document_id=document.id,
                    scheduled_for=datetime(2025, 1, day),
                    reminder_type=ReminderType.URGENT_REMINDER,
                    message=f"day {day}",
                )
            )
        db_session.commit()

        due = ReminderService().get_due_reminders(db_session, as_of=datetime(2025, 1, 6), limit=2)

        assert [r.scheduled_for.day for r in due] == [3, 4]

    def test_claim_reminder_only_once(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 1, 20))
        reminder = ScheduledReminder(
            user_id=test_user.id,
            document_id=document.id,
            scheduled_for=datetime(2025, 1, 5),
            reminder_type=ReminderType.URGENT_REMINDER,
            message="msg",
        )
        db_session.add(reminder)
        db_session.commit()
        service = ReminderService()

        assert service.claim_reminder(db_session, reminder.id, datetime(2025, 1, 6)) is True
        db_session.commit()
        assert service.claim_reminder(db_session, reminder.id, datetime(2025, 1, 7)) is False

        db_session.refresh(reminder)
        assert reminder.sent_at == datetime(2025, 1, 6)

    def test_cancel_document_reminders(self, db_session: Session, test_user, make_document):
        document = make_document(test_user, datetime(2025, 12, 15))
        service = ReminderService()
        service.schedule_for_document(
            db_session, document.id, test_user.id, document.expires_at, document.kind, now=NOW
        )

        assert service.cancel_document_reminders(db_session, document.id) == 2
        assert pending(db_session, document.id) == []

    def test_get_reminder_service_singleton(self):
        import idmonitor.services.reminders as reminders_module
        reminders_module._service_instance = None

        assert get_reminder_service() is get_reminder_service()


class TestDocumentLifecycle:
    """Document changes drive rescheduling."""

    def _create(self, session: Session, user, expires_at: datetime):
        return create_document(
            session,
            user.id,
            DocumentCreate(
                kind=DocumentKind.PASSPORT,
                country="FR",
                expires_at=expires_at,
                encrypted_number="enc-number",
                encrypted_holder_name="enc-name",
                encryption_iv="iv",
                encryption_salt="salt",
            ),
        )

    def test_create_schedules_reminders(self, db_session: Session, test_user):
        document = self._create(db_session, test_user, datetime.utcnow() + timedelta(days=800))

        assert len(pending(db_session, document.id)) == 3

    def test_expiry_change_reschedules(self, db_session: Session, test_user):
        document = self._create(db_session, test_user, datetime.utcnow() + timedelta(days=800))

        update_document(
            db_session, document, DocumentUpdate(expires_at=datetime.utcnow() - timedelta(days=2))
        )

        rows = pending(db_session, document.id)
        assert [r.reminder_type for r in rows] == [ReminderType.EXPIRED_NOTICE]

    def test_unrelated_update_keeps_plan(self, db_session: Session, test_user):
        document = self._create(db_session, test_user, datetime.utcnow() + timedelta(days=800))
        before = {r.id for r in pending(db_session, document.id)}

        update_document(db_session, document, DocumentUpdate(renewal_status="in_progress"))

        assert {r.id for r in pending(db_session, document.id)} == before

    def test_delete_cancels_pending(self, db_session: Session, test_user):
        document = self._create(db_session, test_user, datetime.utcnow() + timedelta(days=800))

        delete_document(db_session, document)

        assert document.deleted_at is not None
        assert pending(db_session, document.id) == []

    def test_reschedule_after_config_change(self, db_session: Session, test_user):
        document = self._create(db_session, test_user, datetime.utcnow() + timedelta(days=800))
        update_config(db_session, test_user.id, ReminderConfigUpdate(early_reminder_days=[30]))

        assert reschedule_user_documents(db_session, test_user.id) == 1
        assert len(pending(db_session, document.id)) == 1

    def test_reschedule_pages_through_all_documents(
        self, db_session: Session, test_user, make_document, monkeypatch
    ):
        monkeypatch.setattr("idmonitor.services.documents.RESCHEDULE_PAGE_SIZE", 2)
        expires_at = datetime.utcnow() + timedelta(days=800)
        documents = [make_document(test_user, expires_at) for _ in range(5)]

        assert reschedule_user_documents(db_session, test_user.id) == 5
        for document in documents:
            assert len(pending(db_session, document.id)) == 3
