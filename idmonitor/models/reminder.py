"""ScheduledReminder entity model."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class ReminderType(str, Enum):
    """Escalation level of a planned reminder."""
    EARLY_WARNING = "early_warning"
    URGENT_REMINDER = "urgent_reminder"
    CRITICAL_ALERT = "critical_alert"
    EXPIRED_NOTICE = "expired_notice"


class ScheduledReminder(SQLModel, table=True):
    """Scheduled reminder database model.

    sent_at is NULL while the reminder is pending. Sent rows are history and
    are never touched by rescheduling.
    """

    __tablename__ = "scheduled_reminders"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    document_id: UUID = Field(foreign_key="identity_documents.id", index=True)
    scheduled_for: datetime = Field(index=True)
    reminder_type: ReminderType
    message: str = Field(max_length=500)
    sent_at: datetime | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ReminderResponse(SQLModel):
    """Schema for reminder response."""

    id: UUID
    document_id: UUID
    scheduled_for: datetime
    reminder_type: ReminderType
    message: str
    sent_at: datetime | None

    model_config = {"from_attributes": True}


class ReminderListResponse(SQLModel):
    """Schema for reminder list response."""

    reminders: list[ReminderResponse]
    total: int
