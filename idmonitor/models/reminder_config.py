"""ReminderConfig entity model: per-user reminder policy."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from idmonitor.models.document import DocumentKind


class ReminderFrequency(str, Enum):
    """Cadence of recurring reminders."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class NotificationChannel(str, Enum):
    """Notification delivery channels."""
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


# System fallback when a user has no stored configuration
DEFAULT_EARLY_REMINDER_DAYS = [365, 180, 90]
DEFAULT_URGENT_PERIOD_DAYS = 30
DEFAULT_URGENT_FREQUENCY = ReminderFrequency.WEEKLY
DEFAULT_CRITICAL_PERIOD_DAYS = 7
DEFAULT_CRITICAL_FREQUENCY = ReminderFrequency.DAILY

MAX_EARLY_REMINDERS = 20
MAX_EARLY_REMINDER_DAYS = 3650


class ReminderConfig(SQLModel, table=True):
    """Reminder configuration database model.

    A row with document_kind = NULL is the user's global default; rows with a
    kind override it for that kind only.
    """

    __tablename__ = "reminder_configs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    document_kind: DocumentKind | None = Field(default=None, index=True)
    early_reminder_days: list[int] = Field(
        default_factory=lambda: list(DEFAULT_EARLY_REMINDER_DAYS),
        sa_column=Column(JSON, nullable=False),
    )
    urgent_period_days: int = Field(default=DEFAULT_URGENT_PERIOD_DAYS)
    urgent_frequency: ReminderFrequency = Field(default=DEFAULT_URGENT_FREQUENCY)
    critical_period_days: int = Field(default=DEFAULT_CRITICAL_PERIOD_DAYS)
    critical_frequency: ReminderFrequency = Field(default=DEFAULT_CRITICAL_FREQUENCY)
    email_enabled: bool = Field(default=True)
    push_enabled: bool = Field(default=True)
    sms_enabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ReminderConfigUpdate(SQLModel):
    """Schema for a partial reminder configuration update.

    Unset fields keep their stored (or system default) value. The
    critical/urgent ordering is checked on the merged result by the service.
    """

    document_kind: DocumentKind | None = None
    early_reminder_days: list[int] | None = None
    urgent_period_days: int | None = Field(default=None, gt=0, le=365)
    urgent_frequency: ReminderFrequency | None = None
    critical_period_days: int | None = Field(default=None, gt=0, le=90)
    critical_frequency: ReminderFrequency | None = None
    email_enabled: bool | None = None
    push_enabled: bool | None = None
    sms_enabled: bool | None = None

    @field_validator("early_reminder_days")
    @classmethod
    def early_days_are_distinct_and_positive(
        cls, value: list[int] | None
    ) -> list[int] | None:
        """Reject duplicates, non-positive and out-of-range day offsets."""
        if value is None:
            return value
        if len(value) > MAX_EARLY_REMINDERS:
            raise ValueError(f"Maximum {MAX_EARLY_REMINDERS} reminder days allowed")
        if len(set(value)) != len(value):
            raise ValueError("Duplicate reminder days not allowed")
        for days in value:
            if days <= 0 or days > MAX_EARLY_REMINDER_DAYS:
                raise ValueError(
                    f"Reminder days must be between 1 and {MAX_EARLY_REMINDER_DAYS}"
                )
        return value


class ReminderConfigResponse(SQLModel):
    """Schema for reminder configuration response."""

    document_kind: DocumentKind | None
    early_reminder_days: list[int]
    urgent_period_days: int
    urgent_frequency: ReminderFrequency
    critical_period_days: int
    critical_frequency: ReminderFrequency
    email_enabled: bool
    push_enabled: bool
    sms_enabled: bool

    model_config = {"from_attributes": True}
