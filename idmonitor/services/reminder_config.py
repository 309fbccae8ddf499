"""Reminder configuration resolution and updates.

Effective configuration for a (user, document kind) pair is resolved with an
explicit fallback chain:

1. The user's row for exactly that kind
2. The user's global row (document_kind IS NULL)
3. The built-in system default (never persisted by the resolver)
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from idmonitor.models.document import DocumentKind
from idmonitor.models.reminder_config import (
    DEFAULT_CRITICAL_FREQUENCY,
    DEFAULT_CRITICAL_PERIOD_DAYS,
    DEFAULT_EARLY_REMINDER_DAYS,
    DEFAULT_URGENT_FREQUENCY,
    DEFAULT_URGENT_PERIOD_DAYS,
    NotificationChannel,
    ReminderConfig,
    ReminderConfigUpdate,
)
from idmonitor.services.errors import ConfigInvariantViolation, StorageFailure

logger = logging.getLogger(__name__)

_POLICY_FIELDS = (
    "early_reminder_days",
    "urgent_period_days",
    "urgent_frequency",
    "critical_period_days",
    "critical_frequency",
    "email_enabled",
    "push_enabled",
    "sms_enabled",
)


def system_default_config(
    user_id: UUID, document_kind: DocumentKind | None = None
) -> ReminderConfig:
    """Build the unpersisted system default configuration for a user."""
    return ReminderConfig(
        user_id=user_id,
        document_kind=document_kind,
        early_reminder_days=list(DEFAULT_EARLY_REMINDER_DAYS),
        urgent_period_days=DEFAULT_URGENT_PERIOD_DAYS,
        urgent_frequency=DEFAULT_URGENT_FREQUENCY,
        critical_period_days=DEFAULT_CRITICAL_PERIOD_DAYS,
        critical_frequency=DEFAULT_CRITICAL_FREQUENCY,
        email_enabled=True,
        push_enabled=True,
        sms_enabled=False,
    )


def find_config(
    session: Session,
    user_id: UUID,
    document_kind: DocumentKind | None,
) -> ReminderConfig | None:
    """Find the stored config row for exactly (user, kind); kind None is global."""
    query = select(ReminderConfig).where(ReminderConfig.user_id == user_id)
    if document_kind is None:
        query = query.where(ReminderConfig.document_kind == None)  # noqa: E711
    else:
        query = query.where(ReminderConfig.document_kind == document_kind)
    return session.exec(query).first()


def resolve_config(
    session: Session,
    user_id: UUID,
    document_kind: DocumentKind | None = None,
) -> ReminderConfig:
    """Resolve the effective reminder configuration for a user and kind.

    Read-only: when nothing is stored the system default is returned without
    being written.

    Raises:
        StorageFailure: If the lookup fails
    """
    try:
        if document_kind is not None:
            specific = find_config(session, user_id, document_kind)
            if specific is not None:
                return specific

        global_config = find_config(session, user_id, None)
        if global_config is not None:
            return global_config
    except SQLAlchemyError as e:
        raise StorageFailure(f"Failed to load reminder config: {e}") from e

    return system_default_config(user_id)


def update_config(
    session: Session,
    user_id: UUID,
    update: ReminderConfigUpdate,
) -> ReminderConfig:
    """Create or update the user's config for update.document_kind.

    Unset fields are taken from the row being updated or, for a new row, from
    the currently effective configuration. The merged result must keep
    critical_period_days < urgent_period_days.

    Raises:
        ConfigInvariantViolation: If the merged config breaks the ordering;
            nothing is written
        StorageFailure: If the write fails
    """
    document_kind = update.document_kind
    try:
        existing = find_config(session, user_id, document_kind)
    except SQLAlchemyError as e:
        raise StorageFailure(f"Failed to load reminder config: {e}") from e

    base = existing or resolve_config(session, user_id, document_kind)
    merged = {field: getattr(base, field) for field in _POLICY_FIELDS}
    merged.update(
        update.model_dump(
            exclude_unset=True, exclude_none=True, exclude={"document_kind"}
        )
    )

    if merged["critical_period_days"] >= merged["urgent_period_days"]:
        raise ConfigInvariantViolation(
            "Critical period must be shorter than urgent period "
            f"({merged['critical_period_days']} >= {merged['urgent_period_days']})"
        )

    config = existing or ReminderConfig(user_id=user_id, document_kind=document_kind)
    for key, value in merged.items():
        setattr(config, key, value)
    config.early_reminder_days = list(merged["early_reminder_days"])
    config.updated_at = datetime.utcnow()

    try:
        session.add(config)
        session.commit()
        session.refresh(config)
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageFailure(f"Failed to save reminder config: {e}") from e

    logger.info(
        "Reminder config updated",
        extra={
            "user_id": str(user_id),
            "document_kind": document_kind.value if document_kind else None,
            "config_created": existing is None,
        },
    )

    return config


def get_channel_flags(config: ReminderConfig) -> list[NotificationChannel]:
    """Channels enabled by a configuration, in dispatch order."""
    channels = []
    if config.email_enabled:
        channels.append(NotificationChannel.EMAIL)
    if config.push_enabled:
        channels.append(NotificationChannel.PUSH)
    if config.sms_enabled:
        channels.append(NotificationChannel.SMS)
    return channels
