"""Initial schema - users, identity documents, reminder configs, scheduled reminders, audit logs.

Revision ID: 001
Revises: None
Create Date: 2026-03-01

This migration creates:
- users: identity-provider backed accounts
- identity_documents: documents with client-side encrypted fields
- reminder_configs: per-user (optionally per-kind) reminder policy
- scheduled_reminders: planned reminder instances (sent_at NULL = pending)
- audit_logs: API activity records

Enum columns store member names, matching SQLAlchemy's Enum mapping.
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create enums in PostgreSQL
    op.execute("CREATE TYPE documentkind AS ENUM ('PASSPORT', 'NATIONAL_ID', 'DRIVERS_LICENSE', 'RESIDENCE_PERMIT', 'VISA')")
    op.execute("CREATE TYPE renewalstatus AS ENUM ('NOT_STARTED', 'IN_PROGRESS', 'SUBMITTED', 'COMPLETED')")
    op.execute("CREATE TYPE reminderfrequency AS ENUM ('DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY')")
    op.execute("CREATE TYPE remindertype AS ENUM ('EARLY_WARNING', 'URGENT_REMINDER', 'CRITICAL_ALERT', 'EXPIRED_NOTICE')")

    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id UUID PRIMARY KEY,
            auth_subject VARCHAR(255) NOT NULL UNIQUE,
            email VARCHAR(255),
            phone_number VARCHAR(32),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_users_auth_subject ON users(auth_subject);
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS identity_documents (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES users(id),
            kind documentkind NOT NULL,
            country VARCHAR(2) NOT NULL,
            issued_at TIMESTAMP,
            expires_at TIMESTAMP NOT NULL,
            encrypted_number VARCHAR NOT NULL,
            encrypted_holder_name VARCHAR NOT NULL,
            encrypted_mrz_data VARCHAR,
            encryption_iv VARCHAR(255) NOT NULL,
            encryption_salt VARCHAR(255) NOT NULL,
            scan_storage_key VARCHAR(500),
            scan_uploaded_at TIMESTAMP,
            renewal_status renewalstatus DEFAULT 'NOT_STARTED',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            deleted_at TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_identity_documents_user_id ON identity_documents(user_id);
        CREATE INDEX IF NOT EXISTS ix_identity_documents_kind ON identity_documents(kind);
        CREATE INDEX IF NOT EXISTS ix_identity_documents_expires_at ON identity_documents(expires_at);
        CREATE INDEX IF NOT EXISTS ix_identity_documents_deleted_at ON identity_documents(deleted_at);
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS reminder_configs (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES users(id),
            document_kind documentkind,
            early_reminder_days JSON NOT NULL,
            urgent_period_days INTEGER NOT NULL DEFAULT 30,
            urgent_frequency reminderfrequency NOT NULL DEFAULT 'WEEKLY',
            critical_period_days INTEGER NOT NULL DEFAULT 7,
            critical_frequency reminderfrequency NOT NULL DEFAULT 'DAILY',
            email_enabled BOOLEAN NOT NULL DEFAULT TRUE,
            push_enabled BOOLEAN NOT NULL DEFAULT TRUE,
            sms_enabled BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CONSTRAINT ck_reminder_configs_critical_lt_urgent CHECK (critical_period_days < urgent_period_days)
        );
        CREATE INDEX IF NOT EXISTS ix_reminder_configs_user_id ON reminder_configs(user_id);
        CREATE INDEX IF NOT EXISTS ix_reminder_configs_document_kind ON reminder_configs(document_kind);
        CREATE UNIQUE INDEX IF NOT EXISTS uq_reminder_configs_user_kind ON reminder_configs(user_id, document_kind) WHERE document_kind IS NOT NULL;
        CREATE UNIQUE INDEX IF NOT EXISTS uq_reminder_configs_user_global ON reminder_configs(user_id) WHERE document_kind IS NULL;
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS scheduled_reminders (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES users(id),
            document_id UUID NOT NULL REFERENCES identity_documents(id),
            scheduled_for TIMESTAMP NOT NULL,
            reminder_type remindertype NOT NULL,
            message VARCHAR(500) NOT NULL,
            sent_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_scheduled_reminders_user_id ON scheduled_reminders(user_id);
        CREATE INDEX IF NOT EXISTS ix_scheduled_reminders_document_id ON scheduled_reminders(document_id);
        CREATE INDEX IF NOT EXISTS ix_scheduled_reminders_scheduled_for ON scheduled_reminders(scheduled_for);
        CREATE INDEX IF NOT EXISTS ix_scheduled_reminders_sent_at ON scheduled_reminders(sent_at);
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS audit_logs (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES users(id),
            action VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id UUID,
            details JSONB,
            ip_address VARCHAR(45),
            user_agent VARCHAR(500),
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_audit_logs_user_id ON audit_logs(user_id);
        CREATE INDEX IF NOT EXISTS ix_audit_logs_action ON audit_logs(action);
        CREATE INDEX IF NOT EXISTS ix_audit_logs_entity_type ON audit_logs(entity_type);
        CREATE INDEX IF NOT EXISTS ix_audit_logs_entity_id ON audit_logs(entity_id);
        CREATE INDEX IF NOT EXISTS ix_audit_logs_timestamp ON audit_logs(timestamp);
    """)


def downgrade() -> None:
    # Drop tables in reverse order
    op.execute("DROP TABLE IF EXISTS audit_logs CASCADE")
    op.execute("DROP TABLE IF EXISTS scheduled_reminders CASCADE")
    op.execute("DROP TABLE IF EXISTS reminder_configs CASCADE")
    op.execute("DROP TABLE IF EXISTS identity_documents CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")

    # Drop enums
    op.execute("DROP TYPE IF EXISTS remindertype")
    op.execute("DROP TYPE IF EXISTS reminderfrequency")
    op.execute("DROP TYPE IF EXISTS renewalstatus")
    op.execute("DROP TYPE IF EXISTS documentkind")
