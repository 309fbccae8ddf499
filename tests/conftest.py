"""Shared pytest fixtures."""

import logging
from datetime import datetime

import pytest
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from idmonitor.models.document import DocumentKind, IdentityDocument


@pytest.fixture(autouse=True)
def verbose_logging(caplog):
    """Build every log record, so bad `extra` keys fail the test that hits them."""
    caplog.set_level(logging.DEBUG)
    caplog.set_level(logging.WARNING, logger="sqlalchemy")
    yield caplog


@pytest.fixture
def db_session():
    """Create a test database session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Import all models to register them
    from idmonitor.models import (  # noqa: F401
        AuditLog, IdentityDocument, ReminderConfig, ScheduledReminder, User,
    )

    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session


@pytest.fixture
def test_user(db_session: Session):
    """Create a test user."""
    from idmonitor.models.user import User

    user = User(
        auth_subject="auth|test-user",
        email="test@example.com",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def make_document(db_session: Session):
    """Factory for stored identity documents."""

    def _make(
        user,
        expires_at: datetime,
        kind: DocumentKind = DocumentKind.PASSPORT,
    ) -> IdentityDocument:
        document = IdentityDocument(
            user_id=user.id,
            kind=kind,
            country="DE",
            expires_at=expires_at,
            encrypted_number="ciphertext-number",
            encrypted_holder_name="ciphertext-name",
            encryption_iv="iv",
            encryption_salt="salt",
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make
