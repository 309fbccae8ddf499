"""Identity document service for CRUD operations.

Every change to a document's expiry goes through here, so the reminder plan
is recomputed whenever a document is created or its expiry moves, and unsent
reminders are dropped when it is deleted.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlmodel import Session, func, select

from idmonitor.models.document import (
    DocumentCreate,
    DocumentKind,
    DocumentUpdate,
    IdentityDocument,
)
from idmonitor.services.reminder_plan import to_utc_naive
from idmonitor.services.reminders import get_reminder_service

logger = logging.getLogger(__name__)

RESCHEDULE_PAGE_SIZE = 200


def create_document(
    session: Session, user_id: UUID, document_data: DocumentCreate
) -> IdentityDocument:
    """Create a new document for the user and schedule its reminders."""
    now = datetime.utcnow()
    document = IdentityDocument(
        user_id=user_id,
        kind=document_data.kind,
        country=document_data.country,
        issued_at=to_utc_naive(document_data.issued_at) if document_data.issued_at else None,
        expires_at=to_utc_naive(document_data.expires_at),
        encrypted_number=document_data.encrypted_number,
        encrypted_holder_name=document_data.encrypted_holder_name,
        encrypted_mrz_data=document_data.encrypted_mrz_data,
        encryption_iv=document_data.encryption_iv,
        encryption_salt=document_data.encryption_salt,
        scan_storage_key=document_data.scan_storage_key,
        scan_uploaded_at=now if document_data.scan_storage_key else None,
    )
    session.add(document)
    session.commit()
    session.refresh(document)

    get_reminder_service().schedule_for_document(
        session,
        document_id=document.id,
        user_id=user_id,
        expires_at=document.expires_at,
        kind=document.kind,
    )
    session.refresh(document)
    return document


def get_user_documents(
    session: Session,
    user_id: UUID,
    kind: DocumentKind | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[IdentityDocument], int]:
    """
    Get non-deleted documents for the user, soonest expiry first.
    Returns (documents, total_count).
    """
    conditions = [
        IdentityDocument.user_id == user_id,
        IdentityDocument.deleted_at == None,  # noqa: E711
    ]
    if kind is not None:
        conditions.append(IdentityDocument.kind == kind)

    query = (
        select(IdentityDocument)
        .where(*conditions)
        .order_by(IdentityDocument.expires_at, IdentityDocument.id)
        .offset(offset)
        .limit(limit)
    )
    count_query = select(func.count()).select_from(IdentityDocument).where(*conditions)

    documents = list(session.exec(query).all())
    total = session.exec(count_query).one()

    return documents, total


def get_document_by_id(
    session: Session, user_id: UUID, document_id: UUID
) -> IdentityDocument | None:
    """Get a specific non-deleted document owned by the user."""
    return session.exec(
        select(IdentityDocument).where(
            IdentityDocument.id == document_id,
            IdentityDocument.user_id == user_id,
            IdentityDocument.deleted_at == None,  # noqa: E711
        )
    ).first()


def update_document(
    session: Session, document: IdentityDocument, document_data: DocumentUpdate
) -> IdentityDocument:
    """Update a document; reschedules reminders when the expiry changed."""
    update_data = document_data.model_dump(exclude_unset=True, exclude_none=True)
    old_expires_at = document.expires_at

    if "expires_at" in update_data:
        update_data["expires_at"] = to_utc_naive(update_data["expires_at"])

    for key, value in update_data.items():
        setattr(document, key, value)

    document.updated_at = datetime.utcnow()
    session.add(document)
    session.commit()
    session.refresh(document)

    if document.expires_at != old_expires_at:
        logger.info(
            "Document expiry changed, rescheduling reminders",
            extra={"document_id": str(document.id)},
        )
        get_reminder_service().schedule_for_document(
            session,
            document_id=document.id,
            user_id=document.user_id,
            expires_at=document.expires_at,
            kind=document.kind,
        )
        session.refresh(document)

    return document


def delete_document(session: Session, document: IdentityDocument) -> None:
    """Soft delete a document and cancel its unsent reminders."""
    document.deleted_at = datetime.utcnow()
    session.add(document)
    session.commit()

    get_reminder_service().cancel_document_reminders(session, document.id)


def reschedule_user_documents(
    session: Session,
    user_id: UUID,
    kind: DocumentKind | None = None,
) -> int:
    """Recompute reminder plans for a user's documents after a config change.

    With kind None every document is rescheduled, since the global config
    can affect all kinds.

    Returns:
        int: Number of documents rescheduled
    """
    service = get_reminder_service()
    rescheduled = 0

    # Rescheduling never changes expires_at, so the expiry ordering is stable
    while True:
        documents, _ = get_user_documents(
            session, user_id, kind=kind, limit=RESCHEDULE_PAGE_SIZE, offset=rescheduled
        )
        for document in documents:
            service.schedule_for_document(
                session,
                document_id=document.id,
                user_id=user_id,
                expires_at=document.expires_at,
                kind=document.kind,
            )
        rescheduled += len(documents)
        if len(documents) < RESCHEDULE_PAGE_SIZE:
            return rescheduled
