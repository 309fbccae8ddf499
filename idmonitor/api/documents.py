"""Identity document API endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status

from idmonitor.api.deps import CurrentUser, DBSession
from idmonitor.models.document import (
    DocumentCreate,
    DocumentDetailResponse,
    DocumentKind,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdate,
)
from idmonitor.models.reminder import ReminderListResponse, ReminderResponse
from idmonitor.services.audit import log_audit
from idmonitor.services.documents import (
    create_document,
    delete_document,
    get_document_by_id,
    get_user_documents,
    update_document,
)
from idmonitor.services.errors import StorageFailure
from idmonitor.services.reminders import get_reminder_service

router = APIRouter(prefix="/api/documents", tags=["Documents"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Document not found",
    )


def _storage_unavailable(error: StorageFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Reminder storage unavailable: {error}",
    )


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def create_document_endpoint(
    request: Request,
    session: DBSession,
    current_user: CurrentUser,
    document_data: DocumentCreate,
) -> DocumentResponse:
    """Create a new document (ciphertext only) and schedule its reminders."""
    try:
        document = create_document(session, current_user.id, document_data)
    except StorageFailure as e:
        raise _storage_unavailable(e)

    log_audit(
        session,
        user_id=current_user.id,
        action="document.created",
        entity_type="document",
        entity_id=document.id,
        details={"kind": document.kind.value, "country": document.country},
        request=request,
    )
    return DocumentResponse.model_validate(document)


@router.get("", response_model=DocumentListResponse)
def list_documents_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    kind: DocumentKind | None = Query(default=None, description="Filter by document kind"),
    limit: int = Query(default=50, ge=1, le=100, description="Maximum number of documents"),
    offset: int = Query(default=0, ge=0, description="Number of documents to skip"),
) -> DocumentListResponse:
    """List the authenticated user's documents."""
    documents, total = get_user_documents(session, current_user.id, kind, limit, offset)
    return DocumentListResponse(
        documents=[DocumentResponse.model_validate(d) for d in documents],
        total=total,
    )


@router.get("/{document_id}", response_model=DocumentDetailResponse)
def get_document_endpoint(
    request: Request,
    session: DBSession,
    current_user: CurrentUser,
    document_id: UUID,
) -> DocumentDetailResponse:
    """Get a document with its ciphertext for client-side decryption."""
    document = get_document_by_id(session, current_user.id, document_id)
    if document is None:
        raise _not_found()

    log_audit(
        session,
        user_id=current_user.id,
        action="document.viewed",
        entity_type="document",
        entity_id=document.id,
        request=request,
    )
    return DocumentDetailResponse.model_validate(document)


@router.patch("/{document_id}", response_model=DocumentResponse)
def update_document_endpoint(
    request: Request,
    session: DBSession,
    current_user: CurrentUser,
    document_id: UUID,
    document_data: DocumentUpdate,
) -> DocumentResponse:
    """Update renewal status or expiry; a new expiry reschedules reminders."""
    document = get_document_by_id(session, current_user.id, document_id)
    if document is None:
        raise _not_found()

    try:
        updated = update_document(session, document, document_data)
    except StorageFailure as e:
        raise _storage_unavailable(e)

    log_audit(
        session,
        user_id=current_user.id,
        action="document.updated",
        entity_type="document",
        entity_id=updated.id,
        details=document_data.model_dump(mode="json", exclude_unset=True),
        request=request,
    )
    return DocumentResponse.model_validate(updated)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document_endpoint(
    request: Request,
    session: DBSession,
    current_user: CurrentUser,
    document_id: UUID,
) -> None:
    """Soft delete a document and cancel its pending reminders."""
    document = get_document_by_id(session, current_user.id, document_id)
    if document is None:
        raise _not_found()

    try:
        delete_document(session, document)
    except StorageFailure as e:
        raise _storage_unavailable(e)

    log_audit(
        session,
        user_id=current_user.id,
        action="document.deleted",
        entity_type="document",
        entity_id=document_id,
        request=request,
    )


@router.get("/{document_id}/reminders", response_model=ReminderListResponse)
def list_document_reminders_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    document_id: UUID,
    include_sent: bool = Query(default=False, description="Include already sent reminders"),
) -> ReminderListResponse:
    """List the planned reminders of a document."""
    document = get_document_by_id(session, current_user.id, document_id)
    if document is None:
        raise _not_found()

    reminders = get_reminder_service().get_document_reminders(
        session, document.id, include_sent=include_sent
    )
    return ReminderListResponse(
        reminders=[ReminderResponse.model_validate(r) for r in reminders],
        total=len(reminders),
    )
