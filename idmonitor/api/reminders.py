"""Reminder configuration and processing API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from idmonitor.api.deps import CurrentUser, DBSession, require_cron_secret
from idmonitor.models.document import DocumentKind
from idmonitor.models.reminder import ReminderListResponse, ReminderResponse
from idmonitor.models.reminder_config import ReminderConfigResponse, ReminderConfigUpdate
from idmonitor.services.audit import log_audit
from idmonitor.services.documents import reschedule_user_documents
from idmonitor.services.errors import ConfigInvariantViolation, StorageFailure
from idmonitor.services.reminder_config import resolve_config, update_config
from idmonitor.services.reminders import get_reminder_service
from idmonitor.workers.reminder_worker import process_due_reminders

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reminders", tags=["Reminders"])


@router.get("/config", response_model=ReminderConfigResponse)
def get_config_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    document_kind: DocumentKind | None = Query(default=None, description="Document kind"),
) -> ReminderConfigResponse:
    """Get the effective reminder configuration for a document kind."""
    try:
        config = resolve_config(session, current_user.id, document_kind)
    except StorageFailure as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    return ReminderConfigResponse.model_validate(config)


@router.post("/config", response_model=ReminderConfigResponse)
def update_config_endpoint(
    request: Request,
    session: DBSession,
    current_user: CurrentUser,
    config_data: ReminderConfigUpdate,
) -> ReminderConfigResponse:
    """Update reminder settings and recompute affected reminder plans.

    The config is committed before plans are recomputed. If rescheduling
    fails the response is 503 with a detail saying the settings were saved;
    repeating the same request is safe and finishes the reschedule.
    """
    try:
        config = update_config(session, current_user.id, config_data)
    except ConfigInvariantViolation as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StorageFailure as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    try:
        rescheduled = reschedule_user_documents(
            session, current_user.id, config_data.document_kind
        )
    except StorageFailure as e:
        logger.error(
            "Reminder settings saved but rescheduling failed",
            extra={"user_id": str(current_user.id), "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Reminder settings saved; rescheduling reminders failed: {e}",
        )

    log_audit(
        session,
        user_id=current_user.id,
        action="reminder.configured",
        entity_type="reminder_config",
        entity_id=config.id,
        details={
            **config_data.model_dump(mode="json", exclude_unset=True),
            "documents_rescheduled": rescheduled,
        },
        request=request,
    )
    return ReminderConfigResponse.model_validate(config)


@router.get("/upcoming", response_model=ReminderListResponse)
def list_upcoming_endpoint(
    session: DBSession,
    current_user: CurrentUser,
    within_days: int = Query(default=30, ge=1, le=3650, description="Look-ahead window"),
) -> ReminderListResponse:
    """List the user's pending reminders within a look-ahead window."""
    reminders = get_reminder_service().get_upcoming_reminders(
        session, current_user.id, within_days=within_days
    )
    return ReminderListResponse(
        reminders=[ReminderResponse.model_validate(r) for r in reminders],
        total=len(reminders),
    )


@router.post("/process", dependencies=[Depends(require_cron_secret)])
def process_due_endpoint(
    session: DBSession,
    batch_size: int | None = Query(default=None, ge=1, le=1000),
) -> dict[str, int]:
    """Process one batch of due reminders (external cron trigger)."""
    try:
        processed = process_due_reminders(session, batch_size=batch_size)
    except StorageFailure as e:
        logger.error("Due reminder batch failed", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    return {"processed": processed}
