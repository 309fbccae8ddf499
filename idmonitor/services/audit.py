"""Audit logging for the API layer."""

import logging
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlmodel import Session

from idmonitor.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


def log_audit(
    session: Session,
    user_id: UUID,
    action: str,
    entity_type: str,
    entity_id: UUID | None = None,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> AuditLog:
    """Record an immutable audit entry for a user action."""
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = _client_ip(request)
        user_agent = (request.headers.get("user-agent") or "")[:500] or None

    audit = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    session.add(audit)
    session.commit()

    logger.debug(
        "Audit entry recorded",
        extra={"action": action, "entity_type": entity_type},
    )
    return audit
