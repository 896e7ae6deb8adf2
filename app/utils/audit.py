import logging

from fastapi import Request
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
FAILED = "FAILED"


def request_meta(request: Request | None) -> dict:
    """Client IP and user agent of the request, empty when there is none."""
    if request is None:
        return {}
    return {
        "ipAddress": request.client.host if request.client else None,
        "userAgent": request.headers.get("user-agent"),
    }


def log_action(
    db: Session,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    description: str | None = None,
    status: str = SUCCESS,
    request: Request | None = None,
) -> None:
    """
    Write an audit log entry.

    Args:
        db:          Active DB session (will NOT commit, the caller does)
        user_id:     ID of user performing the action (None = system action)
        action:      Verb: REGISTER, LOGIN, LOGOUT, LOGOUT_ALL, RESET_PASSWORD, RESTRICT, etc.
        entity_type: Model name: "User", "RefreshToken", ...
        entity_id:   Primary key of the affected record
        description: Human-readable description
        status:      SUCCESS or FAILED
        request:     Inbound request, used for IP / user agent

    Usage:
        log_action(db, user.id, "LOGIN", "User", user.id, f"{user.name} logged in")
        db.commit()
    """
    entry = AuditLog(
        userId=user_id,
        action=action,
        entityType=entity_type,
        entityId=entity_id,
        description=description,
        status=status,
        **request_meta(request),
    )
    db.add(entry)
    logger.info(f"Activity: {action} - {status} (user={user_id})")
    # Do NOT commit here; the caller's transaction commits everything together


def log_auth_failure(email: str | None, reason: str, request: Request | None = None) -> None:
    """Warning log for failed sign-ins, including emails that match no user."""
    meta = request_meta(request)
    logger.warning(
        f"Authentication failed: email={email} reason={reason} "
        f"ip={meta.get('ipAddress')} ua={meta.get('userAgent')}"
    )
