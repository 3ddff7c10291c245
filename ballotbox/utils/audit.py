from typing import Optional, Dict, Any
from flask import request, has_request_context, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity, get_jwt

from ..extensions import db
from ..models.audit_log import AuditLog
from .identity import as_uuid

def _optional_actor():
    """
    Returns (user_id, role) or (None, None).
    Works for both authenticated and system-initiated calls.
    """
    if not has_request_context():
        return None, None
    try:
        verify_jwt_in_request(optional=True)
        claims = get_jwt()
        return get_jwt_identity(), claims.get("role")
    except Exception:
        return None, None

def audit_log(
    action: str,
    entity_type: Optional[str] = None,
    entity_id=None,
    details: Optional[Dict[str, Any]] = None,
    actor_id=None,
) -> None:
    """Stage an audit row in the current session; it commits with the caller's transaction."""
    user_id, role = _optional_actor()
    if actor_id is not None:
        user_id = actor_id

    ip, ua = None, None
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        ua = request.headers.get("User-Agent")

    log = AuditLog(
        actor_user_id=as_uuid(user_id, required=False),
        actor_role=role,
        action=action,
        entity_type=entity_type,
        entity_id=as_uuid(entity_id, required=False),
        ip_address=ip,
        user_agent=ua[:255] if ua else None,
        details=details or None,
    )
    db.session.add(log)


def safe_audit(action: str, entity_type: str, entity_id=None, details: dict | None = None, actor_id=None):
    """
    Best-effort audit for read-only paths and failure reporting.
    We don't want reads to fail if auditing fails, but we still try.
    """
    try:
        audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
            actor_id=actor_id,
        )
        db.session.commit()  # commit audit row only
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Audit logging failed: %s", action)
