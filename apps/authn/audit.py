"""
Audit trail.

Events go to the 'audit' logger as one JSON object per line. Team
actions are also stored as AuditLog rows so owners can review them.
Never put passwords, tokens or document text in an event.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

audit_logger = logging.getLogger('audit')
logger = logging.getLogger(__name__)


class AuditEvent:
    REGISTERED = 'auth.registered'
    LOGIN = 'auth.login'
    LOGIN_FAILED = 'auth.login_failed'
    PASSWORD_RESET = 'auth.password_reset'
    EMAIL_VERIFIED = 'auth.email_verified'

    DOCUMENT_UPLOADED = 'document.uploaded'
    DOCUMENT_DUPLICATE = 'document.duplicate'
    DOCUMENT_DELETED = 'document.deleted'

    ANALYSIS_STARTED = 'analysis.started'
    ANALYSIS_COMPLETED = 'analysis.completed'
    ANALYSIS_FAILED = 'analysis.failed'

    CHAT_QUERY = 'chat.query'
    TEAM_ACTION = 'team.action'
    RATELIMIT_EXCEEDED = 'ratelimit.exceeded'


def get_client_ip(request) -> str:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


def log_audit(
    event_type: str,
    request=None,
    user_id: Optional[str] = None,
    success: bool = True,
    **metadata: Any
) -> None:
    """
    Write one audit event.

    With a request, the client IP, a request id and (unless given) the
    authenticated user's id are filled in from it.
    """
    event: Dict[str, Any] = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'event_type': event_type,
        'user_id': user_id,
        'outcome': 'success' if success else 'failure',
        'metadata': metadata,
    }
    if request is not None:
        if event['user_id'] is None:
            event['user_id'] = getattr(getattr(request, 'user_claims', None), 'sub', None)
        event['client_ip'] = get_client_ip(request)
        event['request_id'] = request.META.get('HTTP_X_REQUEST_ID') or uuid.uuid4().hex[:8]

    audit_logger.info(json.dumps(event, default=str))


def record_audit(
    request,
    action: str,
    entity_type: str,
    entity_id,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True
) -> None:
    """Log a team action and store it as an AuditLog row; a failed insert is only logged."""
    from .models import AuditLog

    details = details or {}
    log_audit(
        AuditEvent.TEAM_ACTION, request, success=success,
        action=action, entity_type=entity_type, entity_id=str(entity_id), details=details
    )
    try:
        AuditLog.objects.create(
            user=getattr(request, 'auth_user', None),
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            details=details,
            success=success,
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        logger.error(f"Failed to persist audit log {action} for {entity_type}:{entity_id}: {e}")


def audit_registered(request, user) -> None:
    log_audit(AuditEvent.REGISTERED, request, user_id=str(user.id), persona=user.persona)


def audit_email_verified(request, user) -> None:
    log_audit(AuditEvent.EMAIL_VERIFIED, request, user_id=str(user.id))


def audit_password_reset(request, user) -> None:
    log_audit(AuditEvent.PASSWORD_RESET, request, user_id=str(user.id))


def audit_login(request, user_id: Optional[str], email: str, success: bool, method: str = 'password') -> None:
    """Failed attempts record only the email domain."""
    log_audit(
        AuditEvent.LOGIN if success else AuditEvent.LOGIN_FAILED,
        request,
        user_id=user_id,
        success=success,
        method=method,
        email_domain=email.rsplit('@', 1)[-1] if '@' in email else None,
    )


def audit_document_uploaded(request, document_id: str, filename: str, size_bytes: int, content_hash: str):
    log_audit(
        AuditEvent.DOCUMENT_UPLOADED, request,
        document_id=document_id, filename=filename, size_bytes=size_bytes,
        content_hash=content_hash[:16],
    )


def audit_document_duplicate(request, document_id: str):
    log_audit(AuditEvent.DOCUMENT_DUPLICATE, request, document_id=document_id)


def audit_document_deleted(request, document_id: str):
    log_audit(AuditEvent.DOCUMENT_DELETED, request, document_id=document_id)


def audit_chat_query(request, document_id: str, message_length: int, source_count: int, strategy: str):
    log_audit(
        AuditEvent.CHAT_QUERY, request,
        document_id=document_id, message_length=message_length,
        source_count=source_count, strategy=strategy,
    )


def audit_analysis_started(job_id: str, document_id: str, user_id: str):
    log_audit(AuditEvent.ANALYSIS_STARTED, user_id=user_id, job_id=job_id, document_id=document_id)


def audit_analysis_completed(job_id: str, document_id: str, user_id: str, chunk_count: int):
    log_audit(
        AuditEvent.ANALYSIS_COMPLETED, user_id=user_id,
        job_id=job_id, document_id=document_id, chunk_count=chunk_count,
    )


def audit_analysis_failed(job_id: str, document_id: str, user_id: str, error: str):
    log_audit(
        AuditEvent.ANALYSIS_FAILED, user_id=user_id, success=False,
        job_id=job_id, document_id=document_id, error=error[:200],
    )


def audit_ratelimit_exceeded(request, endpoint: str, limit: int):
    log_audit(AuditEvent.RATELIMIT_EXCEEDED, request, success=False, endpoint=endpoint, limit=limit)
