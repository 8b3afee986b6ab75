# idreview/review.py
import logging
from datetime import datetime, timezone

from idreview.models import AuditAction, AuditEntry, Operator

logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """The request has already been reviewed."""


def log_audit(entry: AuditEntry):
    logger.info(
        "Admin action logged: %s by %s on %s",
        entry.action.value, entry.admin_uid, entry.target_id,
        extra={"audit": entry.model_dump(mode="json", by_alias=True)},
    )


def _audit_entry(action, request, operator, match, reason):
    return AuditEntry(
        action=action,
        admin_uid=operator.uid,
        admin_email=operator.email,
        target_uid=request.id,
        target_id=request.id,
        reason=reason,
        metadata={
            "userName": request.display_name(),
            "ocrScore": match.score if match is not None else 0,
        },
    )


def _load_pending(store, request_id):
    request = store.get(request_id)
    if not request.is_pending:
        raise InvalidTransition(f"Verification {request_id} is already {request.status.value}")
    return request


def approve(store, files, request_id, operator: Operator, match=None, reason=None, audit=log_audit):
    """
    Flags the user as verified, then removes the request and its uploads.
    `operator` is the admin taking the decision; `match` is the advisory
    OCR result, if one was computed.
    """
    request = _load_pending(store, request_id)

    store.mark_user_verified(request.id, operator, datetime.now(timezone.utc))
    store.delete(request.id)
    files.cleanup(request.id)

    entry = _audit_entry(AuditAction.VERIFICATION_APPROVED, request, operator, match, reason)
    audit(entry)
    return entry


def reject(store, files, request_id, operator: Operator, match=None, reason=None, audit=log_audit):
    """Removes the request and its uploads without touching the user."""
    request = _load_pending(store, request_id)

    store.delete(request.id)
    files.cleanup(request.id)

    entry = _audit_entry(AuditAction.VERIFICATION_REJECTED, request, operator, match, reason)
    audit(entry)
    return entry
