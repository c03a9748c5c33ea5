"""Audit logging helpers"""
import logging

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """First address of X-Forwarded-For, else REMOTE_ADDR"""
    meta = getattr(request, 'META', None)
    if not meta:
        return None
    forwarded = meta.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return meta.get('REMOTE_ADDR') or None


def _audit_user(request, user):
    candidate = user or getattr(request, 'user', None)
    if candidate is not None and candidate.is_authenticated:
        return candidate
    return None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, theater=None, object_name=None,
                     object_reference=None):
    """
    Record who did what to which object of which theater.

    ``user`` overrides ``request.user``; jobs and services pass it directly.
    ``object_name`` is the readable label (product name, order number) and
    ``object_reference`` a lookup key (SKU, batch, order number).
    Returns the AuditLog, or None when skipped or when the write failed.
    """
    if not action or not model_name or object_id in (None, ''):
        logger.warning(f"Audit log skipped: action={action}, model={model_name}, object_id={object_id}")
        return None

    try:
        return AuditLog.objects.create(
            user=_audit_user(request, user),
            theater=theater,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        # An audit failure never breaks the operation being audited
        logger.error(f"Failed to create audit log for {model_name} {object_id}: {e}")
        return None
