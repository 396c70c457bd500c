import logging
from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from clinic.models import AuditEvent

User = get_user_model()
logger = logging.getLogger(__name__)


def client_ip(request) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None,
               detail: Optional[Dict[str, Any]]=None, request=None, successful: bool=True) -> Optional[AuditEvent]:
    """Persist an audit row. Failures are logged and swallowed so that auditing never breaks a request."""
    try:
        return AuditEvent.objects.create(
            user=user if isinstance(user, User) and getattr(user, 'pk', None) else None,
            action=action,
            object_type=object_type, object_id=object_id,
            detail=detail or {},
            ip_address=client_ip(request),
            user_agent=(request.META.get('HTTP_USER_AGENT', '')[:512] if request is not None else ''),
            successful=successful,
        )
    except Exception:
        logger.exception("audit write failed: action=%s object=%s:%s", action, object_type, object_id)
        return None
