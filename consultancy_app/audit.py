# audit.py
import uuid

from .models import AuditLog


def client_ip(request):
    if request is None:
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def record_audit(request, event_type, table_name, record_id=None, operation='INSERT',
                 old_values=None, new_values=None, changed_fields=None, user=None, username=None):
    """Write one AuditLog row for the acting user of the request."""
    if user is None and request is not None and request.user.is_authenticated:
        user = request.user

    return AuditLog.objects.create(
        event_type=event_type,
        user=user,
        username=username or (user.email if user else None),
        user_role=user.role_name if user else None,
        table_name=table_name,
        record_id=record_id,
        operation=operation,
        old_values=old_values,
        new_values=new_values,
        changed_fields=changed_fields or [],
        ip_address=client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', '') if request is not None else '',
        endpoint=request.path if request is not None else None,
        http_method=request.method if request is not None else None,
        request_id=uuid.uuid4(),
    )
