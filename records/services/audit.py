from typing import Optional, Any, Dict
from django.db import transaction
from django.db.transaction import TransactionManagementError
from django.utils import timezone
from django.contrib.auth import get_user_model
from records.models import AuditEvent, Referral, ReferralLog

User = get_user_model()

# Actor for transitions nobody asked for (the expiry sweep)
SYSTEM_ACTOR = object()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )


def record_transition(referral: Referral, actor, action: str, reason: str, previous_status: str, new_status: str, timestamp=None) -> ReferralLog:
    """Append one row to the referral's transition log.

    Must run inside the same atomic block as the status write so that the
    status change and its log row commit or roll back together.
    """
    if not transaction.get_connection().in_atomic_block:
        raise TransactionManagementError("record_transition must be called inside transaction.atomic()")
    if actor is SYSTEM_ACTOR:
        employee, actor_type = None, ReferralLog.ACTOR_SYSTEM
    else:
        employee, actor_type = actor, ReferralLog.ACTOR_EMPLOYEE
    return ReferralLog.objects.create(
        referral_id=referral.pk,
        employee=employee,
        actor_type=actor_type,
        action=action,
        reason=reason or '',
        previous_status=previous_status,
        new_status=new_status,
        timestamp=timestamp or timezone.now(),
    )
