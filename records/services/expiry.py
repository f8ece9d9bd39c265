"""
Lazy expiry of stale referrals.

There is no scheduler: every referral read path calls
:func:`sweep_expired_referrals` first, and operators can run the
``sweep_referrals`` management command.  Each row is moved with a
conditional update keyed on its old status, so two sweeps racing over the
same rows write one log entry per referral, never two.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from records.models import Referral
from records.metrics import count_transition_on_commit
from records.services.audit import SYSTEM_ACTOR, record_transition

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = (Referral.STATUS_ACTIVE, Referral.STATUS_PENDING)


def expiry_cutoff(now=None):
    now = now or timezone.now()
    return now - timedelta(hours=settings.REFERRAL_EXPIRY_HOURS)


def sweep_expired_referrals(now=None) -> int:
    """Cancel active/pending referrals older than the expiry window.

    Returns the number of referrals this call actually transitioned.
    """
    now = now or timezone.now()
    cutoff = expiry_cutoff(now)
    reason = f"Automatically cancelled after {settings.REFERRAL_EXPIRY_HOURS} hours without completion"

    swept = 0
    with transaction.atomic():
        candidates = list(
            Referral.objects.filter(status__in=EXPIRABLE_STATUSES, referral_date__lt=cutoff)
            .values_list('id', 'status')
        )
        for referral_id, prev_status in candidates:
            updated = (
                Referral.objects.filter(id=referral_id, status=prev_status)
                .update(status=Referral.STATUS_CANCELLED, updated_at=now)
            )
            if not updated:
                # a concurrent sweep or a user got there first
                continue
            record_transition(
                Referral(id=referral_id),
                SYSTEM_ACTOR,
                action='cancelled',
                reason=reason,
                previous_status=prev_status,
                new_status=Referral.STATUS_CANCELLED,
                timestamp=now,
            )
            swept += 1
        if swept:
            count_transition_on_commit('expired', swept)

    if swept:
        logger.info("expired referrals cancelled", extra={'count': swept, 'cutoff': cutoff.isoformat()})
    return swept
