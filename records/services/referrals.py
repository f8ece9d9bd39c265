"""
Referral lifecycle.

Every status change goes through :func:`_transition`, which re-reads the
referral under a row lock inside ``transaction.atomic()``, evaluates the
guards, writes the new status and appends the matching ReferralLog row.
A failed guard raises inside the block so neither the status nor the log
is written.  Read paths run the expiry sweep before querying.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import bleach
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.db.models.functions import Length
from django.utils import timezone

from records.exceptions import AuthorizationError, NotFound, StateError, ValidationFailed
from records.metrics import count_transition_on_commit
from records.models import Consultation, Employee, Facility, Patient, Referral, Visit
from records.services.access import (
    CANCEL_REFERRAL_ANY,
    CANCEL_REFERRAL_OWN,
    SEES_ALL,
    AccessContext,
    can_manage_referrals,
    scope_consultations,
    scope_patients,
    scope_referrals,
)
from records.services.audit import log_action, record_transition
from records.services.expiry import sweep_expired_referrals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    sources: tuple
    target: str
    log_action: str


TRANSITIONS = {
    'complete': Transition((Referral.STATUS_ACTIVE,), Referral.STATUS_COMPLETED, 'completed'),
    'cancel': Transition((Referral.STATUS_ACTIVE,), Referral.STATUS_CANCELLED, 'cancelled'),
    'void': Transition((Referral.STATUS_ACTIVE,), Referral.STATUS_VOIDED, 'voided'),
    'reinstate': Transition(
        (Referral.STATUS_CANCELLED, Referral.STATUS_VOIDED), Referral.STATUS_ACTIVE, 'reinstated'
    ),
}

_STATE_MESSAGES = {
    'complete': "Only active referrals can be completed. Current status: {status}",
    'cancel': "Only active referrals can be cancelled. Current status: {status}",
    'void': "Only active referrals can be voided. Current status: {status}",
    'reinstate': "Only cancelled or voided referrals can be reinstated. Current status: {status}",
}


@dataclass(frozen=True)
class TransitionResult:
    referral_id: int
    referral_number: str
    patient_name: str
    previous_status: str
    new_status: str
    actor_name: str
    timestamp: datetime
    reason: str


# ---------------------------------------------------------------------
# Input validation (before any transaction)
# ---------------------------------------------------------------------
def _clean_referral_id(raw) -> int:
    if isinstance(raw, bool):
        raise ValidationFailed('Invalid referral ID provided.')
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationFailed('Invalid referral ID provided.')
    if value <= 0:
        raise ValidationFailed('Invalid referral ID provided.')
    return value


def _clean_text(raw) -> str:
    return bleach.clean((raw or '').strip(), strip=True)


def _acting_employee(ctx: AccessContext) -> Employee:
    try:
        return Employee.objects.get(pk=ctx.employee_id, is_active=True)
    except Employee.DoesNotExist:
        raise NotFound('Employee not found.')


def _lock_referral(ctx: AccessContext, referral_id: int) -> Referral:
    """Fetch the referral for update, denying callers outside its scope.

    Callers who see every record get NotFound for a missing id; everyone
    else gets the same generic denial whether the row exists or not.
    """
    referral = Referral.objects.select_for_update().filter(pk=referral_id).first()
    if referral is None:
        if ctx.visibility == SEES_ALL:
            raise NotFound('Referral not found.')
        raise AuthorizationError()
    if not scope_referrals(Referral.objects.filter(pk=referral.pk), ctx).exists():
        raise AuthorizationError()
    return referral


def _transition(
    ctx: AccessContext,
    referral_id: int,
    action: str,
    *,
    reason: Callable[[Employee, Referral], str],
    guard: Optional[Callable[[Employee, Referral], None]] = None,
) -> TransitionResult:
    rule = TRANSITIONS[action]
    with transaction.atomic():
        actor = _acting_employee(ctx)
        referral = _lock_referral(ctx, referral_id)
        if guard is not None:
            guard(actor, referral)
        if referral.status not in rule.sources:
            raise StateError(_STATE_MESSAGES[action].format(status=referral.status),
                             current_status=referral.status)

        now = timezone.now()
        previous = referral.status
        text = reason(actor, referral)
        referral.status = rule.target
        referral.save(update_fields=['status', 'updated_at'])
        record_transition(referral, actor, rule.log_action, text, previous, rule.target, timestamp=now)
        count_transition_on_commit(rule.log_action)
        patient_name = Patient.objects.filter(pk=referral.patient_id).values_list(
            'first_name', 'last_name').first()

    logger.info(
        "referral %s", rule.log_action,
        extra={'referral_id': referral.pk, 'employee_id': actor.pk,
               'previous_status': previous, 'new_status': rule.target},
    )
    return TransitionResult(
        referral_id=referral.pk,
        referral_number=referral.referral_num,
        patient_name=' '.join(patient_name or ()).strip(),
        previous_status=previous,
        new_status=rule.target,
        actor_name=actor.display_name,
        timestamp=now,
        reason=text,
    )


# ---------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------
def cancel_referral(ctx: AccessContext, referral_id, reason, password) -> TransitionResult:
    """Cancel an active referral after re-verifying the caller's password.

    Admins may cancel any referral they can see; doctors only the ones
    they issued.
    """
    referral_id = _clean_referral_id(referral_id)
    # length is measured on what the user typed, not on the escaped text
    raw_reason = (reason or '').strip()
    if not raw_reason:
        raise ValidationFailed('Cancellation reason is required.')
    if len(raw_reason) < settings.CANCEL_REASON_MIN_LENGTH:
        raise ValidationFailed(
            f'Cancellation reason must be at least {settings.CANCEL_REASON_MIN_LENGTH} characters long.'
        )
    reason = _clean_text(raw_reason)
    if not reason:
        raise ValidationFailed('Cancellation reason is required.')
    if not password:
        raise ValidationFailed('Password is required for verification.')
    if not (ctx.has(CANCEL_REFERRAL_ANY) or ctx.has(CANCEL_REFERRAL_OWN)):
        raise AuthorizationError()

    def guard(actor: Employee, referral: Referral) -> None:
        if not actor.check_password(password):
            logger.warning("cancel refused: password mismatch",
                           extra={'referral_id': referral.pk, 'employee_id': actor.pk})
            raise AuthorizationError()
        if not ctx.has(CANCEL_REFERRAL_ANY) and referral.referred_by_id != actor.pk:
            raise AuthorizationError()

    return _transition(ctx, referral_id, 'cancel', reason=lambda actor, referral: reason, guard=guard)


def complete_referral(ctx: AccessContext, referral_id) -> TransitionResult:
    referral_id = _clean_referral_id(referral_id)
    if not can_manage_referrals(ctx):
        raise AuthorizationError()
    return _transition(
        ctx, referral_id, 'complete',
        reason=lambda actor, referral: f"Referral marked as completed by {actor.display_name}",
    )


def void_referral(ctx: AccessContext, referral_id, reason) -> TransitionResult:
    referral_id = _clean_referral_id(referral_id)
    reason = _clean_text(reason)
    if not reason:
        raise ValidationFailed('Void reason is required.')
    if not can_manage_referrals(ctx):
        raise AuthorizationError()
    return _transition(ctx, referral_id, 'void', reason=lambda actor, referral: reason)


def reinstate_referral(ctx: AccessContext, referral_id) -> TransitionResult:
    referral_id = _clean_referral_id(referral_id)
    if not can_manage_referrals(ctx):
        raise AuthorizationError()

    def reason(actor: Employee, referral: Referral) -> str:
        return (f"Referral reinstated by {actor.display_name} ({actor.get_role_display()}) "
                f"- Status changed from {referral.status} to active")

    return _transition(ctx, referral_id, 'reinstate', reason=reason)


# ---------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------
def _next_referral_num(today) -> str:
    prefix = f"REF-{today:%Y%m%d}-"
    # compare by length first so that -10000 sorts after -9999
    last = (Referral.objects.filter(referral_num__startswith=prefix)
            .order_by(Length('referral_num').desc(), '-referral_num')
            .values_list('referral_num', flat=True).first())
    seq = int(last.rsplit('-', 1)[1]) + 1 if last else 1
    return f"{prefix}{seq:04d}"


def issue_referral(
    ctx: AccessContext,
    patient_id,
    reason,
    destination_type,
    facility_id=None,
    external_facility_name=None,
    consultation_id=None,
) -> Referral:
    """Create an ``active`` referral owned by the caller."""
    if not can_manage_referrals(ctx):
        raise AuthorizationError()
    reason = _clean_text(reason)
    if not reason:
        raise ValidationFailed('Referral reason is required.')
    if destination_type not in dict(Referral.DESTINATION_CHOICES):
        raise ValidationFailed('Invalid destination type.')
    external_name = _clean_text(external_facility_name)

    patient = Patient.objects.filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found.')
    # a patient waiting on an open visit may be referred by whoever sees them
    if not (scope_patients(Patient.objects.filter(pk=patient.pk), ctx).exists()
            or patient.visits.filter(status__in=Visit.OPEN_STATUSES).exists()):
        raise AuthorizationError()

    facility = None
    if destination_type == Referral.DEST_EXTERNAL:
        if not external_name:
            raise ValidationFailed('External facility name is required.')
    else:
        facility = Facility.objects.filter(
            pk=facility_id, facility_type=destination_type, is_active=True
        ).first() if facility_id else None
        if facility is None:
            raise ValidationFailed('Please select an active destination facility.')
        external_name = ''

    consultation = None
    if consultation_id:
        consultation = scope_consultations(
            Consultation.objects.filter(pk=consultation_id, patient=patient), ctx
        ).first()
        if consultation is None:
            raise NotFound('Consultation not found.')

    now = timezone.now()
    for attempt in range(5):
        try:
            with transaction.atomic():
                referral = Referral.objects.create(
                    referral_num=_next_referral_num(timezone.localdate(now)),
                    patient=patient,
                    consultation=consultation,
                    referred_by_id=ctx.employee_id,
                    destination_type=destination_type,
                    referred_to_facility=facility,
                    external_facility_name=external_name,
                    referral_reason=reason,
                    status=Referral.STATUS_ACTIVE,
                    referral_date=now,
                )
                log_action(user=Employee.objects.get(pk=ctx.employee_id), action='referral_issue',
                           object_type='referral', object_id=referral.pk,
                           detail={'referral_num': referral.referral_num, 'destination_type': destination_type})
            break
        except IntegrityError:
            # another request took the same number
            if attempt == 4:
                raise
            logger.debug("referral number collision, retrying", extra={'attempt': attempt})

    count_transition_on_commit('issued')
    logger.info("referral issued", extra={'referral_id': referral.pk, 'employee_id': ctx.employee_id})
    return referral


# ---------------------------------------------------------------------
# Read paths (each runs the expiry sweep first)
# ---------------------------------------------------------------------
def _serialize(r: Referral) -> dict:
    return {
        'id': r.id,
        'referral_num': r.referral_num,
        'status': r.status,
        'patient_id': r.patient_id,
        'patient_number': r.patient.patient_number,
        'patient_name': r.patient.full_name,
        'barangay': getattr(r.patient.barangay, 'name', None),
        'destination_type': r.destination_type,
        'destination': r.destination_name,
        'referral_reason': r.referral_reason,
        'referred_by_id': r.referred_by_id,
        'referred_by': r.referred_by.display_name if r.referred_by_id else None,
        'consultation_id': r.consultation_id,
        'referral_date': r.referral_date,
        'updated_at': r.updated_at,
    }


def _scoped(ctx: AccessContext):
    return scope_referrals(Referral.objects.all(), ctx)


def list_referrals(
    ctx: AccessContext,
    *,
    status: Optional[str] = None,
    date_from=None,
    date_to=None,
    referred_by: Optional[int] = None,
    barangay: Optional[int] = None,
    district: Optional[int] = None,
    q: Optional[str] = None,
    page: int = 1,
    per_page: Optional[int] = None,
    sweep: bool = True,
) -> tuple[list[dict], int]:
    """Referrals visible to ``ctx``; filters only ever narrow the scope.

    Pass ``sweep=False`` when the caller has already run the expiry sweep
    for this request.
    """
    if sweep:
        sweep_expired_referrals()

    qs = _scoped(ctx)
    if status:
        qs = qs.filter(status=status)
    if date_from:
        qs = qs.filter(referral_date__date__gte=date_from)
    if date_to:
        qs = qs.filter(referral_date__date__lte=date_to)
    if referred_by:
        qs = qs.filter(referred_by_id=referred_by)
    if barangay:
        qs = qs.filter(patient__barangay_id=barangay)
    if district:
        qs = qs.filter(patient__barangay__district_id=district)
    if q:
        qs = qs.filter(
            Q(referral_num__icontains=q)
            | Q(patient__patient_number__icontains=q)
            | Q(patient__first_name__icontains=q)
            | Q(patient__last_name__icontains=q)
        )

    if per_page not in settings.REFERRAL_PAGE_SIZES:
        per_page = settings.REFERRAL_DEFAULT_PAGE_SIZE
    page = max(1, int(page or 1))
    start = (page - 1) * per_page

    total = qs.count()
    items = (qs.select_related('patient__barangay', 'referred_by', 'referred_to_facility')
             .order_by('-referral_date', '-id')[start:start + per_page])
    return [_serialize(r) for r in items], total


def get_referral(ctx: AccessContext, referral_id) -> dict:
    """One visible referral with its transition history, oldest first."""
    referral_id = _clean_referral_id(referral_id)
    sweep_expired_referrals()

    referral = (_scoped(ctx).select_related('patient__barangay', 'referred_by', 'referred_to_facility')
                .filter(pk=referral_id).first())
    if referral is None:
        raise NotFound('Referral not found.')

    data = _serialize(referral)
    data['logs'] = [{
        'action': log.action,
        'previous_status': log.previous_status,
        'new_status': log.new_status,
        'reason': log.reason,
        'actor_type': log.actor_type,
        'employee_id': log.employee_id,
        'employee': log.employee.display_name if log.employee_id else 'System',
        'timestamp': log.timestamp,
    } for log in referral.logs.select_related('employee').all()]
    return data


def referral_status_counts(ctx: AccessContext, *, sweep: bool = True) -> dict:
    if sweep:
        sweep_expired_referrals()
    counts = {key: 0 for key, _ in Referral.STATUS_CHOICES}
    for row in _scoped(ctx).order_by().values('status').annotate(n=Count('id')):
        counts[row['status']] = row['n']
    counts['total'] = sum(counts.values())
    return counts
