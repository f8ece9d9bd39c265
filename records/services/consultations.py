"""
Vitals and consultation notes for a visit.

Both records are keyed by visit and saved with upsert semantics: the first
save inserts, later saves overwrite in place while keeping the original
creator and creation time.  Vitals keep no history; the latest save wins.
"""
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

import bleach
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from records.exceptions import AuthorizationError, NotFound, ValidationFailed
from records.models import Consultation, Employee, Visit, Vitals
from records.services.access import (
    EDIT_CONSULTATION,
    EDIT_VITALS,
    AccessContext,
    scope_consultations,
    scope_visits,
)
from records.services.audit import log_action

logger = logging.getLogger(__name__)

MEASUREMENT_FIELDS = (
    'systolic_bp', 'diastolic_bp', 'heart_rate', 'respiratory_rate',
    'temperature', 'height', 'weight',
)
CONSULTATION_TEXT_FIELDS = (
    'chief_complaint', 'diagnosis', 'treatment_plan', 'history_present_illness',
    'physical_examination', 'remarks',
)


def _clean(value) -> str:
    return bleach.clean((value or '').strip(), strip=True)


def compute_bmi(height_cm, weight_kg) -> Optional[Decimal]:
    if not height_cm or not weight_kg:
        return None
    height_m = Decimal(str(height_cm)) / Decimal(100)
    if height_m <= 0:
        return None
    bmi = Decimal(str(weight_kg)) / (height_m * height_m)
    return bmi.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _writable_visit(ctx: AccessContext, visit_id: int) -> Visit:
    """Load a visit the caller may record against.

    Besides the caller's usual scope, employees holding an editing
    capability may start on any open visit; a visit they have not touched
    yet would otherwise be invisible to them.
    """
    visit = Visit.objects.select_related('patient').filter(pk=visit_id).first()
    if visit is None:
        raise NotFound('Visit not found.')
    if visit.status in Visit.OPEN_STATUSES:
        return visit
    if not scope_visits(Visit.objects.filter(pk=visit.pk), ctx).exists():
        raise AuthorizationError()
    return visit


def save_vitals(ctx: AccessContext, visit_id: int, fields: Dict[str, Any]) -> Tuple[Vitals, bool]:
    ctx.require(EDIT_VITALS)
    values = {k: fields.get(k) for k in MEASUREMENT_FIELDS}
    if all(v in (None, '') for v in values.values()):
        raise ValidationFailed('At least one vital sign measurement is required.')
    values['bmi'] = compute_bmi(values['height'], values['weight'])
    values['remarks'] = _clean(fields.get('remarks'))

    with transaction.atomic():
        visit = _writable_visit(ctx, visit_id)
        vitals = Vitals.objects.select_for_update().filter(visit=visit).first()
        created = vitals is None
        if created:
            vitals = Vitals(visit=visit, taken_by_id=ctx.employee_id)
        for key, value in values.items():
            setattr(vitals, key, value)
        vitals.updated_by_id = ctx.employee_id
        vitals.save()
        log_action(user=Employee.objects.get(pk=ctx.employee_id), action='vitals_save',
                   object_type='visit', object_id=visit.pk, detail={'created': created})

    logger.info("vitals saved",
                extra={'visit_id': visit.pk, 'employee_id': ctx.employee_id, 'was_created': created})
    return vitals, created


def save_consultation(ctx: AccessContext, visit_id: int, fields: Dict[str, Any]) -> Tuple[Consultation, bool]:
    ctx.require(EDIT_CONSULTATION)
    values = {k: _clean(fields.get(k)) for k in CONSULTATION_TEXT_FIELDS}
    if not values['chief_complaint'] or not values['diagnosis']:
        raise ValidationFailed('Chief Complaint and Diagnosis are required.')
    status = fields.get('status') or Consultation.STATUS_PENDING
    if status not in dict(Consultation.STATUS_CHOICES):
        raise ValidationFailed('Invalid consultation status.')

    with transaction.atomic():
        visit = _writable_visit(ctx, visit_id)
        consultation = Consultation.objects.select_for_update().filter(visit=visit).first()
        created = consultation is None
        now = timezone.now()
        if created:
            consultation = Consultation(
                visit=visit,
                patient_id=visit.patient_id,
                created_by_id=ctx.employee_id,
                consultation_date=now,
            )
        elif consultation.attending_employee_id not in (None, ctx.employee_id):
            triage_on_open_visit = ctx.triage_only and visit.status in Visit.OPEN_STATUSES
            if not (ctx.is_admin or triage_on_open_visit):
                raise AuthorizationError()
        for key, value in values.items():
            setattr(consultation, key, value)
        consultation.status = status
        consultation.attending_employee_id = ctx.employee_id
        consultation.updated_by_id = ctx.employee_id
        consultation.save()
        log_action(user=Employee.objects.get(pk=ctx.employee_id), action='consultation_save',
                   object_type='consultation', object_id=consultation.pk,
                   detail={'created': created, 'status': status})

    logger.info("consultation saved",
                extra={'visit_id': visit.pk, 'consultation_id': consultation.pk, 'was_created': created})
    return consultation, created


def _vitals_dict(v: Optional[Vitals]) -> Optional[dict]:
    if v is None:
        return None
    data = {k: getattr(v, k) for k in MEASUREMENT_FIELDS + ('bmi', 'remarks')}
    data.update({
        'taken_by': v.taken_by.display_name if v.taken_by_id else None,
        'created_at': v.created_at,
        'updated_at': v.updated_at,
    })
    return data


def _consultation_dict(c: Optional[Consultation]) -> Optional[dict]:
    if c is None:
        return None
    data = {k: getattr(c, k) for k in CONSULTATION_TEXT_FIELDS}
    data.update({
        'id': c.id,
        'status': c.status,
        'attending_employee_id': c.attending_employee_id,
        'attending_employee': c.attending_employee.display_name if c.attending_employee_id else None,
        'consultation_date': c.consultation_date,
        'created_at': c.created_at,
        'updated_at': c.updated_at,
    })
    return data


def get_visit_record(ctx: AccessContext, visit_id: int) -> dict:
    visit = (scope_visits(Visit.objects.all(), ctx)
             .select_related('patient__barangay').filter(pk=visit_id).first())
    if visit is None:
        raise NotFound('Visit not found.')
    vitals = Vitals.objects.select_related('taken_by').filter(visit=visit).first()
    consultation = Consultation.objects.select_related('attending_employee').filter(visit=visit).first()
    return {
        'visit': {
            'id': visit.id,
            'status': visit.status,
            'visit_date': visit.visit_date,
            'patient_id': visit.patient_id,
            'patient_number': visit.patient.patient_number,
            'patient_name': visit.patient.full_name,
            'barangay': getattr(visit.patient.barangay, 'name', None),
        },
        'vitals': _vitals_dict(vitals),
        'consultation': _consultation_dict(consultation),
    }


def list_consultations(
    ctx: AccessContext,
    *,
    status: Optional[str] = None,
    date_from=None,
    date_to=None,
    attending: Optional[int] = None,
    barangay: Optional[int] = None,
    district: Optional[int] = None,
    q: Optional[str] = None,
    page: int = 1,
    per_page: int = 15,
) -> tuple[list[dict], int]:
    qs = scope_consultations(Consultation.objects.all(), ctx)
    if status:
        qs = qs.filter(status=status)
    if date_from:
        qs = qs.filter(consultation_date__date__gte=date_from)
    if date_to:
        qs = qs.filter(consultation_date__date__lte=date_to)
    if attending:
        qs = qs.filter(attending_employee_id=attending)
    if barangay:
        qs = qs.filter(patient__barangay_id=barangay)
    if district:
        qs = qs.filter(patient__barangay__district_id=district)
    if q:
        qs = qs.filter(
            Q(patient__patient_number__icontains=q)
            | Q(patient__first_name__icontains=q)
            | Q(patient__last_name__icontains=q)
            | Q(chief_complaint__icontains=q)
            | Q(diagnosis__icontains=q)
        )

    total = qs.count()
    page = max(1, int(page or 1))
    per_page = min(100, max(1, int(per_page or 15)))
    start = (page - 1) * per_page
    items = (qs.select_related('patient__barangay', 'attending_employee')
             .order_by('-consultation_date', '-id')[start:start + per_page])

    data = [{
        'id': c.id,
        'visit_id': c.visit_id,
        'patient_id': c.patient_id,
        'patient_number': c.patient.patient_number,
        'patient_name': c.patient.full_name,
        'barangay': getattr(c.patient.barangay, 'name', None),
        'status': c.status,
        'chief_complaint': c.chief_complaint,
        'diagnosis': c.diagnosis,
        'attending_employee': c.attending_employee.display_name if c.attending_employee_id else None,
        'consultation_date': c.consultation_date,
    } for c in items]
    return data, total
