"""
Role-scoped access control.

``resolve_access`` turns an employee into an immutable :class:`AccessContext`
once per request.  Services receive the context explicitly and use it in two
ways: ``ctx.require(...)`` for capability checks and the ``scope_*`` helpers
to narrow a queryset to the records the caller may see.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from django.db.models import Q, QuerySet

from records.exceptions import AuthorizationError
from records.models import Visit

VIEW = 'view'
EDIT_VITALS = 'edit_vitals'
EDIT_CONSULTATION = 'edit_consultation'
ORDER_LAB = 'order_lab'
PRESCRIBE = 'prescribe'
ORDER_FOLLOWUP = 'order_followup'
CANCEL_REFERRAL_ANY = 'cancel_referral_any'
CANCEL_REFERRAL_OWN = 'cancel_referral_own'
VIEW_ALL_LOCATIONS = 'view_all_locations'

ALL_CAPABILITIES = frozenset({
    VIEW, EDIT_VITALS, EDIT_CONSULTATION, ORDER_LAB, PRESCRIBE, ORDER_FOLLOWUP,
    CANCEL_REFERRAL_ANY, CANCEL_REFERRAL_OWN, VIEW_ALL_LOCATIONS,
})

# Visibility kinds
SEES_ALL = 'all'
SEES_OWN_CARE = 'own_care'            # attending, vitals taker or referrer
SEES_OWN_VITALS = 'own_vitals'        # vitals taker or attending
SEES_BARANGAY = 'barangay'
SEES_DISTRICT = 'district'
SEES_OPEN_VISITS = 'open_visits'
SEES_NOTHING = 'nothing'


@dataclass(frozen=True)
class RolePolicy:
    capabilities: frozenset
    visibility: str
    triage_only: bool = False


ROLE_POLICIES = {
    'admin': RolePolicy(ALL_CAPABILITIES, SEES_ALL),
    'doctor': RolePolicy(
        frozenset({VIEW, EDIT_CONSULTATION, EDIT_VITALS, ORDER_LAB, PRESCRIBE,
                   ORDER_FOLLOWUP, CANCEL_REFERRAL_OWN}),
        SEES_OWN_CARE,
    ),
    'nurse': RolePolicy(frozenset({VIEW, EDIT_VITALS}), SEES_OWN_VITALS),
    'records_officer': RolePolicy(frozenset({VIEW, VIEW_ALL_LOCATIONS}), SEES_ALL),
    'bhw': RolePolicy(frozenset({VIEW}), SEES_BARANGAY),
    'dho': RolePolicy(frozenset({VIEW}), SEES_DISTRICT),
    'pharmacist': RolePolicy(
        frozenset({VIEW, EDIT_VITALS, EDIT_CONSULTATION}), SEES_OPEN_VISITS, triage_only=True
    ),
}

NO_ACCESS = RolePolicy(frozenset(), SEES_NOTHING)


@dataclass(frozen=True)
class AccessContext:
    employee_id: Optional[int]
    role: str
    capabilities: frozenset = field(default_factory=frozenset)
    visibility: str = SEES_NOTHING
    assigned_barangay_id: Optional[int] = None
    assigned_district_id: Optional[int] = None
    triage_only: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    def has(self, capability: str) -> bool:
        return capability in self.capabilities

    def require(self, capability: str) -> None:
        if capability not in self.capabilities:
            raise AuthorizationError()


def resolve_access(employee) -> AccessContext:
    """Build the access context for ``employee``.

    Unknown or blank roles resolve to an empty context.  Location-scoped
    roles without an assignment keep their capabilities but see nothing.
    """
    if employee is None or not getattr(employee, 'is_authenticated', False) or not employee.is_active:
        return AccessContext(employee_id=None, role='')

    role = employee.role or ''
    policy = ROLE_POLICIES.get(role, NO_ACCESS)
    visibility = policy.visibility
    if visibility == SEES_BARANGAY and not employee.assigned_barangay_id:
        visibility = SEES_NOTHING
    if visibility == SEES_DISTRICT and not employee.assigned_district_id:
        visibility = SEES_NOTHING

    return AccessContext(
        employee_id=employee.pk,
        role=role,
        capabilities=policy.capabilities,
        visibility=visibility,
        assigned_barangay_id=employee.assigned_barangay_id,
        assigned_district_id=employee.assigned_district_id,
        triage_only=policy.triage_only,
    )


def can_manage_referrals(ctx: AccessContext) -> bool:
    """Completing, voiding, reinstating and issuing referrals."""
    return ctx.has(EDIT_CONSULTATION) and not ctx.triage_only


# ---------------------------------------------------------------------
# Relation paths from each model to the fields visibility depends on.
# ---------------------------------------------------------------------
_PATHS = {
    'patient': {
        'patient': '',
        'attending': 'consultations__attending_employee',
        'vitals_taker': 'visits__vitals__taken_by',
        'referrer': 'referrals__referred_by',
        'visit_status': 'visits__status',
    },
    'visit': {
        'patient': 'patient__',
        'attending': 'consultation__attending_employee',
        'vitals_taker': 'vitals__taken_by',
        'referrer': 'patient__referrals__referred_by',
        'visit_status': 'status',
    },
    'consultation': {
        'patient': 'patient__',
        'attending': 'attending_employee',
        'vitals_taker': 'visit__vitals__taken_by',
        'referrer': 'referrals__referred_by',
        'visit_status': 'visit__status',
    },
    'referral': {
        'patient': 'patient__',
        'attending': 'consultation__attending_employee',
        'vitals_taker': 'consultation__visit__vitals__taken_by',
        'referrer': 'referred_by',
        'visit_status': 'consultation__visit__status',
    },
}

# Paths that cross a multi-valued relation and may duplicate rows
_MULTI_VALUED = {
    'patient': True,
    'visit': True,
    'consultation': True,
    'referral': False,
}


def visibility_q(ctx: AccessContext, model_key: str) -> Optional[Q]:
    """Return the visibility predicate, or ``None`` when the caller sees everything."""
    paths = _PATHS[model_key]
    me = ctx.employee_id
    v = ctx.visibility

    if v == SEES_ALL:
        return None
    if v == SEES_OWN_CARE:
        return (Q(**{paths['attending']: me})
                | Q(**{paths['vitals_taker']: me})
                | Q(**{paths['referrer']: me}))
    if v == SEES_OWN_VITALS:
        return Q(**{paths['vitals_taker']: me}) | Q(**{paths['attending']: me})
    if v == SEES_BARANGAY:
        return Q(**{f"{paths['patient']}barangay_id": ctx.assigned_barangay_id})
    if v == SEES_DISTRICT:
        return Q(**{f"{paths['patient']}barangay__district_id": ctx.assigned_district_id})
    if v == SEES_OPEN_VISITS:
        return Q(**{f"{paths['visit_status']}__in": Visit.OPEN_STATUSES})
    # Unknown roles and unassigned location roles fail closed
    return Q(pk__in=[])


def _scope(qs: QuerySet, ctx: AccessContext, model_key: str) -> QuerySet:
    if not ctx.has(VIEW):
        return qs.none()
    cond = visibility_q(ctx, model_key)
    if cond is None:
        return qs
    qs = qs.filter(cond)
    if _MULTI_VALUED[model_key]:
        qs = qs.distinct()
    return qs


def scope_patients(qs: QuerySet, ctx: AccessContext) -> QuerySet:
    return _scope(qs, ctx, 'patient')


def scope_visits(qs: QuerySet, ctx: AccessContext) -> QuerySet:
    return _scope(qs, ctx, 'visit')


def scope_consultations(qs: QuerySet, ctx: AccessContext) -> QuerySet:
    return _scope(qs, ctx, 'consultation')


def scope_referrals(qs: QuerySet, ctx: AccessContext) -> QuerySet:
    return _scope(qs, ctx, 'referral')
