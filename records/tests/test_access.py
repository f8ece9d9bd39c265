import pytest

from records.exceptions import AuthorizationError
from records.models import Consultation, Patient, Referral, Visit
from records.services import access
from records.services.access import (
    can_manage_referrals,
    resolve_access,
    scope_consultations,
    scope_patients,
    scope_referrals,
    scope_visits,
)

pytestmark = pytest.mark.django_db


def test_admin_holds_every_capability(admin):
    ctx = resolve_access(admin)
    assert ctx.capabilities == access.ALL_CAPABILITIES
    assert ctx.visibility == access.SEES_ALL


@pytest.mark.parametrize('role, expected', [
    ('doctor', {'view', 'edit_consultation', 'edit_vitals', 'order_lab', 'prescribe',
                'order_followup', 'cancel_referral_own'}),
    ('nurse', {'view', 'edit_vitals'}),
    ('records_officer', {'view', 'view_all_locations'}),
    ('bhw', {'view'}),
    ('dho', {'view'}),
    ('pharmacist', {'view', 'edit_vitals', 'edit_consultation'}),
    ('', set()),
    ('janitor', set()),
])
def test_capability_table(make_employee, role, expected):
    ctx = resolve_access(make_employee(role))
    assert set(ctx.capabilities) == expected


def test_only_pharmacist_is_triage_only(make_employee):
    assert resolve_access(make_employee('pharmacist')).triage_only
    assert not resolve_access(make_employee('doctor')).triage_only


def test_inactive_employee_resolves_to_nothing(make_employee):
    emp = make_employee('admin')
    emp.is_active = False
    ctx = resolve_access(emp)
    assert ctx.capabilities == frozenset()
    assert ctx.employee_id is None


def test_require_raises_for_missing_capability(nurse):
    ctx = resolve_access(nurse)
    ctx.require('edit_vitals')
    with pytest.raises(AuthorizationError):
        ctx.require('edit_consultation')


def test_context_is_immutable(doctor):
    ctx = resolve_access(doctor)
    with pytest.raises(Exception):
        ctx.role = 'admin'


def test_can_manage_referrals(admin, doctor, nurse, pharmacist, records_officer):
    assert can_manage_referrals(resolve_access(admin))
    assert can_manage_referrals(resolve_access(doctor))
    assert not can_manage_referrals(resolve_access(nurse))
    assert not can_manage_referrals(resolve_access(pharmacist))
    assert not can_manage_referrals(resolve_access(records_officer))


def test_bhw_without_assignment_sees_nothing(make_employee, make_patient, barangay, make_referral, doctor):
    bhw = make_employee('bhw')
    p = make_patient(barangay=barangay)
    make_referral(p, doctor)
    ctx = resolve_access(bhw)

    assert scope_patients(Patient.objects.all(), ctx).count() == 0
    # filters never widen the scope
    assert scope_patients(Patient.objects.filter(barangay=barangay), ctx).count() == 0
    assert scope_referrals(Referral.objects.all(), ctx).count() == 0


def test_bhw_sees_only_assigned_barangay(make_employee, make_patient, barangay, other_barangay):
    bhw = make_employee('bhw', assigned_barangay=barangay)
    mine = make_patient(barangay=barangay)
    make_patient(barangay=other_barangay)
    make_patient(barangay=None)

    visible = list(scope_patients(Patient.objects.all(), resolve_access(bhw)))
    assert visible == [mine]


def test_dho_sees_patients_in_district(make_employee, make_patient, barangay, other_barangay, district):
    dho = make_employee('dho', assigned_district=district)
    mine = make_patient(barangay=barangay)
    make_patient(barangay=other_barangay)

    assert list(scope_patients(Patient.objects.all(), resolve_access(dho))) == [mine]


def test_dho_without_district_sees_nothing(make_employee, make_patient, barangay):
    dho = make_employee('dho')
    make_patient(barangay=barangay)
    assert scope_patients(Patient.objects.all(), resolve_access(dho)).count() == 0


def test_doctor_scope_covers_attending_vitals_and_referrals(
    doctor, other_doctor, nurse, make_patient, make_visit, make_consultation, make_vitals, make_referral
):
    p_attending, p_vitals, p_referred, p_other = (make_patient() for _ in range(4))
    v1 = make_visit(p_attending)
    make_consultation(v1, attending=doctor)
    v2 = make_visit(p_vitals)
    make_vitals(v2, taken_by=doctor, heart_rate=80)
    make_referral(p_referred, doctor)
    v4 = make_visit(p_other)
    make_consultation(v4, attending=other_doctor)

    ctx = resolve_access(doctor)
    assert set(scope_patients(Patient.objects.all(), ctx)) == {p_attending, p_vitals, p_referred}
    assert set(scope_visits(Visit.objects.all(), ctx)) == {v1, v2}
    assert [c.visit for c in scope_consultations(Consultation.objects.all(), ctx)] == [v1]
    assert scope_referrals(Referral.objects.all(), ctx).count() == 1


def test_nurse_scope_is_vitals_or_attending(nurse, doctor, make_patient, make_visit, make_vitals, make_consultation):
    p1, p2 = make_patient(), make_patient()
    v1 = make_visit(p1)
    make_vitals(v1, taken_by=nurse, temperature=37)
    v2 = make_visit(p2)
    make_consultation(v2, attending=doctor)

    ctx = resolve_access(nurse)
    assert list(scope_visits(Visit.objects.all(), ctx)) == [v1]


def test_pharmacist_sees_only_open_visits(pharmacist, make_patient, make_visit):
    p = make_patient()
    open_visit = make_visit(p, status=Visit.STATUS_IN_PROGRESS)
    make_visit(make_patient(), status=Visit.STATUS_COMPLETED)

    assert list(scope_visits(Visit.objects.all(), resolve_access(pharmacist))) == [open_visit]


def test_records_officer_sees_everything(records_officer, make_patient, make_referral, doctor):
    for _ in range(3):
        make_referral(make_patient(), doctor)
    ctx = resolve_access(records_officer)
    assert scope_referrals(Referral.objects.all(), ctx).count() == 3


def test_unknown_role_sees_nothing(make_employee, make_patient):
    make_patient()
    ctx = resolve_access(make_employee('janitor'))
    assert scope_patients(Patient.objects.all(), ctx).count() == 0
