from datetime import timedelta
from itertools import count

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from records.models import (
    Barangay, Consultation, District, Employee, Facility, Patient, Referral, Visit, Vitals,
)
from records.services.access import resolve_access

PASSWORD = 'P@ssw0rd1'

_seq = count(1)


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def district(db):
    return District.objects.create(name='North District')


@pytest.fixture
def other_district(db):
    return District.objects.create(name='South District')


@pytest.fixture
def barangay(district):
    return Barangay.objects.create(name='San Isidro', district=district)


@pytest.fixture
def other_barangay(other_district):
    return Barangay.objects.create(name='Poblacion', district=other_district)


@pytest.fixture
def facility(barangay, district):
    return Facility.objects.create(name='San Isidro BHC', facility_type='barangay_center',
                                   barangay=barangay, district=district)


@pytest.fixture
def make_employee(db):
    def _make(role, username=None, **extra):
        username = username or f"{role or 'none'}{next(_seq)}"
        return Employee.objects.create_user(
            username=username, password=PASSWORD, role=role,
            first_name=username.capitalize(), last_name='Tester', **extra,
        )
    return _make


@pytest.fixture
def admin(make_employee):
    return make_employee('admin', 'admin1')


@pytest.fixture
def doctor(make_employee):
    return make_employee('doctor', 'doctor1')


@pytest.fixture
def other_doctor(make_employee):
    return make_employee('doctor', 'doctor2')


@pytest.fixture
def nurse(make_employee):
    return make_employee('nurse', 'nurse1')


@pytest.fixture
def pharmacist(make_employee):
    return make_employee('pharmacist', 'pharm1')


@pytest.fixture
def records_officer(make_employee):
    return make_employee('records_officer', 'records1')


@pytest.fixture
def make_patient(db):
    def _make(barangay=None, **extra):
        n = next(_seq)
        defaults = {'patient_number': f"P-{n:05d}", 'first_name': f"Juan{n}", 'last_name': 'Dela Cruz'}
        defaults.update(extra)
        return Patient.objects.create(barangay=barangay, **defaults)
    return _make


@pytest.fixture
def patient(make_patient, barangay):
    return make_patient(barangay=barangay, first_name='Maria', last_name='Santos')


@pytest.fixture
def make_visit(db):
    def _make(patient, status=Visit.STATUS_CHECKED_IN):
        return Visit.objects.create(patient=patient, status=status, visit_date=timezone.now())
    return _make


@pytest.fixture
def make_consultation(db):
    def _make(visit, attending=None, **extra):
        defaults = {'chief_complaint': 'Fever', 'diagnosis': 'Viral infection'}
        defaults.update(extra)
        return Consultation.objects.create(
            visit=visit, patient=visit.patient, attending_employee=attending,
            created_by=attending, consultation_date=timezone.now(), **defaults,
        )
    return _make


@pytest.fixture
def make_vitals(db):
    def _make(visit, taken_by, **extra):
        return Vitals.objects.create(visit=visit, taken_by=taken_by, **extra)
    return _make


@pytest.fixture
def make_referral(db):
    def _make(patient, referred_by, status=Referral.STATUS_ACTIVE, age_hours=1, consultation=None, **extra):
        n = next(_seq)
        defaults = {
            'referral_num': f"REF-20240101-{n:04d}",
            'destination_type': Referral.DEST_EXTERNAL,
            'external_facility_name': 'Provincial Hospital',
            'referral_reason': 'Needs specialist evaluation',
        }
        defaults.update(extra)
        return Referral.objects.create(
            patient=patient, referred_by=referred_by, status=status, consultation=consultation,
            referral_date=timezone.now() - timedelta(hours=age_hours), **defaults,
        )
    return _make


@pytest.fixture
def ctx_for():
    return resolve_access


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def _client(employee):
        api_client.force_authenticate(user=employee)
        return api_client
    return _client
