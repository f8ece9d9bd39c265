"""
Integration tests for the health office records API.

These tests exercise the HTTP surface end to end: the response envelope,
status code mapping, referral transitions with their logs, the expiry
sweep on listing, and role scoping.  They use Django REST Framework's
APIClient within the APITestCase base class.

To run the tests:

```
pytest -q records/tests
```
"""
from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken
from rest_framework_simplejwt.tokens import RefreshToken

from records.models import Barangay, District, Employee, Patient, Referral, ReferralLog, Visit, Vitals
from records.services.expiry import sweep_expired_referrals

PASSWORD = 'P@ssw0rd1'


class RecordsAPITests(APITestCase):
    def setUp(self) -> None:
        """Set up a district, employees for each role and one referral."""
        self.district = District.objects.create(name='North District')
        self.barangay = Barangay.objects.create(name='San Isidro', district=self.district)

        def employee(username, role, **extra):
            return Employee.objects.create_user(
                username=username, password=PASSWORD, role=role,
                first_name=username.capitalize(), last_name='Reyes', **extra,
            )

        self.admin = employee('admin1', 'admin')
        self.d1 = employee('doctor1', 'doctor')
        self.d2 = employee('doctor2', 'doctor')
        self.nurse = employee('nurse1', 'nurse')
        self.bhw_unassigned = employee('bhw1', 'bhw')
        self.bhw = employee('bhw2', 'bhw', assigned_barangay=self.barangay)
        self.unknown = employee('temp1', '')

        self.p1 = Patient.objects.create(patient_number='P-00001', first_name='Ana', last_name='Lopez',
                                         barangay=self.barangay)
        self.visit = Visit.objects.create(patient=self.p1, status=Visit.STATUS_CHECKED_IN,
                                          visit_date=timezone.now())
        self.r1 = Referral.objects.create(
            referral_num='REF-20240101-0001', patient=self.p1, referred_by=self.d1,
            destination_type=Referral.DEST_EXTERNAL, external_facility_name='Provincial Hospital',
            referral_reason='Suspected appendicitis', referral_date=timezone.now() - timedelta(hours=2),
        )

    def authenticate(self, user) -> None:
        """Helper to authenticate the test client as a given employee."""
        self.client.force_authenticate(user=user)

    def _age(self, referral, hours) -> None:
        Referral.objects.filter(pk=referral.pk).update(referral_date=timezone.now() - timedelta(hours=hours))

    # -----------------------------------------------------------------
    # auth & envelope
    # -----------------------------------------------------------------
    def test_unauthenticated_requests_get_401_envelope(self) -> None:
        resp = self.client.get(reverse('referral_list'))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(resp.data['success'])
        self.assertIn('message', resp.data)

    def test_token_from_login_authenticates(self) -> None:
        resp = self.client.post(reverse('login_view'), {'username': 'doctor1', 'password': PASSWORD}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        token = resp.data['data']['token']
        self.assertIn('cancel_referral_own', resp.data['data']['employee']['capabilities'])
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
        resp = self.client.get(reverse('referral_list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['pagination']['total'], 1)

    def test_unknown_role_is_forbidden(self) -> None:
        self.authenticate(self.unknown)
        resp = self.client.get(reverse('referral_list'))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(resp.data['success'])

    def test_healthz(self) -> None:
        resp = self.client.get(reverse('healthz'))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['db'])

    # -----------------------------------------------------------------
    # scenarios
    # -----------------------------------------------------------------
    def test_admin_listing_expires_49_hour_old_referral(self) -> None:
        self._age(self.r1, 49)
        self.authenticate(self.admin)
        resp = self.client.get(reverse('referral_list'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        items = resp.data['data']['items']
        self.assertEqual([(i['id'], i['status']) for i in items], [(self.r1.id, 'cancelled')])
        self.assertEqual(resp.data['data']['counts']['cancelled'], 1)

        log = ReferralLog.objects.get(referral=self.r1)
        self.assertEqual(log.action, 'cancelled')
        self.assertEqual(log.new_status, 'cancelled')
        self.assertIsNone(log.employee_id)
        self.assertEqual(log.actor_type, 'system')

        detail = self.client.get(reverse('referral_detail', args=[self.r1.id]))
        self.assertEqual(detail.data['data']['logs'][0]['employee'], 'System')
        self.assertEqual(ReferralLog.objects.filter(referral=self.r1).count(), 1)

    def test_other_doctor_cannot_cancel(self) -> None:
        self.authenticate(self.d2)
        resp = self.client.post(reverse('referral_cancel'), {
            'referral_id': self.r1.id, 'reason': 'No longer needed by patient', 'password': PASSWORD,
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(resp.data['success'])
        self.assertEqual(resp.data['message'], 'You do not have permission to perform this action.')
        self.r1.refresh_from_db()
        self.assertEqual(self.r1.status, 'active')
        self.assertFalse(ReferralLog.objects.exists())

    # -----------------------------------------------------------------
    # transitions
    # -----------------------------------------------------------------
    def test_cancel_success_payload(self) -> None:
        self.authenticate(self.d1)
        resp = self.client.post(reverse('referral_cancel'), {
            'referral_id': str(self.r1.id), 'reason': 'Patient went to a private clinic', 'password': PASSWORD,
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data['success'])
        data = resp.data['data']
        self.assertEqual(data['referral_id'], self.r1.id)
        self.assertEqual(data['new_status'], 'cancelled')
        self.assertEqual(data['cancelled_by'], 'Doctor1 Reyes')
        self.assertEqual(data['reason'], 'Patient went to a private clinic')
        self.assertEqual(data['patient_name'], 'Ana Lopez')
        self.assertEqual(data['referral_number'], 'REF-20240101-0001')
        self.assertRegex(data['cancelled_at'], r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$')

    def test_cancel_validation_errors(self) -> None:
        self.authenticate(self.d1)
        url = reverse('referral_cancel')
        resp = self.client.post(url, {'referral_id': 'abc', 'reason': 'x' * 20, 'password': PASSWORD}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['message'], 'Invalid referral ID provided.')
        resp = self.client.post(url, {'referral_id': self.r1.id, 'reason': 'short', 'password': PASSWORD}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['message'], 'Cancellation reason must be at least 10 characters long.')
        resp = self.client.post(url, {'referral_id': self.r1.id, 'reason': 'x' * 20, 'password': 'wrong'}, format='json')
        self.assertEqual(resp.status_code, 403)
        self.r1.refresh_from_db()
        self.assertEqual(self.r1.status, 'active')

    def test_reinstate_active_returns_409_with_current_status(self) -> None:
        self.authenticate(self.d1)
        resp = self.client.post(reverse('referral_reinstate'), {'referral_id': self.r1.id}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(resp.data['success'])
        self.assertEqual(resp.data['current_status'], 'active')

    def test_cancel_then_reinstate(self) -> None:
        self.authenticate(self.admin)
        self.client.post(reverse('referral_cancel'), {
            'referral_id': self.r1.id, 'reason': 'Entered by mistake today', 'password': PASSWORD,
        }, format='json')
        resp = self.client.post(reverse('referral_reinstate'), {'referral_id': self.r1.id}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['data']['new_status'], 'active')
        self.assertEqual(resp.data['data']['previous_status'], 'cancelled')
        self.assertEqual(resp.data['data']['reinstated_by'], 'Admin1 Reyes')
        self.assertEqual(list(self.r1.logs.values_list('action', flat=True)), ['cancelled', 'reinstated'])

    def test_void_and_complete(self) -> None:
        self.authenticate(self.d1)
        resp = self.client.post(reverse('referral_void'), {'referral_id': self.r1.id, 'reason': ''}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['message'], 'Void reason is required.')
        resp = self.client.post(reverse('referral_complete'), {'referral_id': self.r1.id}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['data']['new_status'], 'completed')
        resp = self.client.post(reverse('referral_void'), {'referral_id': self.r1.id, 'reason': 'Duplicate'}, format='json')
        self.assertEqual(resp.status_code, 409)

    def test_issue_referral(self) -> None:
        self.authenticate(self.d1)
        resp = self.client.post(reverse('referral_issue'), {
            'patient_id': self.p1.id, 'destination_type': 'external',
            'external_facility_name': 'Regional Medical Center', 'reason': 'Orthopedic consult',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(resp.data['data']['referral_number'].startswith('REF-'))
        self.assertEqual(Referral.objects.get(pk=resp.data['data']['referral_id']).referred_by, self.d1)

    def test_nurse_cannot_complete(self) -> None:
        self.authenticate(self.nurse)
        resp = self.client.post(reverse('referral_complete'), {'referral_id': self.r1.id}, format='json')
        self.assertEqual(resp.status_code, 403)

    # -----------------------------------------------------------------
    # scoping
    # -----------------------------------------------------------------
    def test_unassigned_bhw_sees_no_rows(self) -> None:
        self.authenticate(self.bhw_unassigned)
        resp = self.client.get(reverse('referral_list'), {'barangay': self.barangay.id})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['data']['items'], [])
        self.assertEqual(resp.data['data']['counts']['total'], 0)

    def test_assigned_bhw_sees_barangay_rows(self) -> None:
        self.authenticate(self.bhw)
        resp = self.client.get(reverse('referral_list'))
        self.assertEqual(resp.data['data']['pagination']['total'], 1)

    def test_detail_outside_scope_is_404(self) -> None:
        self.authenticate(self.d2)
        resp = self.client.get(reverse('referral_detail', args=[self.r1.id]))
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(resp.data['success'])

    def test_unsupported_page_size_uses_default(self) -> None:
        self.authenticate(self.admin)
        resp = self.client.get(reverse('referral_list'), {'per_page': 7})
        self.assertEqual(resp.data['data']['pagination']['per_page'], 25)

    # -----------------------------------------------------------------
    # vitals & consultation
    # -----------------------------------------------------------------
    def test_vitals_insert_then_update(self) -> None:
        self.authenticate(self.nurse)
        url = reverse('visit_vitals', args=[self.visit.id])
        resp = self.client.post(url, {'systolic_bp': 118, 'diastolic_bp': 76}, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data, {'success': True, 'message': 'Vital signs recorded successfully.'})
        resp = self.client.post(url, {'systolic_bp': 130}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Vitals.objects.filter(visit=self.visit).count(), 1)
        self.assertEqual(Vitals.objects.get(visit=self.visit).systolic_bp, 130)

    def test_consultation_requires_fields(self) -> None:
        self.authenticate(self.d1)
        resp = self.client.post(reverse('visit_consultation', args=[self.visit.id]),
                                {'chief_complaint': 'Abdominal pain'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['message'], 'Chief Complaint and Diagnosis are required.')

    def test_consultation_save_and_record(self) -> None:
        self.authenticate(self.d1)
        resp = self.client.post(reverse('visit_consultation', args=[self.visit.id]), {
            'chief_complaint': 'Abdominal pain', 'diagnosis': 'Gastritis', 'status': 'completed',
        }, format='json')
        self.assertEqual(resp.status_code, 201)
        resp = self.client.get(reverse('visit_record', args=[self.visit.id]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['data']['consultation']['status'], 'completed')
        resp = self.client.get(reverse('consultation_list'))
        self.assertEqual(resp.data['data']['pagination']['total'], 1)

    def test_serializer_errors_use_envelope(self) -> None:
        self.authenticate(self.nurse)
        resp = self.client.post(reverse('visit_vitals', args=[self.visit.id]), {'heart_rate': 'fast'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.data['success'])
        self.assertTrue(resp.data['message'].startswith('heart_rate'))

    def test_listing_sweeps_once_per_request(self) -> None:
        self.authenticate(self.admin)
        with mock.patch('records.services.referrals.sweep_expired_referrals',
                        wraps=sweep_expired_referrals) as sweep:
            resp = self.client.get(reverse('referral_list'))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(sweep.call_count, 1)

    def test_failed_log_write_returns_503_and_changes_nothing(self) -> None:
        self.authenticate(self.d1)
        with mock.patch('records.services.referrals.record_transition',
                        side_effect=DatabaseError('log table unavailable')):
            resp = self.client.post(reverse('referral_cancel'), {
                'referral_id': self.r1.id, 'reason': 'Patient went to a private clinic', 'password': PASSWORD,
            }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(resp.data, {'success': False, 'message': 'A temporary error occurred. Please try again.'})
        self.r1.refresh_from_db()
        self.assertEqual(self.r1.status, 'active')
        self.assertFalse(ReferralLog.objects.exists())

    # -----------------------------------------------------------------
    # logout
    # -----------------------------------------------------------------
    def test_logout_blacklists_own_refresh_token(self) -> None:
        refresh = RefreshToken.for_user(self.d1)
        self.authenticate(self.d1)
        resp = self.client.post(reverse('jwt_logout_view'), {'refresh': str(refresh)}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(BlacklistedToken.objects.filter(token__jti=refresh['jti']).exists())

    def test_logout_refuses_another_employees_refresh_token(self) -> None:
        refresh = RefreshToken.for_user(self.d2)
        self.authenticate(self.d1)
        resp = self.client.post(reverse('jwt_logout_view'), {'refresh': str(refresh)}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(resp.data['success'])
        self.assertFalse(BlacklistedToken.objects.exists())
