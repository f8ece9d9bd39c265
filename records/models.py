"""
Database models for the health office records backend.

These models capture the core concepts of the clinic: employees and the
locations they are assigned to, patients and their visits, vitals and
consultation notes taken during a visit, and referrals to other
facilities together with their append-only transition log.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class District(models.Model):
    name = models.CharField(max_length=100, unique=True)

    def __str__(self) -> str:
        return self.name


class Barangay(models.Model):
    name = models.CharField(max_length=100)
    district = models.ForeignKey(
        District, null=True, blank=True, on_delete=models.SET_NULL, related_name='barangays'
    )

    def __str__(self) -> str:
        return self.name


class Facility(models.Model):
    """An internal destination a referral can be sent to."""
    TYPE_CHOICES = [
        ('barangay_center', 'Barangay Health Center'),
        ('district_office', 'District Health Office'),
        ('city_office', 'City Health Office'),
    ]
    name = models.CharField(max_length=255)
    facility_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    barangay = models.ForeignKey(
        Barangay, null=True, blank=True, on_delete=models.SET_NULL, related_name='facilities'
    )
    district = models.ForeignKey(
        District, null=True, blank=True, on_delete=models.SET_NULL, related_name='facilities'
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = 'facilities'

    def __str__(self) -> str:
        return f"{self.name} ({self.facility_type})"


class Employee(AbstractUser):
    """Staff account with a clinical role and an optional location assignment.

    The role decides which capabilities the employee holds (see
    :mod:`records.services.access`).  Barangay health workers are scoped
    by ``assigned_barangay`` and district health officers by
    ``assigned_district``; an empty role grants nothing.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('doctor', 'Doctor'),
        ('nurse', 'Nurse'),
        ('records_officer', 'Records Officer'),
        ('bhw', 'Barangay Health Worker'),
        ('dho', 'District Health Officer'),
        ('pharmacist', 'Pharmacist'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, blank=True, default='', db_index=True)
    assigned_barangay = models.ForeignKey(
        Barangay, null=True, blank=True, on_delete=models.SET_NULL, related_name='health_workers'
    )
    assigned_district = models.ForeignKey(
        District, null=True, blank=True, on_delete=models.SET_NULL, related_name='health_officers'
    )

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role or 'unassigned'})"


class Patient(models.Model):
    patient_number = models.CharField(max_length=30, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    barangay = models.ForeignKey(
        Barangay, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['last_name', 'first_name'], name='records_pat_last_na_0c5e1d_idx')]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_number})"


class Visit(models.Model):
    STATUS_CHECKED_IN = 'checked_in'
    STATUS_ACTIVE = 'active'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_CHECKED_IN, 'Checked in'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )
    # Visits a triage-only employee may still work on
    OPEN_STATUSES = (STATUS_CHECKED_IN, STATUS_ACTIVE, STATUS_IN_PROGRESS)

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='visits')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_CHECKED_IN, db_index=True)
    visit_date = models.DateTimeField()

    class Meta:
        indexes = [models.Index(fields=['patient', 'visit_date'], name='records_vis_patient_5b2f8a_idx')]

    def __str__(self) -> str:
        return f"visit {self.id} p={self.patient_id} ({self.status})"


class Consultation(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_AWAITING_FOLLOWUP = 'awaiting_followup'
    STATUS_REFERRED = 'referred'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_AWAITING_FOLLOWUP, 'Awaiting follow-up'),
        (STATUS_REFERRED, 'Referred'),
    )

    visit = models.OneToOneField(Visit, on_delete=models.CASCADE, related_name='consultation')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='consultations')
    attending_employee = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='attended_consultations'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    chief_complaint = models.TextField()
    diagnosis = models.TextField()
    treatment_plan = models.TextField(blank=True, default='')
    history_present_illness = models.TextField(blank=True, default='')
    physical_examination = models.TextField(blank=True, default='')
    remarks = models.TextField(blank=True, default='')

    consultation_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    updated_by = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    class Meta:
        indexes = [
            models.Index(fields=['status', 'consultation_date'], name='records_con_status_8d1a3e_idx'),
            models.Index(fields=['attending_employee', 'consultation_date'], name='records_con_attendi_4f7c2b_idx'),
        ]

    def __str__(self) -> str:
        return f"consult {self.id} visit={self.visit_id} ({self.status})"


class Vitals(models.Model):
    """Latest vital signs for a visit; a new save overwrites the previous one."""
    visit = models.OneToOneField(Visit, on_delete=models.CASCADE, related_name='vitals')
    systolic_bp = models.PositiveSmallIntegerField(null=True, blank=True)
    diastolic_bp = models.PositiveSmallIntegerField(null=True, blank=True)
    heart_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    respiratory_rate = models.PositiveSmallIntegerField(null=True, blank=True)
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    height = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True, help_text="cm")
    weight = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True, help_text="kg")
    bmi = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    remarks = models.TextField(blank=True, default='')
    taken_by = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='vitals_taken'
    )
    updated_by = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'vitals'

    def __str__(self) -> str:
        return f"vitals visit={self.visit_id}"


class Referral(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_ISSUED = 'issued'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_VOIDED = 'voided'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_ISSUED, 'Issued'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_VOIDED, 'Voided'),
    )

    DEST_BARANGAY_CENTER = 'barangay_center'
    DEST_DISTRICT_OFFICE = 'district_office'
    DEST_CITY_OFFICE = 'city_office'
    DEST_EXTERNAL = 'external'
    DESTINATION_CHOICES = (
        (DEST_BARANGAY_CENTER, 'Barangay Health Center'),
        (DEST_DISTRICT_OFFICE, 'District Health Office'),
        (DEST_CITY_OFFICE, 'City Health Office'),
        (DEST_EXTERNAL, 'External facility'),
    )

    referral_num = models.CharField(max_length=20, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='referrals')
    consultation = models.ForeignKey(
        Consultation, null=True, blank=True, on_delete=models.SET_NULL, related_name='referrals'
    )
    referred_by = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='issued_referrals'
    )
    destination_type = models.CharField(max_length=20, choices=DESTINATION_CHOICES)
    referred_to_facility = models.ForeignKey(
        Facility, null=True, blank=True, on_delete=models.SET_NULL, related_name='incoming_referrals'
    )
    external_facility_name = models.CharField(max_length=255, blank=True, default='')
    referral_reason = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    referral_date = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'referral_date'], name='records_ref_status_2e9b71_idx'),
            models.Index(fields=['referred_by', 'referral_date'], name='records_ref_referre_7a4d06_idx'),
        ]

    @property
    def destination_name(self) -> str:
        if self.destination_type == self.DEST_EXTERNAL:
            return self.external_facility_name
        return self.referred_to_facility.name if self.referred_to_facility_id else ''

    def __str__(self) -> str:
        return f"{self.referral_num} ({self.status})"


class ReferralLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValueError("Referral log entries are append-only")

    def delete(self):
        raise ValueError("Referral log entries are append-only")


class ReferralLog(models.Model):
    """Append-only record of every referral status transition.

    Rows are written exclusively through
    :func:`records.services.audit.record_transition`.  Updating an
    existing row or deleting any row raises, so the history of a
    referral can only grow.
    """
    ACTOR_EMPLOYEE = 'employee'
    ACTOR_SYSTEM = 'system'
    ACTOR_CHOICES = ((ACTOR_EMPLOYEE, 'Employee'), (ACTOR_SYSTEM, 'System'))

    referral = models.ForeignKey(Referral, on_delete=models.PROTECT, related_name='logs')
    employee = models.ForeignKey(
        Employee, null=True, blank=True, on_delete=models.SET_NULL, related_name='referral_actions'
    )
    actor_type = models.CharField(max_length=10, choices=ACTOR_CHOICES, default=ACTOR_EMPLOYEE)
    action = models.CharField(max_length=20)
    reason = models.TextField(blank=True, default='')
    previous_status = models.CharField(max_length=20)
    new_status = models.CharField(max_length=20)
    timestamp = models.DateTimeField()

    objects = ReferralLogQuerySet.as_manager()

    class Meta:
        ordering = ['timestamp', 'id']
        indexes = [models.Index(fields=['referral', 'timestamp'], name='records_ref_referra_c3f518_idx')]

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Referral log entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Referral log entries are append-only")

    def __str__(self) -> str:
        return f"{self.referral_id}: {self.previous_status} → {self.new_status} ({self.action})"


class AuditEvent(models.Model):
    """General audit trail for events that are not referral transitions."""
    user = models.ForeignKey(Employee, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='records_aud_action_9b0e44_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='records_aud_object__61d2fa_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.object_type}:{self.object_id}"
