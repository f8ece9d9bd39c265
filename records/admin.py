"""
Django admin registrations for the records models.

Employees are provisioned here (role and location assignment).  Referral
logs are shown read-only: they are append-only and only the referral
services write them.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import (
    District,
    Barangay,
    Facility,
    Employee,
    Patient,
    Visit,
    Consultation,
    Vitals,
    Referral,
    ReferralLog,
    AuditEvent,
)


@admin.register(District)
class DistrictAdmin(admin.ModelAdmin):
    list_display = ('id', 'name')
    search_fields = ('name',)


@admin.register(Barangay)
class BarangayAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'district')
    list_filter = ('district',)
    search_fields = ('name',)


@admin.register(Facility)
class FacilityAdmin(admin.ModelAdmin):
    list_display = ('name', 'facility_type', 'barangay', 'district', 'is_active')
    list_filter = ('facility_type', 'is_active')
    search_fields = ('name',)


@admin.register(Employee)
class EmployeeAdmin(UserAdmin):
    list_display = ('username', 'first_name', 'last_name', 'role', 'assigned_barangay', 'assigned_district', 'is_active')
    list_filter = ('role', 'is_active', 'assigned_district')
    search_fields = ('username', 'first_name', 'last_name')
    fieldsets = UserAdmin.fieldsets + (
        ('Assignment', {'fields': ('role', 'assigned_barangay', 'assigned_district')}),
    )


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_number', 'first_name', 'last_name', 'barangay')
    list_filter = ('barangay',)
    search_fields = ('patient_number', 'first_name', 'last_name')


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'status', 'visit_date')
    list_filter = ('status',)
    search_fields = ('patient__patient_number', 'patient__last_name')


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ('id', 'visit', 'patient', 'attending_employee', 'status', 'consultation_date')
    list_filter = ('status',)
    search_fields = ('patient__patient_number', 'patient__last_name')


@admin.register(Vitals)
class VitalsAdmin(admin.ModelAdmin):
    list_display = ('visit', 'systolic_bp', 'diastolic_bp', 'heart_rate', 'temperature', 'bmi', 'taken_by')


class ReferralLogInline(admin.TabularInline):
    model = ReferralLog
    extra = 0
    can_delete = False
    readonly_fields = ('timestamp', 'action', 'previous_status', 'new_status', 'actor_type', 'employee', 'reason')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ('referral_num', 'patient', 'status', 'destination_type', 'referred_by', 'referral_date')
    list_filter = ('status', 'destination_type')
    search_fields = ('referral_num', 'patient__patient_number', 'patient__last_name')
    # status only changes through the referral services
    readonly_fields = ('status',)
    inlines = [ReferralLogInline]


@admin.register(ReferralLog)
class ReferralLogAdmin(admin.ModelAdmin):
    list_display = ('referral', 'action', 'previous_status', 'new_status', 'actor_type', 'employee', 'timestamp')
    list_filter = ('action', 'actor_type')
    search_fields = ('referral__referral_num',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
