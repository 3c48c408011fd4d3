"""
Django admin registrations.

Minimal configuration so that superusers can inspect records through
``/admin/`` during development.  Appointment tokens and receipt numbers
are shown read-only; they are assigned by the services layer.
"""
from django.contrib import admin

from .models import (
    Appointment,
    AppointmentTransition,
    AuditEvent,
    DoctorAvailability,
    DoctorLeave,
    Medication,
    Notification,
    Patient,
    Payment,
    Prescription,
    User,
    VitalSigns,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'first_name', 'last_name')
    readonly_fields = ('role', 'last_login', 'date_joined')
    exclude = ('password',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_code', 'first_name', 'last_name', 'phone', 'is_active', 'created_at')
    list_filter = ('is_active', 'gender', 'blood_type')
    search_fields = ('patient_code', 'first_name', 'last_name', 'phone')
    readonly_fields = ('patient_code',)


@admin.register(DoctorAvailability)
class DoctorAvailabilityAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'day_of_week', 'start_time', 'end_time', 'is_available')
    list_filter = ('day_of_week', 'is_available')


@admin.register(DoctorLeave)
class DoctorLeaveAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'date', 'reason')


class AppointmentTransitionInline(admin.TabularInline):
    model = AppointmentTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'reason', 'timestamp')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('appointment_date', 'token_number', 'doctor', 'patient', 'type', 'status')
    list_filter = ('status', 'type', 'appointment_date')
    search_fields = ('patient__first_name', 'patient__last_name', 'patient__patient_code')
    readonly_fields = ('token_number', 'appointment_date', 'status')
    inlines = [AppointmentTransitionInline]


class MedicationInline(admin.TabularInline):
    model = Medication
    extra = 0


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'is_active', 'created_at')
    list_filter = ('is_active',)
    inlines = [MedicationInline]


@admin.register(VitalSigns)
class VitalSignsAdmin(admin.ModelAdmin):
    list_display = ('patient', 'recorded_at', 'temperature', 'systolic', 'diastolic', 'pain_scale')
    search_fields = ('patient__patient_code',)
    readonly_fields = ('bmi',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('receipt_number', 'patient', 'amount', 'method', 'status', 'created_at')
    list_filter = ('status', 'method')
    search_fields = ('receipt_number', 'patient__patient_code')
    readonly_fields = ('receipt_number', 'status', 'refunded_at')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('recipient', 'category', 'title', 'is_read', 'created_at')
    list_filter = ('category', 'is_read')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
