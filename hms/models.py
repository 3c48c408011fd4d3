"""
Database models for the clinic backend.

These models capture staff users, patients, doctor availability,
appointments (with their token numbers and status history),
prescriptions, vital signs, payments, notifications and the audit
trail.  Referenced rows are protected from deletion: patients and staff
are deactivated through their ``is_active`` flag instead.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Staff account.  Logs in with email; the role is fixed at creation."""
    ROLE_DOCTOR = 'doctor'
    ROLE_RECEPTIONIST = 'receptionist'
    ROLE_ADMIN = 'admin'
    ROLE_SUB_ADMIN = 'sub_admin'
    ROLE_MASTER_ADMIN = 'master_admin'
    ROLE_CHOICES = [
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_RECEPTIONIST, 'Receptionist'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_SUB_ADMIN, 'Sub administrator'),
        (ROLE_MASTER_ADMIN, 'Master administrator'),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_RECEPTIONIST, db_index=True)
    phone = models.CharField(max_length=20, blank=True)
    specialization = models.CharField(max_length=120, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Patient(models.Model):
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    BLOOD_TYPE_CHOICES = [(b, b) for b in ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-')]

    # Human readable identifier, e.g. P-20240501-3F9A1C.  Never rewritten.
    patient_code = models.CharField(max_length=32, unique=True, editable=False)
    first_name = models.CharField(max_length=64)
    last_name = models.CharField(max_length=64)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    phone = models.CharField(max_length=20, unique=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    emergency_contact_name = models.CharField(max_length=128, blank=True)
    emergency_contact_phone = models.CharField(max_length=20, blank=True)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True)
    medical_history = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    registered_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='registered_patients'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='hms_patient_last_na_6c1c5e_idx'),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_code})"


class DoctorAvailability(models.Model):
    """A weekly working window for a doctor (0 = Sunday ... 6 = Saturday)."""
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='availabilities')
    day_of_week = models.PositiveSmallIntegerField(validators=[MinValueValidator(0), MaxValueValidator(6)])
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['day_of_week', 'start_time']
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'day_of_week', 'start_time'], name='uniq_doctor_day_window'),
        ]

    def __str__(self) -> str:
        return f"Availability(d={self.doctor_id}, {self.day_of_week}, {self.start_time:%H:%M}-{self.end_time:%H:%M})"


class DoctorLeave(models.Model):
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='leaves')
    date = models.DateField()
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'date'], name='uniq_doctor_leave_day'),
        ]

    def __str__(self) -> str:
        return f"Leave(d={self.doctor_id}, {self.date:%F})"


class Appointment(models.Model):
    TYPE_CONSULTATION = 'consultation'
    TYPE_CHECKUP = 'checkup'
    TYPE_FOLLOW_UP = 'follow-up'
    TYPE_CHOICES = [
        (TYPE_CONSULTATION, 'Consultation'),
        (TYPE_CHECKUP, 'Checkup'),
        (TYPE_FOLLOW_UP, 'Follow-up'),
    ]

    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='appointments')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='doctor_appointments')
    datetime = models.DateTimeField()
    # Calendar day of ``datetime`` in the clinic time zone; token numbers are per doctor per day.
    appointment_date = models.DateField(db_index=True)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_CONSULTATION)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    token_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    notes = models.TextField(blank=True)
    booked_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='booked_appointments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['datetime', 'token_number']
        indexes = [
            models.Index(fields=['patient', 'datetime'], name='hms_appoint_patient_2f0b4e_idx'),
            models.Index(fields=['doctor', 'datetime'], name='hms_appoint_doctor__8d3a61_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'appointment_date', 'token_number'], name='uniq_doctor_day_token'
            ),
        ]

    def __str__(self) -> str:
        return f"Appointment #{self.token_number} d={self.doctor_id} {self.appointment_date:%F} ({self.status})"


class AppointmentTransition(models.Model):
    """Records a status change of an appointment."""
    appointment = models.ForeignKey(Appointment, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=16, blank=True)
    to_status = models.CharField(max_length=16)
    operator = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointment_transitions'
    )
    reason = models.CharField(max_length=255, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']

    def __str__(self) -> str:
        return f"{self.appointment_id}: {self.from_status or '-'} -> {self.to_status}"


class Prescription(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='prescriptions')
    doctor = models.ForeignKey(User, on_delete=models.PROTECT, related_name='prescriptions')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.PROTECT, related_name='prescriptions'
    )
    instructions = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='hms_prescri_patient_91e7d2_idx'),
            models.Index(fields=['doctor', 'created_at'], name='hms_prescri_doctor__4b5c0a_idx'),
        ]

    def __str__(self) -> str:
        return f"Prescription #{self.pk} p={self.patient_id} d={self.doctor_id}"


class Medication(models.Model):
    prescription = models.ForeignKey(Prescription, related_name='medications', on_delete=models.CASCADE)
    position = models.PositiveSmallIntegerField()
    name = models.CharField(max_length=128)
    dosage = models.CharField(max_length=64)
    frequency = models.CharField(max_length=64)
    duration = models.CharField(max_length=64, blank=True)
    quantity = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        ordering = ['position']
        constraints = [
            models.UniqueConstraint(fields=['prescription', 'position'], name='uniq_prescription_position'),
        ]

    def __str__(self) -> str:
        return f"{self.name} {self.dosage}"


class VitalSigns(models.Model):
    TEMPERATURE_UNIT_CHOICES = [('celsius', 'Celsius'), ('fahrenheit', 'Fahrenheit')]
    HEIGHT_UNIT_CHOICES = [('cm', 'Centimetres'), ('ft', 'Feet')]
    WEIGHT_UNIT_CHOICES = [('kg', 'Kilograms'), ('lbs', 'Pounds')]

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='vital_signs')
    recorded_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='recorded_vitals')
    temperature = models.DecimalField(max_digits=4, decimal_places=1)
    temperature_unit = models.CharField(max_length=12, choices=TEMPERATURE_UNIT_CHOICES, default='celsius')
    systolic = models.PositiveSmallIntegerField()
    diastolic = models.PositiveSmallIntegerField()
    heart_rate = models.PositiveSmallIntegerField()
    respiratory_rate = models.PositiveSmallIntegerField()
    oxygen_saturation = models.PositiveSmallIntegerField(validators=[MaxValueValidator(100)])
    height = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)
    height_unit = models.CharField(max_length=4, choices=HEIGHT_UNIT_CHOICES, default='cm')
    weight = models.DecimalField(max_digits=5, decimal_places=1, null=True, blank=True)
    weight_unit = models.CharField(max_length=4, choices=WEIGHT_UNIT_CHOICES, default='kg')
    # derived from height and weight when both are present
    bmi = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    pain_scale = models.PositiveSmallIntegerField(null=True, blank=True, validators=[MaxValueValidator(10)])
    notes = models.TextField(blank=True)
    recorded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name_plural = 'vital signs'
        indexes = [
            models.Index(fields=['patient', 'recorded_at'], name='hms_vitalsi_patient_3b8e40_idx'),
        ]

    def __str__(self) -> str:
        return f"vitals p={self.patient_id} @ {self.recorded_at:%F %H:%M}"


class Payment(models.Model):
    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('insurance', 'Insurance'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_REFUNDED = 'refunded'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REFUNDED, 'Refunded'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='payments')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.PROTECT, related_name='payments'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    method = models.CharField(max_length=16, choices=METHOD_CHOICES, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED, db_index=True)
    receipt_number = models.CharField(max_length=40, unique=True)
    processed_by = models.ForeignKey(User, on_delete=models.PROTECT, related_name='processed_payments')
    notes = models.TextField(blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='hms_payment_patient_5e2d7b_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.receipt_number} {self.amount} ({self.status})"


class Notification(models.Model):
    CATEGORY_CHOICES = [
        ('appointment', 'Appointment'),
        ('payment', 'Payment'),
        ('prescription', 'Prescription'),
        ('system', 'System'),
    ]
    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    category = models.CharField(max_length=16, choices=CATEGORY_CHOICES, default='system')
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['recipient', 'is_read', 'created_at'], name='hms_notific_recipie_a3f1c9_idx'),
        ]

    def __str__(self) -> str:
        return f"notif {self.id} -> {self.recipient_id}: {self.title}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='hms_auditev_action_7c2e15_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='hms_auditev_object__0d9b48_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
