from datetime import date

from rest_framework import serializers

from hms.models import Patient
from hms.serializers.base import StrictSerializer, CleanCharField, PhoneField, PageQuerySerializer


class PatientCreateSerializer(StrictSerializer):
    rejected_fields = {'patientCode': 'Patient identifier is generated and cannot be set.'}

    firstName = CleanCharField(max_length=64)
    lastName = CleanCharField(max_length=64)
    dateOfBirth = serializers.DateField()
    gender = serializers.ChoiceField(choices=[c for c, _ in Patient.GENDER_CHOICES])
    phone = PhoneField()
    email = serializers.EmailField(required=False, allow_blank=True)
    address = CleanCharField(required=False, allow_blank=True, max_length=500)
    emergencyContactName = CleanCharField(required=False, allow_blank=True, max_length=128)
    emergencyContactPhone = PhoneField(required=False, allow_blank=True)
    bloodType = serializers.ChoiceField(
        choices=[c for c, _ in Patient.BLOOD_TYPE_CHOICES], required=False, allow_blank=True
    )
    medicalHistory = CleanCharField(required=False, allow_blank=True, max_length=5000)
    isActive = serializers.BooleanField(default=True)

    def validate_dateOfBirth(self, v):
        if v > date.today():
            raise serializers.ValidationError('Date of birth cannot be in the future.')
        return v


class PatientUpdateSerializer(PatientCreateSerializer):
    """Same rules as creation; used with ``partial=True``."""
    rejected_fields = {'patientCode': 'Patient identifier cannot be changed.'}


class PatientListQuerySerializer(PageQuerySerializer):
    q = serializers.CharField(required=False, max_length=64)
    active = serializers.BooleanField(required=False, allow_null=True, default=None)


# request field -> model field
PATIENT_FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'dateOfBirth': 'date_of_birth',
    'gender': 'gender',
    'phone': 'phone',
    'email': 'email',
    'address': 'address',
    'emergencyContactName': 'emergency_contact_name',
    'emergencyContactPhone': 'emergency_contact_phone',
    'bloodType': 'blood_type',
    'medicalHistory': 'medical_history',
    'isActive': 'is_active',
}
