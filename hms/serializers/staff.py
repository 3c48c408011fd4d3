from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from hms.models import User
from hms.serializers.base import StrictSerializer, CleanCharField, PhoneField, PageQuerySerializer


class StaffCreateSerializer(StrictSerializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, max_length=128)
    firstName = CleanCharField(max_length=64)
    lastName = CleanCharField(max_length=64)
    role = serializers.ChoiceField(choices=[c for c, _ in User.ROLE_CHOICES])
    phone = PhoneField(required=False, allow_blank=True)
    specialization = CleanCharField(required=False, allow_blank=True, max_length=120)
    isActive = serializers.BooleanField(default=True)

    def validate_email(self, v):
        return v.strip().lower()

    def cross_field_checks(self, data):
        password = data.get('password')
        if not isinstance(password, str) or not password:
            return {}
        profile = User(
            email=str(data.get('email') or ''),
            first_name=str(data.get('firstName') or ''),
            last_name=str(data.get('lastName') or ''),
        )
        try:
            validate_password(password, user=profile)
        except DjangoValidationError as e:
            return {'password': list(e.messages)}
        return {}


class StaffUpdateSerializer(StrictSerializer):
    """Profile changes only.  Role and email are fixed after creation."""
    rejected_fields = {
        'role': 'Role cannot be changed after creation.',
        'email': 'Email cannot be changed.',
        'password': 'Use the password change endpoint.',
    }

    firstName = CleanCharField(required=False, max_length=64)
    lastName = CleanCharField(required=False, max_length=64)
    phone = PhoneField(required=False, allow_blank=True)
    specialization = CleanCharField(required=False, allow_blank=True, max_length=120)
    isActive = serializers.BooleanField(required=False)


class StaffListQuerySerializer(PageQuerySerializer):
    role = serializers.ChoiceField(choices=[c for c, _ in User.ROLE_CHOICES], required=False)
    q = serializers.CharField(required=False, max_length=64)
    active = serializers.BooleanField(required=False, allow_null=True, default=None)


class DoctorListQuerySerializer(serializers.Serializer):
    specialization = serializers.CharField(required=False, max_length=120)
    q = serializers.CharField(required=False, max_length=64)
