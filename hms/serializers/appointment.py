from rest_framework import serializers

from hms.models import Appointment
from hms.serializers.base import StrictSerializer, CleanCharField, HHMMField, PageQuerySerializer, is_blank


class AppointmentCreateSerializer(StrictSerializer):
    """Booking request: ``date`` + ``time`` (HH:MM), or a full ``datetime``."""
    patientId = serializers.IntegerField(min_value=1)
    doctorId = serializers.IntegerField(min_value=1)
    date = serializers.DateField(required=False)
    time = HHMMField(required=False)
    datetime = serializers.DateTimeField(required=False)
    type = serializers.ChoiceField(
        choices=[c for c, _ in Appointment.TYPE_CHOICES], default=Appointment.TYPE_CONSULTATION
    )
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000)

    def cross_field_checks(self, data):
        if not is_blank(data.get('datetime')):
            return {}
        return {
            name: ['This field is required when datetime is not given.']
            for name in ('date', 'time') if is_blank(data.get(name))
        }


class AppointmentUpdateSerializer(StrictSerializer):
    rejected_fields = {
        'tokenNumber': 'Token numbers are assigned by the system.',
        'doctorId': 'Doctor cannot be changed; cancel and book again.',
        'patientId': 'Patient cannot be changed; cancel and book again.',
    }

    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000)
    reason = CleanCharField(required=False, allow_blank=True, max_length=255)

    def cross_field_checks(self, data):
        if 'status' not in data and 'notes' not in data:
            return {'status': ['Provide status and/or notes.']}
        return {}


class AppointmentListQuerySerializer(PageQuerySerializer):
    doctorId = serializers.IntegerField(required=False, min_value=1)
    patientId = serializers.IntegerField(required=False, min_value=1)
    date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)
