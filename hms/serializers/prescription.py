from rest_framework import serializers

from hms.serializers.base import StrictSerializer, CleanCharField, PageQuerySerializer


class MedicationSerializer(StrictSerializer):
    name = CleanCharField(max_length=128)
    dosage = CleanCharField(max_length=64)
    frequency = CleanCharField(max_length=64)
    duration = CleanCharField(required=False, allow_blank=True, max_length=64)
    quantity = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class PrescriptionCreateSerializer(StrictSerializer):
    patientId = serializers.IntegerField(min_value=1)
    doctorId = serializers.IntegerField(required=False, min_value=1)
    appointmentId = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    medications = MedicationSerializer(many=True, allow_empty=False)
    instructions = CleanCharField(required=False, allow_blank=True, max_length=5000)
    notes = CleanCharField(required=False, allow_blank=True, max_length=5000)


class PrescriptionListQuerySerializer(PageQuerySerializer):
    patientId = serializers.IntegerField(required=False, min_value=1)
    doctorId = serializers.IntegerField(required=False, min_value=1)
    appointmentId = serializers.IntegerField(required=False, min_value=1)
