from decimal import Decimal, InvalidOperation

from django.utils import timezone
from rest_framework import serializers

from hms.models import VitalSigns
from hms.serializers.base import StrictSerializer, CleanCharField, PageQuerySerializer

# plausible body temperature per unit
TEMPERATURE_RANGES = {
    'celsius': (Decimal('25'), Decimal('45')),
    'fahrenheit': (Decimal('77'), Decimal('113')),
}


class VitalSignsCreateSerializer(StrictSerializer):
    rejected_fields = {'bmi': 'BMI is calculated from height and weight.'}

    temperature = serializers.DecimalField(max_digits=4, decimal_places=1)
    temperatureUnit = serializers.ChoiceField(
        choices=[c for c, _ in VitalSigns.TEMPERATURE_UNIT_CHOICES], default='celsius'
    )
    systolic = serializers.IntegerField(min_value=40, max_value=300)
    diastolic = serializers.IntegerField(min_value=20, max_value=200)
    heartRate = serializers.IntegerField(min_value=20, max_value=300)
    respiratoryRate = serializers.IntegerField(min_value=4, max_value=80)
    oxygenSaturation = serializers.IntegerField(min_value=50, max_value=100)
    height = serializers.DecimalField(max_digits=5, decimal_places=1, min_value=Decimal('0.1'), required=False)
    heightUnit = serializers.ChoiceField(choices=[c for c, _ in VitalSigns.HEIGHT_UNIT_CHOICES], default='cm')
    weight = serializers.DecimalField(max_digits=5, decimal_places=1, min_value=Decimal('0.1'), required=False)
    weightUnit = serializers.ChoiceField(choices=[c for c, _ in VitalSigns.WEIGHT_UNIT_CHOICES], default='kg')
    painScale = serializers.IntegerField(min_value=0, max_value=10, required=False)
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000)
    recordedAt = serializers.DateTimeField(required=False)

    def validate_recordedAt(self, v):
        if v > timezone.now():
            raise serializers.ValidationError('Vitals cannot be recorded in the future.')
        return v

    def cross_field_checks(self, data):
        # malformed values are reported by the fields themselves
        errors = {}
        try:
            if int(data['diastolic']) >= int(data['systolic']):
                errors['diastolic'] = ['Diastolic pressure must be below systolic pressure.']
        except (KeyError, TypeError, ValueError):
            pass
        unit = data.get('temperatureUnit', 'celsius')
        bounds = TEMPERATURE_RANGES.get(unit) if isinstance(unit, str) else None
        try:
            value = Decimal(str(data['temperature']))
        except (KeyError, InvalidOperation):
            return errors
        if bounds and value.is_finite() and not bounds[0] <= value <= bounds[1]:
            errors['temperature'] = [f'Temperature must be between {bounds[0]} and {bounds[1]} {unit}.']
        return errors


class VitalSignsListQuerySerializer(PageQuerySerializer):
    pass
