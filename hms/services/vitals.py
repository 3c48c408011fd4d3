"""
Vital sign recordings for patients.

Readings are append-only.  BMI is derived from height and weight when
both are given, after converting them to metres and kilograms.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.utils import timezone

from hms.models import VitalSigns
from hms.services.audit import log_action
from hms.services.patients import get_patient

logger = logging.getLogger(__name__)

TO_METRES = {'cm': Decimal('0.01'), 'ft': Decimal('0.3048')}
TO_KILOGRAMS = {'kg': Decimal('1'), 'lbs': Decimal('0.45359237')}


def compute_bmi(height, height_unit, weight, weight_unit) -> Decimal | None:
    if not height or not weight:
        return None
    metres = Decimal(height) * TO_METRES[height_unit]
    kilograms = Decimal(weight) * TO_KILOGRAMS[weight_unit]
    bmi = (kilograms / (metres * metres)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)
    # anything beyond the column is a unit mix-up, not a reading
    return bmi if bmi < 1000 else None


def record_vitals(patient_id, data: dict, *, user) -> VitalSigns:
    patient = get_patient(patient_id, active_only=True)
    height_unit = data.get('heightUnit', 'cm')
    weight_unit = data.get('weightUnit', 'kg')
    vitals = VitalSigns.objects.create(
        patient=patient,
        recorded_by=user,
        temperature=data['temperature'],
        temperature_unit=data.get('temperatureUnit', 'celsius'),
        systolic=data['systolic'],
        diastolic=data['diastolic'],
        heart_rate=data['heartRate'],
        respiratory_rate=data['respiratoryRate'],
        oxygen_saturation=data['oxygenSaturation'],
        height=data.get('height'),
        height_unit=height_unit,
        weight=data.get('weight'),
        weight_unit=weight_unit,
        bmi=compute_bmi(data.get('height'), height_unit, data.get('weight'), weight_unit),
        pain_scale=data.get('painScale'),
        notes=data.get('notes', ''),
        recorded_at=data.get('recordedAt') or timezone.now(),
    )
    log_action(user=user, action='vitals.record', object_type='patient', object_id=patient.id,
               detail={'vitalsId': vitals.id})
    logger.info('vitals %s recorded for patient %s by %s', vitals.id, patient.id, user.id)
    return vitals


def list_vitals(patient_id):
    patient = get_patient(patient_id)
    return (
        VitalSigns.objects.filter(patient=patient)
        .select_related('recorded_by')
        .order_by('-recorded_at', '-id')
    )


def _decimal(value) -> str | None:
    return None if value is None else str(value)


def format_vitals(v: VitalSigns) -> dict:
    return {
        'id': v.id,
        'patientId': v.patient_id,
        'temperature': _decimal(v.temperature),
        'temperatureUnit': v.temperature_unit,
        'systolic': v.systolic,
        'diastolic': v.diastolic,
        'heartRate': v.heart_rate,
        'respiratoryRate': v.respiratory_rate,
        'oxygenSaturation': v.oxygen_saturation,
        'height': _decimal(v.height),
        'heightUnit': v.height_unit,
        'weight': _decimal(v.weight),
        'weightUnit': v.weight_unit,
        'bmi': _decimal(v.bmi),
        'painScale': v.pain_scale,
        'notes': v.notes,
        'recordedAt': v.recorded_at.isoformat(),
        'recordedBy': {
            'id': v.recorded_by_id,
            'name': v.recorded_by.get_full_name() or v.recorded_by.email,
            'role': v.recorded_by.role,
        },
    }
