import logging
import secrets

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from hms.config import ClinicConfig
from hms.exceptions import NotFound
from hms.models import Patient
from hms.serializers.patient import PATIENT_FIELD_MAP
from hms.services.audit import log_action

logger = logging.getLogger(__name__)

CODE_ATTEMPTS = 5


def generate_patient_code(config: ClinicConfig) -> str:
    today = timezone.localdate(timezone=config.tz)
    return f"{config.patient_code_prefix}-{today:%Y%m%d}-{secrets.token_hex(3).upper()}"


def get_patient(patient_id, *, active_only=False) -> Patient:
    qs = Patient.objects.all()
    if active_only:
        qs = qs.filter(is_active=True)
    patient = qs.filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found.', resource='patient', id=patient_id)
    return patient


def _ensure_phone_free(phone, exclude_pk=None):
    qs = Patient.objects.filter(phone=phone)
    if exclude_pk:
        qs = qs.exclude(pk=exclude_pk)
    if qs.exists():
        raise ValidationError({'phone': ['A patient with this phone number already exists.']})


def register_patient(data: dict, *, user, config: ClinicConfig) -> Patient:
    """Create a patient from validated request data, assigning a fresh patient code."""
    fields = {PATIENT_FIELD_MAP[k]: v for k, v in data.items()}
    _ensure_phone_free(fields['phone'])
    for attempt in range(CODE_ATTEMPTS):
        code = generate_patient_code(config)
        try:
            with transaction.atomic():
                patient = Patient.objects.create(patient_code=code, registered_by=user, **fields)
        except IntegrityError:
            if Patient.objects.filter(phone=fields['phone']).exists():
                raise ValidationError({'phone': ['A patient with this phone number already exists.']})
            logger.info('patient code collision on %s (attempt %d)', code, attempt + 1)
            continue
        log_action(user=user, action='patient.register', object_type='patient', object_id=patient.id,
                   detail={'patientCode': patient.patient_code})
        return patient
    raise IntegrityError('could not allocate a unique patient code')


@transaction.atomic
def update_patient(patient_id, data: dict, *, user) -> Patient:
    patient = Patient.objects.select_for_update().filter(pk=patient_id).first()
    if patient is None:
        raise NotFound('Patient not found.', resource='patient', id=patient_id)
    fields = {PATIENT_FIELD_MAP[k]: v for k, v in data.items()}
    if 'phone' in fields:
        _ensure_phone_free(fields['phone'], exclude_pk=patient.pk)
    for name, value in fields.items():
        setattr(patient, name, value)
    try:
        with transaction.atomic():
            # patient_code is deliberately absent from update_fields
            patient.save(update_fields=list(fields) + ['updated_at'])
    except IntegrityError:
        # a concurrent update claimed the phone number after the check above
        if 'phone' in fields:
            raise ValidationError({'phone': ['A patient with this phone number already exists.']})
        raise
    log_action(user=user, action='patient.update', object_type='patient', object_id=patient.id,
               detail={'fields': sorted(data)})
    return patient


def deactivate_patient(patient_id, *, user) -> Patient:
    patient = get_patient(patient_id)
    if patient.is_active:
        patient.is_active = False
        patient.save(update_fields=['is_active', 'updated_at'])
        log_action(user=user, action='patient.deactivate', object_type='patient', object_id=patient.id)
    return patient


def search_patients(*, q=None, active=None):
    qs = Patient.objects.all()
    if active is not None:
        qs = qs.filter(is_active=active)
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q)
            | Q(phone__icontains=q) | Q(patient_code__iexact=q)
        )
    return qs.order_by('-created_at', '-id')


def format_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'patientCode': p.patient_code,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'fullName': p.full_name,
        'dateOfBirth': p.date_of_birth.isoformat(),
        'gender': p.gender,
        'phone': p.phone,
        'email': p.email,
        'address': p.address,
        'emergencyContactName': p.emergency_contact_name,
        'emergencyContactPhone': p.emergency_contact_phone,
        'bloodType': p.blood_type,
        'medicalHistory': p.medical_history,
        'isActive': p.is_active,
        'createdAt': p.created_at.isoformat(),
        'updatedAt': p.updated_at.isoformat(),
    }


def patient_brief(p: Patient) -> dict:
    return {'id': p.id, 'patientCode': p.patient_code, 'name': p.full_name, 'phone': p.phone}
