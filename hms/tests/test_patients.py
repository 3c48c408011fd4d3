import re

import pytest
from rest_framework.exceptions import ValidationError

from hms.models import AuditEvent, Patient
from hms.serializers.patient import PatientCreateSerializer, PatientUpdateSerializer
from hms.services.patients import deactivate_patient, register_patient, search_patients, update_patient

pytestmark = pytest.mark.django_db

PAYLOAD = {
    'firstName': 'Sita',
    'lastName': 'Menon',
    'dateOfBirth': '1990-02-14',
    'gender': 'female',
    'phone': '+91 98450 12345',
    'bloodType': 'O+',
}


def register(receptionist, config, **overrides):
    s = PatientCreateSerializer(data={**PAYLOAD, **overrides})
    s.is_valid(raise_exception=True)
    return register_patient(s.validated_data, user=receptionist, config=config)


def test_registration_assigns_code(receptionist, config):
    p = register(receptionist, config)
    assert re.fullmatch(r'P-\d{8}-[0-9A-F]{6}', p.patient_code)
    assert p.is_active is True
    assert p.registered_by == receptionist
    assert AuditEvent.objects.filter(action='patient.register', object_id=p.id).exists()


def test_patient_code_survives_updates(receptionist, config):
    p = register(receptionist, config)
    code = p.patient_code
    for change in ({'firstName': 'Gita'}, {'phone': '+91 98450 54321'}, {'isActive': False}):
        s = PatientUpdateSerializer(data=change, partial=True)
        s.is_valid(raise_exception=True)
        update_patient(p.id, s.validated_data, user=receptionist)
    p.refresh_from_db()
    assert p.patient_code == code
    assert p.first_name == 'Gita'


def test_patient_code_cannot_be_submitted():
    s = PatientUpdateSerializer(data={'patientCode': 'P-HACKED'}, partial=True)
    assert not s.is_valid()
    assert 'patientCode' in s.errors


def test_duplicate_phone_is_a_field_error(receptionist, config):
    register(receptionist, config)
    with pytest.raises(ValidationError) as exc:
        register(receptionist, config, firstName='Other')
    assert 'phone' in exc.value.detail


def test_phone_taken_between_check_and_save_is_a_field_error(receptionist, config, monkeypatch):
    first = register(receptionist, config)
    second = register(receptionist, config, phone='+91 98450 99999')
    # the competing update lands after the availability check has passed
    monkeypatch.setattr('hms.services.patients._ensure_phone_free', lambda phone, exclude_pk=None: None)
    with pytest.raises(ValidationError) as exc:
        update_patient(second.id, {'phone': first.phone}, user=receptionist)
    assert 'phone' in exc.value.detail
    second.refresh_from_db()
    assert second.phone == '+91 98450 99999'


def test_deactivate_keeps_record(receptionist, config):
    p = register(receptionist, config)
    deactivate_patient(p.id, user=receptionist)
    assert Patient.objects.get(pk=p.id).is_active is False
    assert list(search_patients(active=True)) == []
    assert list(search_patients(q=p.patient_code)) == [Patient.objects.get(pk=p.id)]


def test_markup_is_stripped_from_text(receptionist, config):
    p = register(receptionist, config, medicalHistory='<script>x()</script>Asthma')
    assert '<' not in p.medical_history
    assert 'Asthma' in p.medical_history
