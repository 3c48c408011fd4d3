from datetime import date, time, timedelta

import pytest
from django.core.exceptions import ImproperlyConfigured

from hms.config import ShiftWindow, day_of_week, load_clinic_config, parse_hhmm
from hms.serializers.appointment import AppointmentCreateSerializer, AppointmentUpdateSerializer
from hms.serializers.availability import AvailabilityReplaceSerializer
from hms.serializers.patient import PatientCreateSerializer
from hms.serializers.prescription import PrescriptionCreateSerializer
from hms.serializers.staff import StaffCreateSerializer, StaffUpdateSerializer


def test_all_violations_are_reported_together():
    s = PatientCreateSerializer(data={
        'firstName': 'A',
        'dateOfBirth': (date.today() + timedelta(days=3)).isoformat(),
        'gender': 'unknown',
        'phone': 'abc',
        'favouriteColour': 'blue',
    })
    assert not s.is_valid()
    assert {'lastName', 'dateOfBirth', 'gender', 'phone', 'favouriteColour'} <= set(s.errors)
    assert s.errors['favouriteColour'] == ['Unknown field.']


def test_booking_defaults_and_time_format():
    s = AppointmentCreateSerializer(data={'patientId': 1, 'doctorId': 2, 'date': '2031-03-03', 'time': '09:30'})
    assert s.is_valid(), s.errors
    assert s.validated_data['type'] == 'consultation'
    assert s.validated_data['time'] == time(9, 30)

    bad = AppointmentCreateSerializer(data={'patientId': 1, 'doctorId': 2, 'date': '2031-03-03', 'time': '9.30'})
    assert not bad.is_valid()
    assert 'time' in bad.errors


def test_booking_needs_date_and_time_or_datetime():
    s = AppointmentCreateSerializer(data={'patientId': 1, 'doctorId': 2, 'date': '2031-03-03'})
    assert not s.is_valid()
    assert 'time' in s.errors

    s = AppointmentCreateSerializer(data={'patientId': 1, 'doctorId': 2, 'datetime': '2031-03-03T09:30:00'})
    assert s.is_valid(), s.errors


def test_missing_date_and_time_reported_with_other_field_errors():
    s = AppointmentCreateSerializer(data={'patientId': 'x', 'doctorId': 2})
    assert not s.is_valid()
    assert {'patientId', 'date', 'time'} <= set(s.errors)

    s = AppointmentCreateSerializer(data={'patientId': 1, 'doctorId': 2, 'bogus': 1})
    assert not s.is_valid()
    assert s.errors['bogus'] == ['Unknown field.']
    assert {'date', 'time'} <= set(s.errors)


def test_weak_password_reported_with_other_field_errors():
    s = StaffCreateSerializer(data={
        'email': 'nurse@clinic.test', 'password': '1', 'firstName': 'Asha', 'lastName': 'Rao', 'role': 'nurse',
    })
    assert not s.is_valid()
    assert 'role' in s.errors
    assert s.errors['password']


def test_update_needs_status_or_notes_even_with_rejected_keys():
    s = AppointmentUpdateSerializer(data={'tokenNumber': 4})
    assert not s.is_valid()
    assert {'tokenNumber', 'status'} <= set(s.errors)


def test_window_end_must_differ_from_start():
    window = {'dayOfWeek': 9, 'startTime': '09:00', 'endTime': '09:00'}
    s = AvailabilityReplaceSerializer(data={'windows': [window]})
    assert not s.is_valid()
    assert {'dayOfWeek', 'endTime'} <= set(s.errors['windows'][0])


def test_token_number_cannot_be_written():
    s = AppointmentUpdateSerializer(data={'tokenNumber': 1, 'status': 'confirmed'})
    assert not s.is_valid()
    assert 'tokenNumber' in s.errors


def test_prescription_needs_medications():
    s = PrescriptionCreateSerializer(data={'patientId': 1, 'medications': []})
    assert not s.is_valid()
    assert 'medications' in s.errors

    s = PrescriptionCreateSerializer(data={'patientId': 1, 'medications': [{'name': 'Amoxicillin', 'quantity': 0}]})
    assert not s.is_valid()
    assert 'medications' in s.errors


def test_role_is_rejected_on_staff_update():
    s = StaffUpdateSerializer(data={'role': 'admin', 'firstName': 'X'}, partial=True)
    assert not s.is_valid()
    assert s.errors['role'] == ['Role cannot be changed after creation.']


def test_duplicate_availability_windows():
    window = {'dayOfWeek': 1, 'startTime': '09:00', 'endTime': '12:00'}
    s = AvailabilityReplaceSerializer(data={'windows': [window, dict(window)]})
    assert not s.is_valid()
    assert 'windows' in s.errors


def test_parse_hhmm():
    assert parse_hhmm('07:05') == time(7, 5)
    for bad in ('24:00', '7:5', '', 'noon'):
        with pytest.raises(ValueError):
            parse_hhmm(bad)


def test_shift_window_end_is_exclusive_and_may_wrap():
    day = ShiftWindow(time(9, 0), time(13, 0))
    assert day.contains(time(9, 0))
    assert day.contains(time(12, 59))
    assert not day.contains(time(13, 0))

    assert not day.spills_into(time(1, 0))

    night = ShiftWindow(time(22, 0), time(2, 0))
    assert night.contains(time(23, 30))
    assert not night.contains(time(0, 30))
    assert night.spills_into(time(1, 0))
    assert not night.spills_into(time(2, 0))
    assert not night.spills_into(time(23, 30))
    assert not night.contains(time(12, 0))


def test_day_of_week_is_sunday_based():
    assert day_of_week(date(2024, 6, 2)) == 0  # Sunday
    assert day_of_week(date(2024, 6, 3)) == 1
    assert day_of_week(date(2024, 6, 8)) == 6


def test_load_clinic_config():
    cfg = load_clinic_config(
        {'DEFAULT_SHIFTS': [{'name': 'Morning', 'start': '08:00', 'end': '12:00'}], 'MAX_DAILY_TOKENS': 5},
        time_zone='Asia/Kolkata',
    )
    assert cfg.default_shifts == (ShiftWindow(time(8, 0), time(12, 0), 'Morning'),)
    assert cfg.max_daily_tokens == 5
    assert cfg.receipt_prefix == 'RCP'

    with pytest.raises(ImproperlyConfigured):
        load_clinic_config({'DEFAULT_SHIFTS': [{'start': '8am', 'end': '12:00'}]}, time_zone='UTC')
    with pytest.raises(ImproperlyConfigured):
        load_clinic_config({'DEFAULT_WORKING_DAYS': [7]}, time_zone='UTC')
