"""
Appointment booking and token assignment.

Token numbers count up per doctor per calendar day (in the clinic time
zone) and are never handed out twice, even after a cancellation.  The
database enforces uniqueness of ``(doctor, appointment_date,
token_number)``; when two bookings race for the same number the loser
recomputes once and, failing again, reports :class:`SlotConflict`.
"""
from __future__ import annotations

import logging
from datetime import date as date_cls, datetime, time as time_cls, timedelta

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from hms.config import ClinicConfig, ShiftWindow, day_of_week, shifts_from_rows
from hms.exceptions import DoctorUnavailable, InvalidRequest, NotFound, SlotConflict
from hms.models import Appointment, AppointmentTransition, DoctorAvailability, DoctorLeave, User
from hms.services.audit import log_action
from hms.services.notifications import EventPublisher, notify
from hms.services.patients import get_patient

logger = logging.getLogger(__name__)

BOOKING_ATTEMPTS = 2


def resolve_when(*, config: ClinicConfig, date: date_cls | None = None, time: time_cls | None = None,
                 when: datetime | None = None) -> datetime:
    """Return the aware appointment datetime in the clinic time zone."""
    if when is not None:
        if timezone.is_naive(when):
            when = when.replace(tzinfo=config.tz)
        local = when.astimezone(config.tz)
        if date is not None and date != local.date():
            raise InvalidRequest('date and datetime refer to different days.',
                                 date=date.isoformat(), datetime=local.isoformat())
        if time is not None and (time.hour, time.minute) != (local.hour, local.minute):
            raise InvalidRequest('time and datetime disagree.', time=time.strftime('%H:%M'),
                                 datetime=local.isoformat())
        return local
    if date is None or time is None:
        raise InvalidRequest('Either datetime or both date and time are required.')
    return datetime.combine(date, time).replace(tzinfo=config.tz)


def get_active_doctor(doctor_id) -> User:
    doctor = User.objects.filter(pk=doctor_id, role=User.ROLE_DOCTOR, is_active=True).first()
    if doctor is None:
        raise NotFound('Doctor not found.', resource='doctor', id=doctor_id)
    return doctor


def windows_for_day(doctor: User, day: date_cls, config: ClinicConfig) -> list[ShiftWindow]:
    """Working windows of ``doctor`` on ``day``.

    Doctors who never configured a weekly schedule work the clinic's
    default shifts on the default working days.
    """
    dow = day_of_week(day)
    rows = DoctorAvailability.objects.filter(doctor=doctor)
    if not rows.exists():
        return list(config.default_shifts) if dow in config.default_working_days else []
    return shifts_from_rows(rows.filter(day_of_week=dow, is_available=True))


def is_within_hours(doctor: User, local_when: datetime, config: ClinicConfig) -> bool:
    """Whether ``local_when`` falls in one of the doctor's windows.

    Early-morning times also match the tail of a window that started the
    evening before, unless the doctor was on leave that evening.
    """
    day = local_when.date()
    t = local_when.time().replace(second=0, microsecond=0)
    if any(w.contains(t) for w in windows_for_day(doctor, day, config)):
        return True
    eve = day - timedelta(days=1)
    if DoctorLeave.objects.filter(doctor=doctor, date=eve).exists():
        return False
    return any(w.spills_into(t) for w in windows_for_day(doctor, eve, config))


def ensure_available(doctor: User, local_when: datetime, config: ClinicConfig) -> None:
    day = local_when.date()
    if DoctorLeave.objects.filter(doctor=doctor, date=day).exists():
        raise DoctorUnavailable('Doctor is on leave on the requested day.',
                                doctorId=doctor.id, date=day.isoformat(), reason='leave')
    if not is_within_hours(doctor, local_when, config):
        raise DoctorUnavailable('Requested time is outside the doctor\'s working hours.',
                                doctorId=doctor.id, date=day.isoformat(),
                                time=local_when.strftime('%H:%M'), reason='outside_hours')
    booked = (
        Appointment.objects.filter(doctor=doctor, appointment_date=day)
        .exclude(status=Appointment.STATUS_CANCELLED)
        .count()
    )
    if booked >= config.max_daily_tokens:
        raise DoctorUnavailable('Doctor is fully booked on the requested day.',
                                doctorId=doctor.id, date=day.isoformat(), reason='fully_booked')


def next_token(doctor: User, day: date_cls) -> int:
    # cancelled rows count too: a token number is never reissued
    top = Appointment.objects.filter(doctor=doctor, appointment_date=day).aggregate(m=Max('token_number'))['m']
    return (top or 0) + 1


def book_appointment(*, patient_id, doctor_id, config: ClinicConfig, publisher: EventPublisher | None = None,
                     date=None, time=None, when=None, type=Appointment.TYPE_CONSULTATION, notes='',
                     booked_by=None) -> Appointment:
    local_when = resolve_when(config=config, date=date, time=time, when=when)
    if not config.allow_past_bookings and local_when < timezone.now():
        raise InvalidRequest('Appointments cannot be booked in the past.', datetime=local_when.isoformat())

    doctor = get_active_doctor(doctor_id)
    patient = get_patient(patient_id, active_only=True)
    ensure_available(doctor, local_when, config)
    day = local_when.date()

    appt = None
    for attempt in range(1, BOOKING_ATTEMPTS + 1):
        token = next_token(doctor, day)
        try:
            with transaction.atomic():
                appt = Appointment.objects.create(
                    patient=patient, doctor=doctor, datetime=local_when, appointment_date=day,
                    type=type, status=Appointment.STATUS_SCHEDULED, token_number=token,
                    notes=notes or '', booked_by=booked_by,
                )
                AppointmentTransition.objects.create(
                    appointment=appt, from_status='', to_status=Appointment.STATUS_SCHEDULED,
                    operator=booked_by, reason='booked',
                )
        except IntegrityError:
            logger.info('token %s for doctor %s on %s already taken (attempt %d)', token, doctor.id, day, attempt)
            continue
        break
    else:
        raise SlotConflict(doctorId=doctor.id, date=day.isoformat())

    log_action(user=booked_by, action='appointment.book', object_type='appointment', object_id=appt.id,
               detail={'doctorId': doctor.id, 'date': day.isoformat(), 'token': appt.token_number})
    notify(
        [doctor], event='appointment.created', category='appointment',
        title='New appointment',
        message=f'{patient.full_name} booked for {local_when:%Y-%m-%d %H:%M}, token {appt.token_number}.',
        data={'appointmentId': appt.id, 'tokenNumber': appt.token_number, 'date': day.isoformat()},
        publisher=publisher,
    )
    logger.info('booked appointment %s: doctor=%s date=%s token=%s', appt.id, doctor.id, day, appt.token_number)
    return appt
