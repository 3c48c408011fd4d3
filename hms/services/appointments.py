from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from hms.exceptions import InvalidTransition, NotFound
from hms.models import Appointment, AppointmentTransition
from hms.services.audit import log_action
from hms.services.notifications import EventPublisher, notify
from hms.services.patients import patient_brief

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    Appointment.STATUS_SCHEDULED: {
        Appointment.STATUS_CONFIRMED, Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED,
    },
    Appointment.STATUS_CONFIRMED: {Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED},
    Appointment.STATUS_COMPLETED: set(),
    Appointment.STATUS_CANCELLED: set(),
}


def can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def ensure_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransition(current, new)


def appointment_queryset():
    return Appointment.objects.select_related('patient', 'doctor')


def get_appointment(appointment_id) -> Appointment:
    appt = appointment_queryset().filter(pk=appointment_id).first()
    if appt is None:
        raise NotFound('Appointment not found.', resource='appointment', id=appointment_id)
    return appt


def update_appointment(appointment_id, *, user, status=None, notes=None, reason='',
                       publisher: EventPublisher | None = None) -> Appointment:
    """Apply a status change and/or a notes edit under a row lock."""
    with transaction.atomic():
        appt = Appointment.objects.select_for_update().filter(pk=appointment_id).first()
        if appt is None:
            raise NotFound('Appointment not found.', resource='appointment', id=appointment_id)
        previous = appt.status
        changed = ['updated_at']
        if status is not None:
            ensure_transition(previous, status)
            appt.status = status
            changed.append('status')
            AppointmentTransition.objects.create(
                appointment=appt, from_status=previous, to_status=status, operator=user, reason=reason or '',
            )
        if notes is not None:
            appt.notes = notes
            changed.append('notes')
        appt.save(update_fields=changed)

    appt = get_appointment(appointment_id)
    if status is not None:
        log_action(user=user, action='appointment.status', object_type='appointment', object_id=appt.id,
                   detail={'from': previous, 'to': status, 'reason': reason or ''})
        recipients = [appt.doctor]
        if appt.booked_by_id and appt.booked_by_id != appt.doctor_id:
            recipients.append(appt.booked_by)
        notify(
            recipients, event='appointment.status_changed', category='appointment',
            title=f'Appointment {status}',
            message=f'Token {appt.token_number} on {appt.appointment_date:%Y-%m-%d} is now {status}.',
            data={'appointmentId': appt.id, 'from': previous, 'to': status},
            publisher=publisher,
        )
        logger.info('appointment %s: %s -> %s by %s', appt.id, previous, status, getattr(user, 'id', None))
    return appt


def list_appointments(*, doctor_id=None, patient_id=None, date=None, status=None):
    qs = appointment_queryset()
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if date:
        qs = qs.filter(appointment_date=date)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('appointment_date', 'doctor_id', 'token_number')


def doctor_brief(u) -> dict:
    return {
        'id': u.id,
        'name': u.get_full_name() or u.email,
        'specialization': u.specialization,
    }


def format_appointment(a: Appointment, *, with_history=False) -> dict:
    data = {
        'id': a.id,
        'patientId': a.patient_id,
        'doctorId': a.doctor_id,
        'patient': patient_brief(a.patient),
        'doctor': doctor_brief(a.doctor),
        'datetime': timezone.localtime(a.datetime).isoformat(),
        'date': a.appointment_date.isoformat(),
        'type': a.type,
        'status': a.status,
        'tokenNumber': a.token_number,
        'notes': a.notes,
        'createdAt': a.created_at.isoformat(),
        'updatedAt': a.updated_at.isoformat(),
    }
    if with_history:
        data['transitionHistory'] = [
            {
                'from': t.from_status,
                'to': t.to_status,
                'operator': t.operator.email if t.operator else '',
                'timestamp': t.timestamp.isoformat(),
                'reason': t.reason,
            }
            for t in a.transitions.select_related('operator').all()
        ]
    return data
