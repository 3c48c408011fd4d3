"""
Payment issuance, refunds and receipts.

Receipt numbers look like ``RCP20240501A1B2C3D4E5``: the configured
prefix, the issue date in the clinic time zone and ten random hex
digits.  Uniqueness is enforced by the database; a collision simply
draws a new number.
"""
from __future__ import annotations

import logging
import secrets

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from hms.config import ClinicConfig
from hms.exceptions import InvalidRequest, NotFound, PaymentStateError
from hms.models import Appointment, Payment
from hms.services.appointments import doctor_brief
from hms.services.audit import log_action
from hms.services.notifications import EventPublisher, notify
from hms.services.patients import get_patient, patient_brief

logger = logging.getLogger(__name__)

RECEIPT_ATTEMPTS = 5


def generate_receipt_number(config: ClinicConfig) -> str:
    today = timezone.localdate(timezone=config.tz)
    return f"{config.receipt_prefix}{today:%Y%m%d}{secrets.token_hex(5).upper()}"


def payment_queryset():
    return Payment.objects.select_related('patient', 'appointment', 'appointment__doctor', 'processed_by')


def get_payment(payment_id) -> Payment:
    payment = payment_queryset().filter(pk=payment_id).first()
    if payment is None:
        raise NotFound('Payment not found.', resource='payment', id=payment_id)
    return payment


def issue_payment(*, user, patient_id, amount, method, config: ClinicConfig, appointment_id=None,
                  status=Payment.STATUS_COMPLETED, notes='', publisher: EventPublisher | None = None) -> Payment:
    patient = get_patient(patient_id)
    appointment = None
    if appointment_id:
        appointment = Appointment.objects.filter(pk=appointment_id).first()
        if appointment is None:
            raise NotFound('Appointment not found.', resource='appointment', id=appointment_id)
        if appointment.patient_id != patient.id:
            raise InvalidRequest('Appointment belongs to a different patient.', appointmentId=appointment_id)

    payment = None
    for attempt in range(1, RECEIPT_ATTEMPTS + 1):
        receipt = generate_receipt_number(config)
        try:
            with transaction.atomic():
                payment = Payment.objects.create(
                    patient=patient, appointment=appointment, amount=amount, method=method,
                    status=status, receipt_number=receipt, processed_by=user, notes=notes or '',
                )
        except IntegrityError:
            logger.warning('receipt number collision on %s (attempt %d)', receipt, attempt)
            continue
        break
    else:
        raise IntegrityError('could not allocate a unique receipt number')

    log_action(user=user, action='payment.issue', object_type='payment', object_id=payment.id,
               detail={'receipt': payment.receipt_number, 'amount': str(payment.amount), 'status': status})
    if appointment is not None:
        notify([appointment.doctor], event='payment.created', category='payment', title='Payment received',
               message=f'Payment {payment.receipt_number} recorded for {patient.full_name}.',
               data={'paymentId': payment.id, 'appointmentId': appointment.id, 'status': status},
               publisher=publisher)
    return get_payment(payment.id)


def _change_status(payment_id, *, user, required: str, target: str, reason='') -> Payment:
    with transaction.atomic():
        payment = Payment.objects.select_for_update().filter(pk=payment_id).first()
        if payment is None:
            raise NotFound('Payment not found.', resource='payment', id=payment_id)
        if payment.status != required:
            raise PaymentStateError(payment.status, target)
        payment.status = target
        fields = ['status', 'updated_at']
        if target == Payment.STATUS_REFUNDED:
            payment.refunded_at = timezone.now()
            fields.append('refunded_at')
        payment.save(update_fields=fields)
    log_action(user=user, action=f'payment.{target}', object_type='payment', object_id=payment.id,
               detail={'from': required, 'reason': reason or ''})
    return get_payment(payment_id)


def refund_payment(payment_id, *, user, reason='') -> Payment:
    """Refund a completed payment.  Refunded payments stay refunded."""
    return _change_status(payment_id, user=user, required=Payment.STATUS_COMPLETED,
                          target=Payment.STATUS_REFUNDED, reason=reason)


def complete_payment(payment_id, *, user, reason='') -> Payment:
    return _change_status(payment_id, user=user, required=Payment.STATUS_PENDING,
                          target=Payment.STATUS_COMPLETED, reason=reason)


def list_payments(*, patient_id=None, appointment_id=None, status=None, method=None, q=None):
    qs = payment_queryset()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if appointment_id:
        qs = qs.filter(appointment_id=appointment_id)
    if status:
        qs = qs.filter(status=status)
    if method:
        qs = qs.filter(method=method)
    if q:
        qs = qs.filter(Q(receipt_number__iexact=q) | Q(patient__patient_code__iexact=q))
    return qs.order_by('-created_at', '-id')


def format_payment(p: Payment) -> dict:
    appt = p.appointment
    return {
        'id': p.id,
        'receiptNumber': p.receipt_number,
        'patientId': p.patient_id,
        'appointmentId': p.appointment_id,
        'patient': patient_brief(p.patient),
        'appointment': None if appt is None else {
            'id': appt.id,
            'datetime': timezone.localtime(appt.datetime).isoformat(),
            'tokenNumber': appt.token_number,
            'status': appt.status,
            'doctor': doctor_brief(appt.doctor),
        },
        'amount': str(p.amount),
        'method': p.method,
        'status': p.status,
        'notes': p.notes,
        'processedBy': p.processed_by_id,
        'refundedAt': p.refunded_at.isoformat() if p.refunded_at else None,
        'createdAt': p.created_at.isoformat(),
    }


def receipt_data(p: Payment) -> dict:
    """Printable receipt content."""
    appt = p.appointment
    return {
        'receiptNumber': p.receipt_number,
        'issuedAt': timezone.localtime(p.created_at).strftime('%Y-%m-%d %H:%M'),
        'patient': {
            'name': p.patient.full_name,
            'patientCode': p.patient.patient_code,
            'phone': p.patient.phone,
        },
        'doctor': doctor_brief(appt.doctor) if appt else None,
        'appointment': {
            'date': appt.appointment_date.isoformat(),
            'tokenNumber': appt.token_number,
            'type': appt.type,
        } if appt else None,
        'amount': str(p.amount),
        'method': p.method,
        'status': p.status,
        'processedBy': p.processed_by.get_full_name() or p.processed_by.email,
    }
