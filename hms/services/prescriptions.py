import logging

from django.db import transaction
from rest_framework.exceptions import ValidationError

from hms.exceptions import InvalidRequest, NotFound
from hms.models import Appointment, Medication, Prescription, User
from hms.services.appointments import doctor_brief
from hms.services.audit import log_action
from hms.services.notifications import EventPublisher, notify
from hms.services.patients import get_patient, patient_brief

logger = logging.getLogger(__name__)


def _prescribing_doctor(user, doctor_id):
    # a doctor always prescribes as themselves; admins must name one
    if getattr(user, 'role', None) == User.ROLE_DOCTOR:
        if doctor_id and doctor_id != user.id:
            raise InvalidRequest('Doctors can only prescribe under their own name.', doctorId=doctor_id)
        return user
    if not doctor_id:
        raise ValidationError({'doctorId': ['This field is required.']})
    doctor = User.objects.filter(pk=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise NotFound('Doctor not found.', resource='doctor', id=doctor_id)
    return doctor


def create_prescription(*, user, patient_id, medications, doctor_id=None, appointment_id=None,
                        instructions='', notes='', publisher: EventPublisher | None = None) -> Prescription:
    patient = get_patient(patient_id)
    doctor = _prescribing_doctor(user, doctor_id)
    appointment = None
    if appointment_id:
        appointment = Appointment.objects.filter(pk=appointment_id).first()
        if appointment is None:
            raise NotFound('Appointment not found.', resource='appointment', id=appointment_id)
        if appointment.patient_id != patient.id or appointment.doctor_id != doctor.id:
            raise InvalidRequest('Appointment belongs to a different patient or doctor.',
                                 appointmentId=appointment_id)

    with transaction.atomic():
        rx = Prescription.objects.create(
            patient=patient, doctor=doctor, appointment=appointment,
            instructions=instructions or '', notes=notes or '',
        )
        Medication.objects.bulk_create([
            Medication(
                prescription=rx, position=i, name=m['name'], dosage=m['dosage'], frequency=m['frequency'],
                duration=m.get('duration', ''), quantity=m.get('quantity'),
            )
            for i, m in enumerate(medications)
        ])

    log_action(user=user, action='prescription.create', object_type='prescription', object_id=rx.id,
               detail={'patientId': patient.id, 'doctorId': doctor.id, 'medications': len(medications)})
    if doctor.id != getattr(user, 'id', None):
        notify([doctor], event='prescription.created', category='prescription', title='Prescription recorded',
               message=f'A prescription for {patient.full_name} was recorded under your name.',
               data={'prescriptionId': rx.id, 'patientId': patient.id}, publisher=publisher)
    return get_prescription(rx.id)


def get_prescription(prescription_id) -> Prescription:
    rx = (
        Prescription.objects.select_related('patient', 'doctor', 'appointment')
        .prefetch_related('medications')
        .filter(pk=prescription_id)
        .first()
    )
    if rx is None:
        raise NotFound('Prescription not found.', resource='prescription', id=prescription_id)
    return rx


def list_prescriptions(*, patient_id=None, doctor_id=None, appointment_id=None):
    qs = Prescription.objects.select_related('patient', 'doctor').prefetch_related('medications')
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    if appointment_id:
        qs = qs.filter(appointment_id=appointment_id)
    return qs.order_by('-created_at', '-id')


def format_prescription(rx: Prescription) -> dict:
    return {
        'id': rx.id,
        'patientId': rx.patient_id,
        'doctorId': rx.doctor_id,
        'appointmentId': rx.appointment_id,
        'patient': patient_brief(rx.patient),
        'doctor': doctor_brief(rx.doctor),
        'medications': [
            {
                'name': m.name,
                'dosage': m.dosage,
                'frequency': m.frequency,
                'duration': m.duration,
                'quantity': m.quantity,
            }
            for m in rx.medications.all()
        ],
        'instructions': rx.instructions,
        'notes': rx.notes,
        'isActive': rx.is_active,
        'createdAt': rx.created_at.isoformat(),
    }
