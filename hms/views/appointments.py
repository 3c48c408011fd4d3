"""
Appointment endpoints: booking, listing and status updates.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.config import get_clinic_config
from hms.pagination import paginate
from hms.permissions import IsStaffRole, ReceptionWrites
from hms.serializers.appointment import (
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    AppointmentUpdateSerializer,
)
from hms.services.appointments import format_appointment, get_appointment, list_appointments, update_appointment
from hms.services.notifications import get_event_publisher
from hms.services.scheduling import book_appointment


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReceptionWrites])
def appointments(request):
    """List appointments or book a new one.

    A booking picks the next token number for the doctor's day; the
    response carries it as ``tokenNumber``.
    """
    if request.method == 'POST':
        s = AppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        appt = book_appointment(
            patient_id=vd['patientId'],
            doctor_id=vd['doctorId'],
            date=vd.get('date'),
            time=vd.get('time'),
            when=vd.get('datetime'),
            type=vd['type'],
            notes=vd.get('notes', ''),
            booked_by=request.user,
            config=get_clinic_config(),
            publisher=get_event_publisher(),
        )
        return Response({'ok': True, 'data': format_appointment(get_appointment(appt.id))},
                        status=status.HTTP_201_CREATED)

    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = list_appointments(
        doctor_id=vd.get('doctorId'),
        patient_id=vd.get('patientId'),
        date=vd.get('date'),
        status=vd.get('status'),
    )
    return Response(paginate(qs, vd, format_appointment))


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsStaffRole])
def appointment_detail(request, appointment_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_appointment(get_appointment(appointment_id), with_history=True)})

    s = AppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appt = update_appointment(
        appointment_id,
        user=request.user,
        status=vd.get('status'),
        notes=vd.get('notes'),
        reason=vd.get('reason', ''),
        publisher=get_event_publisher(),
    )
    return Response({'ok': True, 'data': format_appointment(appt, with_history=True)})
