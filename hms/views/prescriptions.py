from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.pagination import paginate
from hms.permissions import DoctorWrites, IsStaffRole
from hms.serializers.prescription import PrescriptionCreateSerializer, PrescriptionListQuerySerializer
from hms.services.notifications import get_event_publisher
from hms.services.prescriptions import (
    create_prescription,
    format_prescription,
    get_prescription,
    list_prescriptions,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, DoctorWrites])
def prescriptions(request):
    """List prescriptions, or record one (doctors and administrators)."""
    if request.method == 'POST':
        s = PrescriptionCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        rx = create_prescription(
            user=request.user,
            patient_id=vd['patientId'],
            doctor_id=vd.get('doctorId'),
            appointment_id=vd.get('appointmentId'),
            medications=vd['medications'],
            instructions=vd.get('instructions', ''),
            notes=vd.get('notes', ''),
            publisher=get_event_publisher(),
        )
        return Response({'ok': True, 'data': format_prescription(rx)}, status=status.HTTP_201_CREATED)

    q = PrescriptionListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = list_prescriptions(
        patient_id=vd.get('patientId'),
        doctor_id=vd.get('doctorId'),
        appointment_id=vd.get('appointmentId'),
    )
    return Response(paginate(qs, vd, format_prescription))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def prescription_detail(request, prescription_id: int):
    return Response({'ok': True, 'data': format_prescription(get_prescription(prescription_id))})
