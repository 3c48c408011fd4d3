"""
Patient registry endpoints.

Every staff member may look patients up; registration, edits and
deactivation are limited to receptionists and administrators.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.config import get_clinic_config
from hms.pagination import paginate
from hms.permissions import ReceptionWrites
from hms.serializers.patient import PatientCreateSerializer, PatientUpdateSerializer, PatientListQuerySerializer
from hms.services.patients import (
    deactivate_patient,
    format_patient,
    get_patient,
    register_patient,
    search_patients,
    update_patient,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReceptionWrites])
def patients(request):
    if request.method == 'POST':
        s = PatientCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = register_patient(s.validated_data, user=request.user, config=get_clinic_config())
        return Response({'ok': True, 'data': format_patient(patient)}, status=status.HTTP_201_CREATED)

    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = search_patients(q=q.validated_data.get('q'), active=q.validated_data.get('active'))
    return Response(paginate(qs, q.validated_data, format_patient))


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, ReceptionWrites])
def patient_detail(request, patient_id: int):
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_patient(get_patient(patient_id))})

    if request.method == 'DELETE':
        patient = deactivate_patient(patient_id, user=request.user)
        return Response({'ok': True, 'data': format_patient(patient)})

    s = PatientUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    patient = update_patient(patient_id, s.validated_data, user=request.user)
    return Response({'ok': True, 'data': format_patient(patient)})
