from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.pagination import paginate
from hms.permissions import ClinicianWrites
from hms.serializers.vitals import VitalSignsCreateSerializer, VitalSignsListQuerySerializer
from hms.services.vitals import format_vitals, list_vitals, record_vitals


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ClinicianWrites])
def patient_vitals(request, patient_id: int):
    """A patient's vital sign history, newest first, or a new reading."""
    if request.method == 'POST':
        s = VitalSignsCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vitals = record_vitals(patient_id, s.validated_data, user=request.user)
        return Response({'ok': True, 'data': format_vitals(vitals)}, status=status.HTTP_201_CREATED)

    q = VitalSignsListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response(paginate(list_vitals(patient_id), q.validated_data, format_vitals))
