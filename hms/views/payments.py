"""
Payment endpoints.

Payments are issued with a generated receipt number and are never
edited afterwards; the only changes are ``pending -> completed`` and
``completed -> refunded``.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from hms.config import get_clinic_config
from hms.pagination import paginate
from hms.permissions import IsReceptionistOrAdmin, IsStaffRole, ReceptionWrites
from hms.serializers.payment import PaymentActionSerializer, PaymentCreateSerializer, PaymentListQuerySerializer
from hms.services.notifications import get_event_publisher
from hms.services.payments import (
    complete_payment,
    format_payment,
    get_payment,
    issue_payment,
    list_payments,
    receipt_data,
    refund_payment,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, ReceptionWrites])
def payments(request):
    if request.method == 'POST':
        s = PaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        payment = issue_payment(
            user=request.user,
            patient_id=vd['patientId'],
            appointment_id=vd.get('appointmentId'),
            amount=vd['amount'],
            method=vd['method'],
            status=vd['status'],
            notes=vd.get('notes', ''),
            config=get_clinic_config(),
            publisher=get_event_publisher(),
        )
        return Response({'ok': True, 'data': format_payment(payment)}, status=status.HTTP_201_CREATED)

    q = PaymentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = list_payments(
        patient_id=vd.get('patientId'),
        appointment_id=vd.get('appointmentId'),
        status=vd.get('status'),
        method=vd.get('method'),
        q=vd.get('q'),
    )
    return Response(paginate(qs, vd, format_payment))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def payment_detail(request, payment_id: int):
    return Response({'ok': True, 'data': format_payment(get_payment(payment_id))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def payment_receipt(request, payment_id: int):
    return Response({'ok': True, 'data': receipt_data(get_payment(payment_id))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsReceptionistOrAdmin])
def payment_refund(request, payment_id: int):
    s = PaymentActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = refund_payment(payment_id, user=request.user, reason=s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': format_payment(payment)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsReceptionistOrAdmin])
def payment_complete(request, payment_id: int):
    s = PaymentActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    payment = complete_payment(payment_id, user=request.user, reason=s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': format_payment(payment)})
