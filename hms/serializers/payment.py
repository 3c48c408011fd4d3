from rest_framework import serializers

from hms.models import Payment
from hms.serializers.base import StrictSerializer, CleanCharField, PageQuerySerializer


class PaymentCreateSerializer(StrictSerializer):
    rejected_fields = {'receiptNumber': 'Receipt numbers are generated by the system.'}

    patientId = serializers.IntegerField(min_value=1)
    appointmentId = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    method = serializers.ChoiceField(choices=[c for c, _ in Payment.METHOD_CHOICES])
    status = serializers.ChoiceField(
        choices=[Payment.STATUS_PENDING, Payment.STATUS_COMPLETED], default=Payment.STATUS_COMPLETED
    )
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000)


class PaymentActionSerializer(StrictSerializer):
    reason = CleanCharField(required=False, allow_blank=True, max_length=255)


class PaymentListQuerySerializer(PageQuerySerializer):
    patientId = serializers.IntegerField(required=False, min_value=1)
    appointmentId = serializers.IntegerField(required=False, min_value=1)
    status = serializers.ChoiceField(choices=[c for c, _ in Payment.STATUS_CHOICES], required=False)
    method = serializers.ChoiceField(choices=[c for c, _ in Payment.METHOD_CHOICES], required=False)
    q = serializers.CharField(required=False, max_length=64)
