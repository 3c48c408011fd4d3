from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from hms.config import ClinicConfig
from hms.models import Appointment, Patient, Payment, User


def clinic_stats(config: ClinicConfig) -> dict:
    """Today's figures for the admin dashboard."""
    today = timezone.localdate(timezone=config.tz)
    by_status = {s: 0 for s, _ in Appointment.STATUS_CHOICES}
    rows = (
        Appointment.objects.filter(appointment_date=today)
        .values('status')
        .annotate(n=Count('id'))
    )
    for row in rows:
        by_status[row['status']] = row['n']

    revenue = (
        Payment.objects.filter(status=Payment.STATUS_COMPLETED, created_at__date=today)
        .aggregate(total=Sum('amount'))['total']
    ) or Decimal('0')

    return {
        'date': today.isoformat(),
        'appointments': {'total': sum(by_status.values()), 'byStatus': by_status},
        'revenue': str(revenue),
        'activePatients': Patient.objects.filter(is_active=True).count(),
        'activeDoctors': User.objects.filter(role=User.ROLE_DOCTOR, is_active=True).count(),
    }
