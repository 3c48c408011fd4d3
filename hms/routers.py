"""
URL mappings for the clinic API.

Every API path lives under ``api/`` and deliberately omits the trailing
slash.  Operational endpoints (``healthz``, ``metrics``) sit at the root.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, me_view, refresh_view
from .views import (
    appointments, dashboard, health, notifications, patients, payments, prescriptions, staff, vitals,
)

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    path('', include('django_prometheus.urls')),

    # auth
    path('api/auth/login', login_view, name='login'),
    path('api/auth/refresh', refresh_view, name='token_refresh'),
    path('api/auth/logout', logout_view, name='logout'),
    path('api/auth/me', me_view, name='me'),

    # patients
    path('api/patients', patients.patients, name='patients'),
    path('api/patients/<int:patient_id>', patients.patient_detail, name='patient_detail'),
    path('api/patients/<int:patient_id>/vitals', vitals.patient_vitals, name='patient_vitals'),

    # appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail, name='appointment_detail'),

    # prescriptions
    path('api/prescriptions', prescriptions.prescriptions, name='prescriptions'),
    path('api/prescriptions/<int:prescription_id>', prescriptions.prescription_detail,
         name='prescription_detail'),

    # payments
    path('api/payments', payments.payments, name='payments'),
    path('api/payments/<int:payment_id>', payments.payment_detail, name='payment_detail'),
    path('api/payments/<int:payment_id>/receipt', payments.payment_receipt, name='payment_receipt'),
    path('api/payments/<int:payment_id>/refund', payments.payment_refund, name='payment_refund'),
    path('api/payments/<int:payment_id>/complete', payments.payment_complete, name='payment_complete'),

    # staff and doctor schedules
    path('api/staff', staff.staff, name='staff'),
    path('api/staff/<int:user_id>', staff.staff_detail, name='staff_detail'),
    path('api/doctors', staff.doctors, name='doctors'),
    path('api/doctors/<int:doctor_id>/availability', staff.doctor_availability, name='doctor_availability'),
    path('api/doctors/<int:doctor_id>/leaves', staff.doctor_leaves, name='doctor_leaves'),
    path('api/doctors/<int:doctor_id>/leaves/<int:leave_id>', staff.doctor_leave_detail,
         name='doctor_leave_detail'),

    # notifications
    path('api/notifications', notifications.notifications, name='notifications'),
    path('api/notifications/unread-count', notifications.unread_count, name='notifications_unread_count'),
    path('api/notifications/read-all', notifications.mark_all_read, name='notifications_read_all'),
    path('api/notifications/<int:notification_id>/read', notifications.mark_read, name='notification_read'),

    # dashboard
    path('api/dashboard/stats', dashboard.dashboard_stats, name='dashboard_stats'),
]
