"""
Integration tests for the clinic API.

These exercise authentication, role based access, the structured error
body and the main booking, prescribing and billing flows through
Django REST framework's APIClient.
"""
from django.apps import apps
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from hms.models import Appointment, Notification, Patient, Payment, User
from hms.services.notifications import MemoryPublisher

from .conftest import PASSWORD, client_for, make_user, next_weekday


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        app = apps.get_app_config('hms')
        original = app.publisher
        app.publisher = self.publisher = MemoryPublisher()
        self.addCleanup(setattr, app, 'publisher', original)

        self.doctor = make_user(User.ROLE_DOCTOR, specialization='Cardiology')
        self.receptionist = make_user(User.ROLE_RECEPTIONIST)
        self.admin = make_user(User.ROLE_ADMIN)
        self.patient = Patient.objects.create(
            patient_code='P-20240101-ABCDEF', first_name='Ravi', last_name='Iyer',
            date_of_birth='1979-09-01', gender='male', phone='+91 99000 11111',
        )
        self.monday = next_weekday(1)

        self.reception = client_for(self.receptionist)
        self.doc = client_for(self.doctor)
        self.admin_api = client_for(self.admin)

    def book(self, client=None, **overrides):
        body = {
            'patientId': self.patient.id,
            'doctorId': self.doctor.id,
            'date': self.monday.isoformat(),
            'time': '10:00',
        }
        body.update(overrides)
        return (client or self.reception).post(reverse('appointments'), body, format='json')

    # ------------------------------------------------------------------
    # auth
    # ------------------------------------------------------------------
    def test_login_returns_tokens_with_role(self):
        client = APIClient()
        r = client.post(reverse('login'), {'email': 'DOCTOR@clinic.test', 'password': PASSWORD}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data['access'] and r.data['refresh'])
        self.assertEqual(r.data['user']['role'], 'doctor')

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['access']}")
        me = client.get(reverse('me'))
        self.assertEqual(me.data['data']['email'], 'doctor@clinic.test')

    def test_wrong_password_is_rejected(self):
        r = APIClient().post(reverse('login'), {'email': 'doctor@clinic.test', 'password': 'nope'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['ok'], False)
        self.assertEqual(r.data['code'], 'invalid_credentials')

    def test_requests_without_token_are_rejected(self):
        r = APIClient().get(reverse('patients'))
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['code'], 'not_authenticated')

    def test_token_stops_working_after_role_change(self):
        User.objects.filter(pk=self.receptionist.pk).update(role=User.ROLE_ADMIN)
        r = self.reception.get(reverse('patients'))
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_and_logout(self):
        client = APIClient()
        login = client.post(reverse('login'), {'email': 'admin@clinic.test', 'password': PASSWORD}, format='json')
        refreshed = client.post(reverse('token_refresh'), {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(refreshed.status_code, status.HTTP_200_OK)
        self.assertIn('access', refreshed.data)

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refreshed.data['access']}")
        out = client.post(reverse('logout'), {'refresh': refreshed.data['refresh']}, format='json')
        self.assertEqual(out.status_code, status.HTTP_200_OK)
        again = APIClient().post(reverse('token_refresh'), {'refresh': refreshed.data['refresh']}, format='json')
        self.assertEqual(again.status_code, status.HTTP_401_UNAUTHORIZED)

    # ------------------------------------------------------------------
    # patients
    # ------------------------------------------------------------------
    def test_register_and_list_patients(self):
        r = self.reception.post(reverse('patients'), {
            'firstName': 'Lata', 'lastName': 'Pillai', 'dateOfBirth': '1995-05-05',
            'gender': 'female', 'phone': '+91 90000 22222',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data['data']['patientCode'].startswith('P-'))

        listing = self.doc.get(reverse('patients'), {'q': 'Pillai'})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(listing.data['pagination']['total'], 1)
        self.assertEqual(listing.data['data'][0]['lastName'], 'Pillai')

    def test_doctor_cannot_register_patients(self):
        r = self.doc.post(reverse('patients'), {'firstName': 'X'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(r.data['code'], 'permission_denied')

    def test_patient_code_is_immutable_over_http(self):
        url = reverse('patient_detail', args=[self.patient.id])
        r = self.reception.patch(url, {'patientCode': 'P-NEW', 'firstName': 'Ravindra'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['code'], 'validation_error')
        self.assertIn('patientCode', r.data['fieldErrors'])

        ok = self.reception.patch(url, {'firstName': 'Ravindra'}, format='json')
        self.assertEqual(ok.data['data']['patientCode'], 'P-20240101-ABCDEF')

    def test_unknown_patient_is_404(self):
        r = self.doc.get(reverse('patient_detail', args=[999999]))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(r.data['code'], 'not_found')

    # ------------------------------------------------------------------
    # appointments
    # ------------------------------------------------------------------
    def test_booking_flow(self):
        with self.captureOnCommitCallbacks(execute=True):
            first = self.book()
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['data']['tokenNumber'], 1)
        self.assertEqual(self.book(time='10:15').data['data']['tokenNumber'], 2)
        self.assertEqual(self.publisher.names(), ['appointment.created'])

        url = reverse('appointment_detail', args=[first.data['data']['id']])
        r = self.doc.patch(url, {'status': 'completed'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([h['to'] for h in r.data['data']['transitionHistory']], ['scheduled', 'completed'])

        bad = self.doc.patch(url, {'status': 'cancelled'}, format='json')
        self.assertEqual(bad.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(bad.data['code'], 'invalid_transition')
        self.assertEqual(bad.data['current'], 'completed')
        self.assertEqual(bad.data['requested'], 'cancelled')

        listing = self.doc.get(reverse('appointments'), {'doctorId': self.doctor.id, 'date': self.monday.isoformat()})
        self.assertEqual([a['tokenNumber'] for a in listing.data['data']], [1, 2])

    def test_booking_outside_hours(self):
        r = self.book(time='20:00')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data['code'], 'doctor_unavailable')

    def test_booking_requires_reception_role(self):
        r = self.book(client=self.doc)
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Appointment.objects.exists())

    # ------------------------------------------------------------------
    # prescriptions
    # ------------------------------------------------------------------
    def test_doctor_writes_prescription(self):
        body = {
            'patientId': self.patient.id,
            'medications': [
                {'name': 'Metformin', 'dosage': '500mg', 'frequency': 'twice daily', 'quantity': 60},
                {'name': 'Atorvastatin', 'dosage': '10mg', 'frequency': 'nightly'},
            ],
            'instructions': 'After food',
        }
        r = self.doc.post(reverse('prescriptions'), body, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data['data']['doctorId'], self.doctor.id)
        self.assertEqual([m['name'] for m in r.data['data']['medications']], ['Metformin', 'Atorvastatin'])

        denied = self.reception.post(reverse('prescriptions'), body, format='json')
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        missing_doctor = self.admin_api.post(reverse('prescriptions'), body, format='json')
        self.assertEqual(missing_doctor.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('doctorId', missing_doctor.data['fieldErrors'])

    # ------------------------------------------------------------------
    # payments
    # ------------------------------------------------------------------
    def test_negative_amount(self):
        r = self.reception.post(reverse('payments'), {
            'patientId': self.patient.id, 'amount': -5, 'method': 'cash',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('amount', r.data['fieldErrors'])
        self.assertFalse(Payment.objects.exists())

    def test_payment_receipt_and_refund(self):
        booked = self.book().data['data']
        r = self.reception.post(reverse('payments'), {
            'patientId': self.patient.id, 'appointmentId': booked['id'], 'amount': '300.00', 'method': 'card',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        payment = r.data['data']
        self.assertEqual(payment['status'], 'completed')
        self.assertEqual(payment['appointment']['doctor']['id'], self.doctor.id)

        receipt = self.doc.get(reverse('payment_receipt', args=[payment['id']]))
        self.assertEqual(receipt.data['data']['receiptNumber'], payment['receiptNumber'])
        self.assertEqual(receipt.data['data']['appointment']['tokenNumber'], 1)

        refund = self.reception.post(reverse('payment_refund', args=[payment['id']]), {'reason': 'x'}, format='json')
        self.assertEqual(refund.data['data']['status'], 'refunded')
        twice = self.reception.post(reverse('payment_refund', args=[payment['id']]), {}, format='json')
        self.assertEqual(twice.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(twice.data['code'], 'invalid_payment_state')

    # ------------------------------------------------------------------
    # staff & schedules
    # ------------------------------------------------------------------
    def test_admin_manages_staff(self):
        r = self.admin_api.post(reverse('staff'), {
            'email': 'New.Doc@clinic.test', 'password': 'Very$ecret-2024', 'firstName': 'Neha',
            'lastName': 'Joshi', 'role': 'doctor', 'specialization': 'Dermatology',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data['data']['email'], 'new.doc@clinic.test')

        doctors = self.reception.get(reverse('doctors'))
        self.assertEqual(len(doctors.data['data']), 2)

        url = reverse('staff_detail', args=[r.data['data']['id']])
        role = self.admin_api.patch(url, {'role': 'admin'}, format='json')
        self.assertEqual(role.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('role', role.data['fieldErrors'])

        gone = self.admin_api.delete(url)
        self.assertEqual(gone.data['data']['isActive'], False)
        self.assertEqual(len(self.reception.get(reverse('doctors')).data['data']), 1)

        self.assertEqual(self.reception.get(reverse('staff')).status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_cannot_deactivate_self_via_update(self):
        url = reverse('staff_detail', args=[self.admin.id])
        r = self.admin_api.patch(url, {'isActive': False}, format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

        renamed = self.admin_api.patch(url, {'firstName': 'Kiran', 'isActive': True}, format='json')
        self.assertEqual(renamed.status_code, status.HTTP_200_OK)
        self.assertEqual(renamed.data['data']['firstName'], 'Kiran')

    def test_doctor_edits_own_schedule_only(self):
        url = reverse('doctor_availability', args=[self.doctor.id])
        body = {'windows': [{'dayOfWeek': 1, 'startTime': '16:00', 'endTime': '20:00'}]}
        r = self.doc.put(url, body, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['data']['windows'][0]['startTime'], '16:00')
        self.assertEqual(self.book(time='19:00').status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.book(time='10:00').status_code, status.HTTP_409_CONFLICT)

        other = make_user(User.ROLE_DOCTOR, email='other@clinic.test')
        denied = client_for(other).put(url, body, format='json')
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

    def test_leave_blocks_booking(self):
        url = reverse('doctor_leaves', args=[self.doctor.id])
        r = self.doc.post(url, {'date': self.monday.isoformat(), 'reason': 'training'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(self.book().data['code'], 'doctor_unavailable')

        self.admin_api.delete(reverse('doctor_leave_detail', args=[self.doctor.id, r.data['data']['id']]))
        self.assertEqual(self.book().status_code, status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # notifications, dashboard, health
    # ------------------------------------------------------------------
    def test_notifications_for_doctor(self):
        self.book()
        self.book(time='11:00')
        count = self.doc.get(reverse('notifications_unread_count'))
        self.assertEqual(count.data['data']['unread'], 2)

        listing = self.doc.get(reverse('notifications'))
        first = listing.data['data'][0]
        self.doc.post(reverse('notification_read', args=[first['id']]), {}, format='json')
        self.assertEqual(self.doc.get(reverse('notifications_unread_count')).data['data']['unread'], 1)

        self.doc.post(reverse('notifications_read_all'), {}, format='json')
        self.assertFalse(Notification.objects.filter(recipient=self.doctor, is_read=False).exists())
        # someone else's notification is invisible
        other = self.reception.post(reverse('notification_read', args=[first['id']]), {}, format='json')
        self.assertEqual(other.status_code, status.HTTP_404_NOT_FOUND)

    def test_dashboard_is_admin_only(self):
        r = self.admin_api.get(reverse('dashboard_stats'))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['data']['activePatients'], 1)
        self.assertIn('scheduled', r.data['data']['appointments']['byStatus'])
        self.assertEqual(self.doc.get(reverse('dashboard_stats')).status_code, status.HTTP_403_FORBIDDEN)

    def test_healthz(self):
        r = self.client.get(reverse('healthz'))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['ok'], True)
