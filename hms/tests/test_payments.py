import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from django.db import connection

from hms.exceptions import InvalidRequest, PaymentStateError
from hms.models import Payment
from hms.serializers.payment import PaymentCreateSerializer
from hms.services.payments import (
    complete_payment,
    generate_receipt_number,
    issue_payment,
    receipt_data,
    refund_payment,
)

from .conftest import make_patient

pytestmark = pytest.mark.django_db


def test_negative_amount_is_a_field_error():
    s = PaymentCreateSerializer(data={'patientId': 1, 'amount': -5, 'method': 'cash'})
    assert not s.is_valid()
    assert 'amount' in s.errors


def test_receipt_number_format(config):
    number = generate_receipt_number(config)
    assert number.startswith('RCP')
    assert len(number) == len('RCP') + 8 + 10
    assert number[3:11].isdigit()


def test_receipt_numbers_are_distinct(config):
    numbers = {generate_receipt_number(config) for _ in range(10000)}
    assert len(numbers) == 10000


def test_issue_defaults_to_completed(patient, receptionist, config, publisher):
    p = issue_payment(user=receptionist, patient_id=patient.id, amount=Decimal('250.00'), method='cash',
                      config=config)
    assert p.status == Payment.STATUS_COMPLETED
    assert p.receipt_number.startswith('RCP')
    data = receipt_data(p)
    assert data['patient']['patientCode'] == patient.patient_code
    assert data['amount'] == '250.00'


def test_receipt_collision_draws_a_new_number(patient, receptionist, config, publisher, monkeypatch):
    from hms.services import payments
    taken = issue_payment(user=receptionist, patient_id=patient.id, amount=Decimal('10'), method='cash',
                          config=config).receipt_number
    drawn = iter([taken, 'RCP20990101FFFFFFFFFF'])
    monkeypatch.setattr(payments, 'generate_receipt_number', lambda cfg: next(drawn))
    p = issue_payment(user=receptionist, patient_id=patient.id, amount=Decimal('10'), method='card', config=config)
    assert p.receipt_number == 'RCP20990101FFFFFFFFFF'


@pytest.mark.django_db(transaction=True)
def test_parallel_issues_get_distinct_receipts(patient, receptionist, config, monkeypatch, caplog):
    from hms.services import payments
    lock = threading.Lock()
    draws = itertools.count()

    def draw(cfg):
        with lock:
            n = next(draws)
        # the first two draws collide
        return 'RCP20990101AAAAAAAAAA' if n < 2 else f'RCP20990101{n:010X}'

    monkeypatch.setattr(payments, 'generate_receipt_number', draw)

    def pay(i):
        try:
            return issue_payment(user=receptionist, patient_id=patient.id, amount=Decimal(i + 1),
                                 method='cash', config=config).receipt_number
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=6) as pool:
        receipts = list(pool.map(pay, range(30)))

    assert len(set(receipts)) == 30
    assert 'RCP20990101AAAAAAAAAA' in receipts
    assert Payment.objects.count() == 30
    assert 'receipt number collision on RCP20990101AAAAAAAAAA' in caplog.text


def test_appointment_must_belong_to_patient(patient, doctor, receptionist, monday, config, publisher):
    from datetime import time
    from hms.services.scheduling import book_appointment
    other = make_patient(phone='+91 98000 00042')
    appt = book_appointment(patient_id=other.id, doctor_id=doctor.id, date=monday, time=time(10, 0), config=config)
    with pytest.raises(InvalidRequest):
        issue_payment(user=receptionist, patient_id=patient.id, appointment_id=appt.id, amount=Decimal('1'),
                      method='cash', config=config)


def test_refund_only_from_completed(patient, receptionist, config, publisher):
    p = issue_payment(user=receptionist, patient_id=patient.id, amount=Decimal('99.50'), method='card',
                      config=config)
    refunded = refund_payment(p.id, user=receptionist, reason='duplicate')
    assert refunded.status == Payment.STATUS_REFUNDED
    assert refunded.refunded_at is not None
    with pytest.raises(PaymentStateError):
        refund_payment(p.id, user=receptionist)


def test_pending_payment_is_completed_before_refund(patient, receptionist, config, publisher):
    p = issue_payment(user=receptionist, patient_id=patient.id, amount=Decimal('40'), method='insurance',
                      status=Payment.STATUS_PENDING, config=config)
    with pytest.raises(PaymentStateError) as exc:
        refund_payment(p.id, user=receptionist)
    assert exc.value.context == {'current': 'pending', 'requested': 'refunded'}
    assert complete_payment(p.id, user=receptionist).status == Payment.STATUS_COMPLETED
    assert refund_payment(p.id, user=receptionist).status == Payment.STATUS_REFUNDED
