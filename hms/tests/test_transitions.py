from datetime import time

import pytest

from hms.exceptions import InvalidTransition, NotFound
from hms.models import Appointment
from hms.services.appointments import ALLOWED_TRANSITIONS, can_transition, update_appointment
from hms.services.scheduling import book_appointment

pytestmark = pytest.mark.django_db

STATUSES = [s for s, _ in Appointment.STATUS_CHOICES]
ALLOWED = {
    ('scheduled', 'confirmed'),
    ('scheduled', 'completed'),
    ('scheduled', 'cancelled'),
    ('confirmed', 'completed'),
    ('confirmed', 'cancelled'),
}


@pytest.mark.parametrize('current', STATUSES)
@pytest.mark.parametrize('new', STATUSES)
def test_transition_table(current, new):
    assert can_transition(current, new) == ((current, new) in ALLOWED)


def test_terminal_states_have_no_exits():
    assert ALLOWED_TRANSITIONS['completed'] == set()
    assert ALLOWED_TRANSITIONS['cancelled'] == set()


@pytest.fixture
def appointment(patient, doctor, monday, config, publisher):
    return book_appointment(patient_id=patient.id, doctor_id=doctor.id, date=monday, time=time(11, 0),
                            config=config)


def test_confirm_then_complete_records_history(appointment, receptionist, doctor):
    update_appointment(appointment.id, user=receptionist, status='confirmed')
    appt = update_appointment(appointment.id, user=doctor, status='completed', reason='seen')
    assert appt.status == 'completed'
    history = list(appt.transitions.values_list('from_status', 'to_status'))
    assert history == [('', 'scheduled'), ('scheduled', 'confirmed'), ('confirmed', 'completed')]


def test_rejected_transition_carries_both_states(appointment, receptionist):
    update_appointment(appointment.id, user=receptionist, status='cancelled')
    with pytest.raises(InvalidTransition) as exc:
        update_appointment(appointment.id, user=receptionist, status='confirmed')
    assert exc.value.context == {'current': 'cancelled', 'requested': 'confirmed'}
    appointment.refresh_from_db()
    assert appointment.status == 'cancelled'
    assert appointment.transitions.count() == 2


def test_same_state_is_not_a_transition(appointment, receptionist):
    with pytest.raises(InvalidTransition):
        update_appointment(appointment.id, user=receptionist, status='scheduled')


def test_notes_can_change_without_status(appointment, receptionist):
    appt = update_appointment(appointment.id, user=receptionist, notes='bring reports')
    assert appt.notes == 'bring reports'
    assert appt.status == 'scheduled'
    assert appt.transitions.count() == 1


def test_status_change_is_published(appointment, receptionist, publisher, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        update_appointment(appointment.id, user=receptionist, status='confirmed', publisher=publisher)
    assert 'appointment.status_changed' in publisher.names()


def test_missing_appointment(receptionist):
    with pytest.raises(NotFound):
        update_appointment(424242, user=receptionist, status='confirmed')
