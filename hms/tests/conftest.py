from datetime import date, timedelta

import pytest
from django.apps import apps
from django.core.cache import cache
from rest_framework.test import APIClient

from hms.auth_views import issue_tokens
from hms.config import day_of_week, get_clinic_config
from hms.models import Patient, User
from hms.services.notifications import MemoryPublisher

PASSWORD = 'Clinic@12345'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttling counters and the doctor list live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def publisher(monkeypatch):
    pub = MemoryPublisher()
    monkeypatch.setattr(apps.get_app_config('hms'), 'publisher', pub)
    return pub


@pytest.fixture
def config():
    return get_clinic_config()


def next_weekday(dow: int, *, weeks_ahead: int = 1) -> date:
    """First date at least ``weeks_ahead`` weeks from today falling on Sunday-based ``dow``."""
    d = date.today() + timedelta(weeks=weeks_ahead)
    while day_of_week(d) != dow:
        d += timedelta(days=1)
    return d


@pytest.fixture
def monday():
    return next_weekday(1)


def make_user(role, email=None, **extra):
    email = email or f'{role}@clinic.test'
    return User.objects.create_user(
        username=email, email=email, password=PASSWORD, role=role,
        first_name=extra.pop('first_name', role.title()), last_name=extra.pop('last_name', 'Test'), **extra,
    )


@pytest.fixture
def doctor(db):
    return make_user(User.ROLE_DOCTOR, specialization='General')


@pytest.fixture
def receptionist(db):
    return make_user(User.ROLE_RECEPTIONIST)


@pytest.fixture
def admin_user(db):
    return make_user(User.ROLE_ADMIN)


def make_patient(phone='+91 98000 00001', **extra):
    fields = dict(
        patient_code=f'P-TEST-{phone[-4:]}', first_name='Anil', last_name='Verma',
        date_of_birth=date(1985, 4, 12), gender='male', phone=phone,
    )
    fields.update(extra)
    return Patient.objects.create(**fields)


@pytest.fixture
def patient(db):
    return make_patient()


def client_for(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_tokens(user)['access']}")
    return client


@pytest.fixture
def reception_client(receptionist):
    return client_for(receptionist)


@pytest.fixture
def doctor_client(doctor):
    return client_for(doctor)


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)
