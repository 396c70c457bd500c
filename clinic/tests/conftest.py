import os
from datetime import datetime, time, timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import Appointment, User

# realtime tests mint JWTs (a DB write) inside async scenarios
os.environ.setdefault('DJANGO_ALLOW_ASYNC_UNSAFE', 'true')

PASSWORD = 'P@ssw0rd123'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttles and dashboards live in the default cache
    cache.clear()
    yield
    cache.clear()


def make_user(email, role='patient', password=PASSWORD, **extra):
    defaults = {'first_name': email.split('@')[0].title(), 'last_name': 'Tester'}
    if role == 'doctor':
        defaults.update(specialization='Cardiology', license_number='LIC-1')
    defaults.update(extra)
    return User.objects.create_user(username=email, email=email, password=password, role=role, **defaults)


def client_for(user):
    c = APIClient()
    c.credentials(HTTP_AUTHORIZATION=f'Bearer {RefreshToken.for_user(user).access_token}')
    return c


def book(patient, doctor, start, minutes=30, **extra):
    extra.setdefault('reason', 'Check-up')
    return Appointment.objects.create(
        patient=patient, doctor=doctor, start_time=start, end_time=start + timedelta(minutes=minutes), **extra
    )


def tomorrow_at(hour, minute=0):
    day = timezone.localtime(timezone.now()).date() + timedelta(days=1)
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


@pytest.fixture
def admin(db):
    return make_user('admin@example.com', role='admin')


@pytest.fixture
def doctor(db):
    return make_user('doctor@example.com', role='doctor', first_name='John', last_name='Smith')


@pytest.fixture
def other_doctor(db):
    return make_user('doctor2@example.com', role='doctor', first_name='Ana', last_name='Lopez',
                     specialization='Dermatology')


@pytest.fixture
def patient(db):
    return make_user('patient@example.com', first_name='Jane', last_name='Doe')


@pytest.fixture
def other_patient(db):
    return make_user('patient2@example.com', first_name='Tom', last_name='Ray')
