import pytest
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework.throttling import ScopedRateThrottle

from clinic.models import AuditEvent

from .conftest import PASSWORD, client_for

pytestmark = pytest.mark.django_db

def test_healthz():
    r = APIClient().get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True, 'cache': True}

def test_validation_errors_use_error_envelope(patient):
    r = client_for(patient).post(reverse('appointments'), {'doctor': 'abc'}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert r.data['error']['code'] == 'invalid'
    assert 'startTime' in r.data['error']['message']

def test_auth_errors_use_error_envelope():
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Bearer not-a-jwt')
    r = client.get(reverse('users-me'))
    assert r.status_code == 401
    assert r.data['ok'] is False
    assert r.data['error']['message']

def test_legacy_token_scheme_is_not_accepted(patient):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Token abc123')
    assert client.get(reverse('users-me')).status_code == 401

def test_role_gate_message(patient):
    r = client_for(patient).get(reverse('users'))
    assert r.status_code == 403
    assert r.data['error']['message'] == 'You do not have permission to perform this action'

def test_audit_records_client_address(patient):
    APIClient().post(reverse('login'), {'email': patient.email, 'password': PASSWORD}, format='json',
                     HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1', HTTP_USER_AGENT='pytest')
    event = AuditEvent.objects.get(action='login')
    assert event.ip_address == '203.0.113.9'
    assert event.user_agent == 'pytest'

def test_login_is_throttled(patient, monkeypatch):
    monkeypatch.setitem(ScopedRateThrottle.THROTTLE_RATES, 'login', '2/min')
    client = APIClient()
    body = {'email': patient.email, 'password': 'wrong-password'}
    assert client.post(reverse('login'), body, format='json').status_code == 401
    assert client.post(reverse('login'), body, format='json').status_code == 401
    r = client.post(reverse('login'), body, format='json')
    assert r.status_code == 429
    assert r.data['error']['code'] == 'throttled'
    assert 'Retry-After' in r
