from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient, APITestCase

from clinic.models import AuditEvent, User

from .conftest import PASSWORD, client_for, make_user

pytestmark = pytest.mark.django_db


def login(client, email, password=PASSWORD, **extra):
    return client.post(reverse('login'), {'email': email, 'password': password, **extra}, format='json')


def test_signup_creates_patient_and_returns_tokens():
    client = APIClient()
    r = client.post(reverse('signup'), {
        'firstName': 'Ada', 'lastName': 'Byron', 'email': 'Ada@Example.com',
        'password': PASSWORD, 'confirmPassword': PASSWORD,
    }, format='json')
    assert r.status_code == 201
    assert r.data['ok'] is True
    assert r.data['token'] and r.data['refreshToken']
    user = r.data['data']['user']
    assert user['email'] == 'ada@example.com'
    assert user['role'] == 'patient'
    assert User.objects.get(email='ada@example.com').check_password(PASSWORD)


def test_signup_strips_markup_from_names():
    r = APIClient().post(reverse('signup'), {
        'firstName': '<b>Ada</b>', 'lastName': '<i onclick="x()">Byron</i>', 'email': 'ada@example.com',
        'password': PASSWORD, 'confirmPassword': PASSWORD,
    }, format='json')
    assert r.status_code == 201
    user = User.objects.get(email='ada@example.com')
    assert (user.first_name, user.last_name) == ('Ada', 'Byron')
    assert r.data['data']['user']['firstName'] == 'Ada'


def test_signup_rejects_admin_role():
    r = APIClient().post(reverse('signup'), {
        'firstName': 'Eve', 'lastName': 'Admin', 'email': 'eve@example.com',
        'password': PASSWORD, 'confirmPassword': PASSWORD, 'role': 'admin',
    }, format='json')
    assert r.status_code == 400
    assert not User.objects.filter(email='eve@example.com').exists()


def test_signup_doctor_requires_license():
    r = APIClient().post(reverse('signup'), {
        'firstName': 'Doc', 'lastName': 'Who', 'email': 'who@example.com',
        'password': PASSWORD, 'confirmPassword': PASSWORD, 'role': 'doctor',
        'specialization': 'Cardiology',
    }, format='json')
    assert r.status_code == 400


def test_signup_password_mismatch():
    r = APIClient().post(reverse('signup'), {
        'firstName': 'Ada', 'lastName': 'Byron', 'email': 'ada@example.com',
        'password': PASSWORD, 'confirmPassword': PASSWORD + 'x',
    }, format='json')
    assert r.status_code == 400


def test_signup_duplicate_email(patient):
    r = APIClient().post(reverse('signup'), {
        'firstName': 'Jane', 'lastName': 'Again', 'email': patient.email,
        'password': PASSWORD, 'confirmPassword': PASSWORD,
    }, format='json')
    assert r.status_code == 400
    assert r.data['detail'] == 'Email already in use'


def test_login_returns_user_and_tokens(doctor):
    r = login(APIClient(), doctor.email)
    assert r.status_code == 200
    assert r.data['data']['user']['role'] == 'doctor'
    assert r.data['data']['user']['specialization'] == 'Cardiology'
    assert AuditEvent.objects.filter(user=doctor, action='login').exists()


def test_login_wrong_password_is_audited(patient):
    r = login(APIClient(), patient.email, password='not-the-password')
    assert r.status_code == 401
    assert r.data['detail'] == 'Incorrect email or password'
    event = AuditEvent.objects.get(action='failed_login')
    assert event.successful is False
    assert event.user == patient


def test_login_unknown_email():
    r = login(APIClient(), 'ghost@example.com')
    assert r.status_code == 401


def test_login_role_must_match_account(patient):
    r = login(APIClient(), patient.email, role='doctor')
    assert r.status_code == 403
    assert r.data['detail'] == 'This account is registered as a patient'


def test_login_role_cannot_escalate(patient):
    r = login(APIClient(), patient.email, role='admin')
    assert r.status_code == 403
    patient.refresh_from_db()
    assert patient.role == 'patient'


def test_inactive_user_cannot_login(patient):
    patient.is_active = False
    patient.save()
    assert login(APIClient(), patient.email).status_code == 401


def test_protected_endpoint_requires_token():
    r = APIClient().get(reverse('appointments'))
    assert r.status_code == 401


def test_refresh_accepts_refresh_token_alias(patient):
    r = login(APIClient(), patient.email)
    out = APIClient().post(reverse('token-refresh'), {'refreshToken': r.data['refreshToken']}, format='json')
    assert out.status_code == 200
    assert out.data['token']


def test_refresh_with_garbage_token():
    r = APIClient().post(reverse('token-refresh'), {'refresh': 'nope'}, format='json')
    assert r.status_code == 401


def test_logout_blacklists_refresh_token(patient):
    client = APIClient()
    tokens = login(client, patient.email).data
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['token']}")
    r = client.post(reverse('logout'), {'refreshToken': tokens['refreshToken']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1
    again = APIClient().post(reverse('token-refresh'), {'refresh': tokens['refreshToken']}, format='json')
    assert again.status_code == 401


def test_logout_get_blacklists_every_outstanding_token(patient):
    client = APIClient()
    login(client, patient.email)
    tokens = login(client, patient.email).data
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['token']}")
    r = client.get(reverse('logout'))
    assert r.status_code == 200
    assert r.data['blacklisted'] >= 2


class PasswordFlowTests(APITestCase):
    def setUp(self):
        self.user = make_user('reset@example.com')

    def test_update_password_requires_current(self):
        client = client_for(self.user)
        r = client.patch(reverse('update-password'), {
            'currentPassword': 'wrong-password', 'password': 'N3wPassw0rd', 'confirmPassword': 'N3wPassw0rd',
        }, format='json')
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.data['detail'], 'Your current password is wrong')

    def test_update_password_returns_fresh_token(self):
        client = client_for(self.user)
        r = client.patch(reverse('update-password'), {
            'currentPassword': PASSWORD, 'password': 'N3wPassw0rd', 'confirmPassword': 'N3wPassw0rd',
        }, format='json')
        self.assertEqual(r.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3wPassw0rd'))
        self.assertIsNotNone(self.user.password_changed_at)
        fresh = APIClient()
        fresh.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['token']}")
        self.assertEqual(fresh.get(reverse('users-me')).status_code, 200)

    def test_token_issued_before_password_change_is_rejected(self):
        client = client_for(self.user)
        self.user.password_changed_at = timezone.now() + timedelta(seconds=5)
        self.user.save(update_fields=['password_changed_at'])
        r = client.get(reverse('users-me'))
        self.assertEqual(r.status_code, 401)

    def test_forgot_then_reset_password(self):
        r = APIClient().post(reverse('forgot-password'), {'email': self.user.email}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['message'], 'Token sent to email!')
        raw = r.data['resetURL'].rsplit('/', 1)[-1]

        self.user.refresh_from_db()
        self.assertNotEqual(self.user.password_reset_token, raw)

        r = APIClient().post(reverse('reset-password', args=[raw]),
                             {'password': 'Fresh-Passw0rd', 'confirmPassword': 'Fresh-Passw0rd'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data['token'])
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Fresh-Passw0rd'))
        self.assertIsNone(self.user.password_reset_token)

        # tokens are single use
        r = APIClient().post(reverse('reset-password', args=[raw]), {'password': 'Other-Passw0rd'}, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['detail'], 'Token is invalid or has expired')

    def test_forgot_password_unknown_email(self):
        r = APIClient().post(reverse('forgot-password'), {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(r.status_code, 404)

    def test_expired_reset_token(self):
        raw = self.user.create_password_reset_token()
        self.user.password_reset_expires = timezone.now() - timedelta(minutes=1)
        self.user.save()
        r = APIClient().post(reverse('reset-password', args=[raw]), {'password': 'Fresh-Passw0rd'}, format='json')
        self.assertEqual(r.status_code, 400)
