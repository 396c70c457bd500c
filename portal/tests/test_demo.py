from datetime import datetime, timezone

from portal import demo
from portal.config import PortalConfig


def test_authenticate_demo_strips_password():
    payload = demo.authenticate_demo("patient@example.com", "password123")
    assert payload["user"] == {"id": "3", "firstName": "Patient", "lastName": "Johnson",
                               "email": "patient@example.com", "role": "patient"}
    assert payload["message"] == "Login successful in demo mode"
    assert demo.is_demo_token(payload["token"])


def test_authenticate_demo_rejects_bad_credentials():
    assert demo.authenticate_demo("patient@example.com", "wrong") is None
    assert demo.authenticate_demo("nobody@example.com", "password123") is None
    assert demo.authenticate_demo(None, None) is None


def test_register_demo_forces_patient_role():
    payload = demo.register_demo({"firstName": "Ada", "lastName": "L", "email": "ada@example.com", "role": "doctor"})
    assert payload["user"]["role"] == "patient"
    assert payload["user"]["id"].startswith("demo-")
    assert payload["user"]["email"] == "ada@example.com"


def test_demo_tokens():
    assert demo.is_demo_token(demo.demo_token())
    assert not demo.is_demo_token("eyJhbGciOi")
    assert not demo.is_demo_token(None)


def test_demo_mode_from_config_wins(monkeypatch):
    monkeypatch.setenv("PORTAL_DEMO_MODE", "1")
    assert demo.is_demo_mode(PortalConfig(demo_mode=False)) is False
    assert demo.is_demo_mode(PortalConfig(demo_mode=True)) is True


def test_demo_mode_from_env(monkeypatch):
    monkeypatch.setenv("PORTAL_DEMO_MODE", "true")
    assert demo.is_demo_mode() is True
    monkeypatch.setenv("PORTAL_DEMO_MODE", "off")
    assert demo.is_demo_mode() is False
    monkeypatch.delenv("PORTAL_DEMO_MODE")
    assert demo.is_demo_mode() is False


def test_demo_fixtures_are_relative_to_now():
    now = datetime(2030, 1, 15, 12, tzinfo=timezone.utc)
    upcoming = demo.demo_upcoming_appointments(now)
    assert [a["id"] for a in upcoming] == ["apt-1", "apt-2", "apt-3", "apt-4"]
    assert upcoming[0]["date"] == "2030-01-15T12:00:00Z"
    assert upcoming[3]["date"] == "2030-01-15T15:00:00Z"
    recent = demo.demo_recent_patients(now)
    assert recent[0]["lastVisit"] == "2030-01-08T12:00:00Z"
