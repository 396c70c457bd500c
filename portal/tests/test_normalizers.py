from datetime import datetime, timezone

import pytest

from portal.normalizers import (
    derive_patients_from_appointments,
    entity_id,
    extract_appointments,
    extract_list,
    normalize_auth_payload,
    parse_datetime,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

APPOINTMENTS = [
    {"id": 1, "startTime": "2024-05-02T09:00:00Z", "type": "telehealth", "status": "confirmed",
     "reason": "Migraine", "patient": {"id": 7, "firstName": "Ana", "lastName": "Lima", "email": "ana@example.com"},
     "doctor": {"id": 3, "firstName": "Olivia", "lastName": "Hart"}},
    {"id": 2, "startTime": "2024-04-20T15:00:00Z", "type": "in-person", "status": "cancelled",
     "patient": {"id": 7, "firstName": "Ana", "lastName": "Lima"},
     "doctor": {"id": 4, "firstName": "Mateo", "lastName": "Garcia"}},
    {"id": 3, "date": "2024-05-03T10:00:00Z", "type": "in-person", "status": "in-progress",
     "patientId": "p-9", "patientName": "Bo Chen", "doctorName": "Dr. Raman"},
]


@pytest.mark.parametrize("payload", [
    APPOINTMENTS,
    {"data": APPOINTMENTS},
    {"appointments": APPOINTMENTS},
    {"data": {"appointments": APPOINTMENTS}},
])
def test_extract_appointments_accepts_every_envelope(payload):
    assert extract_appointments(payload) == APPOINTMENTS


@pytest.mark.parametrize("payload", [None, 42, "text", {}, {"data": None}, {"data": {"other": []}},
                                     {"appointments": "nope"}])
def test_extract_appointments_is_total(payload):
    assert extract_appointments(payload) == []


def test_extract_is_idempotent():
    once = extract_appointments({"data": {"appointments": APPOINTMENTS}})
    assert extract_appointments(once) == once


def test_extract_returns_a_copy():
    source = list(APPOINTMENTS)
    extract_appointments(source).append({"id": 99})
    assert len(source) == 3


def test_extract_list_with_other_keys():
    assert extract_list({"data": {"patients": [{"id": 1}]}}, "patients") == [{"id": 1}]
    assert extract_list({"data": {"patients": [{"id": 1}]}}, "records") == []


@pytest.mark.parametrize("payload", [None, {}, [], "token", 0])
def test_normalize_auth_payload_empty(payload):
    assert normalize_auth_payload(payload) == {"user": None, "token": None, "role": None}


def test_normalize_server_envelope():
    payload = {"ok": True, "token": "abc", "refreshToken": "r",
               "data": {"user": {"id": 1, "role": "doctor", "email": "d@example.com"}}}
    out = normalize_auth_payload(payload)
    assert out == {"user": payload["data"]["user"], "token": "abc", "role": "doctor"}


def test_normalize_demo_payload():
    payload = {"user": {"id": "3", "role": "patient"}, "token": "demo-jwt-token-1", "message": "ok"}
    out = normalize_auth_payload(payload)
    assert out["user"] == {"id": "3", "role": "patient"}
    assert out["token"] == "demo-jwt-token-1"
    assert out["role"] == "patient"


def test_normalize_bare_user_with_token():
    payload = {"id": 5, "role": "admin", "token": "t"}
    out = normalize_auth_payload(payload)
    assert out["user"] is payload
    assert out["token"] == "t"
    assert out["role"] == "admin"


def test_normalize_null_user_falls_back_to_top_level_role():
    out = normalize_auth_payload({"user": None, "token": "t", "role": "doctor"})
    assert out == {"user": None, "token": "t", "role": "doctor"}


def test_normalize_is_idempotent_on_user():
    payload = {"data": {"user": {"id": 1, "role": "patient", "token": "inner"}}}
    first = normalize_auth_payload(payload)
    assert first["token"] == "inner"
    again = normalize_auth_payload(first["user"])
    assert again["user"] == first["user"]
    assert again["role"] == first["role"]


def test_entity_id():
    assert entity_id({"_id": "abc"}) == "abc"
    assert entity_id({"id": 4, "_id": "x"}) == "4"
    assert entity_id(12) == "12"
    assert entity_id({}) is None
    assert entity_id(None) is None


def test_parse_datetime():
    assert parse_datetime("2024-05-02T09:00:00Z") == datetime(2024, 5, 2, 9, tzinfo=timezone.utc)
    assert parse_datetime("2024-05-02T09:00:00").tzinfo is not None
    assert parse_datetime("not a date") is None
    assert parse_datetime(None) is None


def test_derive_groups_by_patient():
    rows = derive_patients_from_appointments(APPOINTMENTS, now=NOW)
    assert len(rows) == 2
    ana = next(r for r in rows if r["id"] == "7")
    assert ana["name"] == "Ana Lima"
    assert ana["appointmentCount"] == 2
    assert ana["telehealthCount"] == 1
    assert ana["inPersonCount"] == 1
    assert ana["careTeam"] == ["Olivia Hart", "Mateo Garcia"]
    assert ana["lastVisit"] == "2024-04-20T15:00:00+00:00"
    assert ana["nextVisit"] == "2024-05-02T09:00:00+00:00"
    assert ana["riskLevel"] == "Medium"
    assert ana["gender"] == "Unknown"
    assert ana["condition"] == "Migraine"

    bo = next(r for r in rows if r["id"] == "p-9")
    assert bo["name"] == "Bo Chen"
    assert bo["riskLevel"] == "High"
    assert bo["careTeam"] == ["Dr. Raman"]
    assert bo["condition"] == "General care"


def test_derive_is_idempotent():
    once = derive_patients_from_appointments(APPOINTMENTS, now=NOW)
    assert derive_patients_from_appointments(once, now=NOW) == once


@pytest.mark.parametrize("payload", [None, [], {}, "junk", [None, 3, "x"]])
def test_derive_falls_back_to_demo_roster(payload):
    rows = derive_patients_from_appointments(payload, now=NOW)
    assert [r["name"] for r in rows] == ["Sarah Johnson", "Michael Williams", "David Brown"]
    assert all(r["careTeam"] for r in rows)


def test_derive_fallback_is_idempotent():
    once = derive_patients_from_appointments([], now=NOW)
    assert derive_patients_from_appointments(once, now=NOW) == once


def test_derive_patient_without_any_id_gets_own_row():
    rows = derive_patients_from_appointments([{"startTime": "2024-05-02T09:00:00Z"},
                                              {"startTime": "2024-05-03T09:00:00Z"}], now=NOW)
    assert [r["id"] for r in rows] == ["appt-0", "appt-1"]
    assert rows[0]["name"] == "Patient"


def test_derive_does_not_mutate_input():
    source = [dict(a) for a in APPOINTMENTS]
    derive_patients_from_appointments(source, now=NOW)
    assert source == APPOINTMENTS


@pytest.mark.parametrize("appointment", [
    {"patient": {"firstName": "Ann", "lastName": 7}},
    {"patient": {"email": {"primary": "a@x.io"}}},
    {"patient": {"email": ["a@x.io", "b@x.io"]}},
    {"patientName": 12345, "reason": "Flu"},
    {"patient": ["p-1"], "status": 3, "type": None, "startTime": 1714640400},
    {"doctorName": 5, "reason": {"text": "Rash"}, "doctor": {"firstName": 1}},
    {"doctor": {"firstName": "Ada", "lastName": ["x"]}, "patient": {"_id": 4.5}},
])
def test_derive_is_total_over_odd_field_values(appointment):
    rows = derive_patients_from_appointments([appointment], now=NOW)
    assert len(rows) == 1
    row = rows[0]
    assert isinstance(row["id"], str)
    assert isinstance(row["name"], str)
    assert isinstance(row["condition"], str)
    assert all(isinstance(name, str) for name in row["careTeam"])
    assert derive_patients_from_appointments(rows, now=NOW) == rows


def test_derive_coerces_names_to_text():
    rows = derive_patients_from_appointments([{"patient": {"id": 1, "firstName": "Ann", "lastName": 7},
                                               "doctor": {"firstName": "Dr", "lastName": 42}}], now=NOW)
    assert rows[0]["name"] == "Ann 7"
    assert rows[0]["careTeam"] == ["Dr 42"]


@pytest.mark.parametrize("appointment, key", [
    ({"patient": {"id": 7, "_id": "m", "email": "a@x.io"}, "patientId": 9}, "7"),
    ({"patient": {"_id": "m", "email": "a@x.io"}, "patientId": 9}, "m"),
    ({"patient": {"email": "a@x.io"}, "patientId": 9}, "9"),
    ({"patient": "p-1", "patientId": "p-2"}, "p-2"),
    ({"patient": {"email": "a@x.io"}}, "a@x.io"),
    ({"patient": "p-1"}, "p-1"),
    ({"patient": {}}, "appt-0"),
])
def test_derive_patient_key_order(appointment, key):
    assert derive_patients_from_appointments([appointment], now=NOW)[0]["id"] == key
