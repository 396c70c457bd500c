"""
Response-shape normalizers.

The API (and older builds of it) wrap collections in several ways:
a bare list, ``{"data": [...]}``, ``{"appointments": [...]}`` or
``{"data": {"appointments": [...]}}``.  The helpers here accept any of
those, or anything else, and always return a usable value.  Feeding
their output back in returns an equal value.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from portal import demo

CARE_TEAM_FALLBACK = ("Dr. Hart", "Dr. Garcia")


def extract_list(payload: Any, key: str) -> list:
    if isinstance(payload, list):
        return list(payload)
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if isinstance(data, list):
        return list(data)
    if isinstance(payload.get(key), list):
        return list(payload[key])
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return list(data[key])
    return []


def extract_appointments(payload: Any) -> list:
    return extract_list(payload, "appointments")


def normalize_auth_payload(payload: Any) -> dict:
    """Reduce any login/session payload to ``{"user", "token", "role"}``.

    The user is taken from ``data.user``, then ``user``, then the payload
    itself when it is a bare user object.
    """
    if not isinstance(payload, dict) or not payload:
        return {"user": None, "token": None, "role": None}

    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("user"), dict):
        user = data["user"]
    elif "user" in payload:
        user = payload["user"] if isinstance(payload["user"], dict) else None
    else:
        user = payload

    token = payload.get("token")
    if not token and isinstance(data, dict):
        token = data.get("token")
    if not token and isinstance(user, dict):
        token = user.get("token")

    role = (user or {}).get("role") or payload.get("role")
    return {"user": user, "token": token or None, "role": role or None}


def entity_id(obj: Any) -> Optional[str]:
    if isinstance(obj, dict):
        for key in ("id", "_id"):
            if obj.get(key) not in (None, ""):
                return str(obj[key])
        return None
    if obj in (None, ""):
        return None
    return str(obj)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def appointment_start(appointment: Any) -> Optional[datetime]:
    if not isinstance(appointment, dict):
        return None
    return parse_datetime(appointment.get("startTime") or appointment.get("date"))


def person_name(person: Any) -> str:
    if not isinstance(person, dict):
        return ""
    return " ".join(str(p) for p in (person.get("firstName"), person.get("lastName")) if p)


def is_derived_patient(row: Any) -> bool:
    return isinstance(row, dict) and "careTeam" in row and "appointmentCount" in row


def fallback_demo_patients(now=None) -> list:
    rows = []
    for index, patient in enumerate(demo.demo_recent_patients(now)):
        telehealth, in_person = index % 3, index + 1
        rows.append({
            "id": patient.get("id") or f"demo-patient-{index}",
            "name": patient["name"],
            "condition": patient["condition"],
            "gender": patient["gender"],
            "age": patient["age"],
            "lastVisit": patient["lastVisit"],
            "nextVisit": None,
            "riskLevel": "Medium" if index % 2 == 0 else "Low",
            "telehealthCount": telehealth,
            "inPersonCount": in_person,
            "appointmentCount": telehealth + in_person,
            "careTeam": list(CARE_TEAM_FALLBACK[: (index % 2) + 1]),
        })
    return rows


def _patient_key(appointment: dict, index: int) -> str:
    """patient.id, patient._id, patientId, patient.email, then a bare patient reference."""
    patient = appointment.get("patient")
    if isinstance(patient, dict):
        for key in ("id", "_id"):
            if patient.get(key) not in (None, ""):
                return str(patient[key])
    if appointment.get("patientId") not in (None, ""):
        return str(appointment["patientId"])
    if isinstance(patient, dict):
        if patient.get("email"):
            return str(patient["email"])
    elif patient not in (None, ""):
        return str(patient)
    return f"appt-{index}"


def derive_patients_from_appointments(appointments: Any, now=None) -> list:
    """Build a patient roster out of an appointment list.

    Rows that already look like roster entries are kept as they are, so
    the function can be applied to its own output.  An empty input
    yields the demo roster.
    """
    collection = extract_appointments(appointments)
    if not collection:
        return fallback_demo_patients(now)

    entries: dict = {}
    for index, appointment in enumerate(collection):
        if is_derived_patient(appointment):
            entries[("row", index)] = appointment
            continue
        if not isinstance(appointment, dict):
            continue

        patient = appointment.get("patient") if isinstance(appointment.get("patient"), dict) else {}
        key = ("patient", _patient_key(appointment, index))
        entry = entries.get(key)
        if entry is None:
            entry = entries[key] = {
                "id": key[1],
                "name": str(appointment.get("patientName") or person_name(patient) or "Patient"),
                "condition": str(appointment.get("reason") or patient.get("condition") or "General care"),
                "gender": patient.get("gender") or "Unknown",
                "age": patient.get("age"),
                "contact": patient.get("email"),
                "phone": patient.get("phoneNumber"),
                "nextVisit": None,
                "lastVisit": None,
                "telehealthCount": 0,
                "inPersonCount": 0,
                "appointmentCount": 0,
                "riskLevel": "Low",
                "careTeam": [],
                "_first": None,
                "_last": None,
            }

        start = appointment_start(appointment)
        if start is not None:
            if entry["_first"] is None or start < entry["_first"]:
                entry["_first"] = start
            if entry["_last"] is None or start > entry["_last"]:
                entry["_last"] = start

        entry["appointmentCount"] += 1
        if str(appointment.get("type") or "").lower() == "telehealth":
            entry["telehealthCount"] += 1
        else:
            entry["inPersonCount"] += 1

        doctor_name = str(appointment.get("doctorName") or person_name(appointment.get("doctor")))
        if doctor_name and doctor_name not in entry["careTeam"]:
            entry["careTeam"].append(doctor_name)

        status = str(appointment.get("status") or "").lower()
        if status == "in-progress":
            entry["riskLevel"] = "High"
        elif status == "cancelled":
            entry["riskLevel"] = "Medium"

    result = []
    for entry in entries.values():
        if "_first" in entry:
            entry = dict(entry)
            first, last = entry.pop("_first"), entry.pop("_last")
            entry["lastVisit"] = first.isoformat() if first else None
            entry["nextVisit"] = last.isoformat() if last else None
        result.append(entry)
    return result or fallback_demo_patients(now)
