"""
View-model helpers for the portal pages.

These take slice state (appointments, the auth payload) and produce
the rows and counters the dashboard, patients, telehealth and billing
pages display.  All functions are pure; ``now`` can be pinned for tests.
"""
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from portal import demo
from portal.normalizers import (
    appointment_start,
    derive_patients_from_appointments,
    entity_id,
    extract_appointments,
    normalize_auth_payload,
    parse_datetime,
    person_name,
)

BOOKING_MINUTES = 30
UPCOMING_DAYS = 7
NEW_PATIENT_DAYS = 30
INVOICE_STATUSES = ("Pending", "Paid", "Processing")
DEMO_VISIT_REASONS = ("Care plan review", "Follow-up visit", "Medication check")


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _is_telehealth(appointment: Any) -> bool:
    return isinstance(appointment, dict) and str(appointment.get("type") or "").lower() == "telehealth"


def _local_day(dt: datetime, now: datetime):
    return dt.astimezone(now.tzinfo).date()


# ---------------------------------------------------------------------------
# patients page
# ---------------------------------------------------------------------------

def patient_roster(appointments: Any, demo_mode: bool = False, now=None) -> list:
    source = demo.demo_upcoming_appointments(now) if demo_mode else appointments
    return derive_patients_from_appointments(source, now=now)


def filter_patients(rows: list, search: str = "", telehealth_only: bool = False) -> list:
    query = (search or "").strip().lower()
    out = []
    for row in rows:
        if query:
            team = row.get("careTeam") if isinstance(row.get("careTeam"), list) else []
            haystack = [row.get("name") or "", row.get("condition") or ""] + team
            if not any(query in str(part).lower() for part in haystack):
                continue
        if telehealth_only and not row.get("telehealthCount"):
            continue
        out.append(row)
    return out


def patient_summary(rows: list) -> dict:
    return {
        "activePatients": len(rows),
        "telehealthVisits": sum(r.get("telehealthCount") or 0 for r in rows),
        "inPersonVisits": sum(r.get("inPersonCount") or 0 for r in rows),
        "highTouch": sum(1 for r in rows if r.get("riskLevel") == "High"),
    }


# ---------------------------------------------------------------------------
# telehealth page
# ---------------------------------------------------------------------------

def telehealth_appointments(appointments: Any, now=None) -> list:
    """Telehealth visits sorted by start; the demo list stands in for an empty one."""
    source = extract_appointments(appointments) or demo.demo_upcoming_appointments(now)
    sessions = [a for a in source if _is_telehealth(a)]
    far = datetime.max.replace(tzinfo=timezone.utc)
    return sorted(sessions, key=lambda a: appointment_start(a) or far)


# ---------------------------------------------------------------------------
# dashboard
# ---------------------------------------------------------------------------

def resolve_user(auth_payload: Any) -> Optional[dict]:
    return normalize_auth_payload(auth_payload)["user"]


def upcoming_appointments(appointments: Any, demo_mode: bool = False, now=None) -> list:
    """Appointments after today and no later than a week out."""
    if demo_mode:
        return demo.demo_upcoming_appointments(now)
    if not isinstance(appointments, list):
        return []
    now = _now(now)
    today = now.date()
    horizon = today + timedelta(days=UPCOMING_DAYS)
    out = []
    for a in appointments:
        start = appointment_start(a)
        if start is not None and today < _local_day(start, now) <= horizon:
            out.append(a)
    return out


def todays_appointments(appointments: Any, demo_mode: bool = False, now=None) -> list:
    now = _now(now)
    source = demo.demo_upcoming_appointments(now) if demo_mode else appointments
    if not isinstance(source, list):
        return []
    out = []
    for a in source:
        start = appointment_start(a)
        if start is not None and _local_day(start, now) == now.date():
            out.append(a)
    return out


def demo_patient_appointments(now=None) -> list:
    now = _now(now)
    return [
        {
            "id": f"demo-patient-{index}",
            "doctorName": f"Dr. {doc['firstName']} {doc['lastName']}",
            "specialization": doc["specialization"],
            "startTime": (now + timedelta(hours=index + 1)).isoformat(),
            "type": "telehealth" if index % 2 == 0 else "in-person",
            "reason": DEMO_VISIT_REASONS[index % len(DEMO_VISIT_REASONS)],
            "status": "scheduled",
        }
        for index, doc in enumerate(demo.DEMO_DOCTORS)
    ]


def patient_upcoming(appointments: Any, demo_mode: bool = False, now=None) -> list:
    """A patient's future visits, soonest first."""
    if demo_mode:
        return demo_patient_appointments(now)
    if not isinstance(appointments, list):
        return []
    now = _now(now)
    future = []
    for a in appointments:
        start = appointment_start(a)
        if start is not None and start >= now:
            future.append((start, a))
    future.sort(key=lambda pair: pair[0])
    return [a for _, a in future]


def patient_metrics(appointments: Any, demo_mode: bool = False, now=None) -> dict:
    if demo_mode:
        visits = demo_patient_appointments(now)
        return {
            "upcoming": len(visits),
            "completed": 6,
            "doctors": len(demo.DEMO_DOCTORS),
            "telehealth": sum(1 for a in visits if _is_telehealth(a)),
        }
    if not isinstance(appointments, list) or not appointments:
        return {"upcoming": 0, "completed": 0, "doctors": 0, "telehealth": 0}

    now = _now(now)
    doctors = set()
    upcoming = completed = telehealth = 0
    for a in appointments:
        doctor_id = entity_id(a.get("doctor")) if isinstance(a, dict) and isinstance(a.get("doctor"), dict) else None
        if doctor_id:
            doctors.add(doctor_id)
        start = appointment_start(a)
        if start is None:
            continue
        if start >= now:
            upcoming += 1
            if _is_telehealth(a):
                telehealth += 1
        else:
            completed += 1
    return {"upcoming": upcoming, "completed": completed, "doctors": len(doctors), "telehealth": telehealth}


def doctor_display_name(appointment: Any) -> str:
    if not isinstance(appointment, dict):
        return "Assigned doctor"
    if appointment.get("doctorName"):
        return appointment["doctorName"]
    name = person_name(appointment.get("doctor"))
    return f"Dr. {name}" if name else "Assigned doctor"


def dashboard_stats(appointments: Any, demo_mode: bool = False, now=None, revenue: Optional[dict] = None) -> dict:
    """Stat cards for the staff dashboard.

    Appointment and patient counters come from the appointment list;
    revenue figures are only known server side and are passed in.
    """
    if demo_mode:
        return copy.deepcopy(demo.DEMO_STATS)

    now = _now(now)
    items = extract_appointments(appointments)
    first_seen: dict = {}
    telehealth = 0
    for index, a in enumerate(items):
        if not isinstance(a, dict):
            continue
        key = entity_id(a.get("patient")) or entity_id(a.get("patientId")) or f"appt-{index}"
        start = appointment_start(a)
        earliest = first_seen.get(key)
        if key not in first_seen or (start is not None and (earliest is None or start < earliest)):
            first_seen[key] = start
        if _is_telehealth(a) and start is not None and start >= now:
            telehealth += 1

    since = now - timedelta(days=NEW_PATIENT_DAYS)
    revenue = revenue or {}
    return {
        "appointments": {
            "today": len(todays_appointments(items, now=now)),
            "upcoming": len(upcoming_appointments(items, now=now)),
            "total": len(items),
        },
        "patients": {
            "total": len(first_seen),
            "new": sum(1 for start in first_seen.values() if start is not None and start >= since),
        },
        "revenue": {
            "today": revenue.get("today", 0),
            "thisMonth": revenue.get("thisMonth", 0),
            "outstanding": revenue.get("outstanding", 0),
        },
        "telehealth": {"upcoming": telehealth},
    }


def build_booking_payload(form: dict) -> dict:
    """Turn the quick-booking form into an appointment create body."""
    required = ("doctor", "date", "time", "reason")
    if any(not form.get(k) for k in required):
        raise ValueError("Please complete all booking fields")
    start = parse_datetime(f"{form['date']}T{form['time']}")
    if start is None:
        raise ValueError("Choose a valid date and time")
    end = start + timedelta(minutes=BOOKING_MINUTES)
    return {
        "doctor": form["doctor"],
        "startTime": start.isoformat(),
        "endTime": end.isoformat(),
        "type": form.get("type") or "in-person",
        "reason": form["reason"],
        "status": "scheduled",
    }


# ---------------------------------------------------------------------------
# billing page
# ---------------------------------------------------------------------------

def build_invoices(appointments: Any, now=None) -> list:
    base = extract_appointments(appointments) or demo.demo_upcoming_appointments(now)
    invoices = []
    for index, a in enumerate(base[:5]):
        a = a if isinstance(a, dict) else {}
        doctor = a.get("doctor") if isinstance(a.get("doctor"), dict) else {}
        invoices.append({
            "id": f"inv-{entity_id(a) or index}",
            "provider": a.get("doctorName") or doctor.get("fullName") or "Care team",
            "amount": 45 + index * 15,
            "status": INVOICE_STATUSES[index % len(INVOICE_STATUSES)],
            "dueDate": a.get("date") or a.get("startTime") or _now(now).isoformat(),
            "type": a.get("type") or "In-person",
        })
    return invoices


def billing_totals(invoices: list) -> dict:
    return {
        "outstanding": sum(i["amount"] for i in invoices if i.get("status") != "Paid"),
        "paid": sum(i["amount"] for i in invoices if i.get("status") == "Paid"),
    }
