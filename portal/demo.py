"""
Fabricated data for running the portal without a backend.

Demo tokens are recognisable by their ``demo-jwt-token-`` prefix and are
only honoured while demo mode is on.
"""
import os
import time
from datetime import datetime, timedelta, timezone

DEMO_TOKEN_PREFIX = "demo-jwt-token-"
DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"id": "1", "firstName": "Admin", "lastName": "User", "email": "admin@example.com",
     "password": DEMO_PASSWORD, "role": "admin", "avatar": None},
    {"id": "2", "firstName": "Doctor", "lastName": "Smith", "email": "doctor@example.com",
     "password": DEMO_PASSWORD, "role": "doctor", "avatar": None},
    {"id": "3", "firstName": "Patient", "lastName": "Johnson", "email": "patient@example.com",
     "password": DEMO_PASSWORD, "role": "patient", "avatar": None},
]

DEMO_STATS = {
    "appointments": {"today": 8, "upcoming": 24, "total": 120},
    "patients": {"total": 342, "new": 18},
    "revenue": {"today": 1250, "thisMonth": 28750, "outstanding": 4500},
    "telehealth": {"upcoming": 12},
}

DEMO_DOCTORS = [
    {"_id": "doc-1", "id": "doc-1", "firstName": "Olivia", "lastName": "Hart", "specialization": "Cardiology"},
    {"_id": "doc-2", "id": "doc-2", "firstName": "Mateo", "lastName": "Garcia", "specialization": "Family Medicine"},
    {"_id": "doc-3", "id": "doc-3", "firstName": "Priya", "lastName": "Raman", "specialization": "Dermatology"},
]


def _ms() -> int:
    return int(time.time() * 1000)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def demo_token() -> str:
    return f"{DEMO_TOKEN_PREFIX}{_ms()}"


def is_demo_token(token) -> bool:
    return isinstance(token, str) and token.startswith(DEMO_TOKEN_PREFIX)


def is_demo_mode(config=None) -> bool:
    if config is not None:
        return bool(config.demo_mode)
    return os.getenv("PORTAL_DEMO_MODE", "0").strip().lower() in {"1", "true", "yes", "on"}


def demo_upcoming_appointments(now=None) -> list:
    now = now or datetime.now(timezone.utc)
    rows = [
        ("apt-1", "Sarah Johnson", "pat-1", 0, "10:00 AM", "Check-up", "confirmed", True),
        ("apt-2", "Michael Williams", "pat-2", 1, "11:30 AM", "Follow-up", "confirmed", False),
        ("apt-3", "David Brown", "pat-3", 2, "2:00 PM", "Consultation", "pending", True),
        ("apt-4", "Emma Davis", "pat-4", 3, "3:30 PM", "Check-up", "confirmed", False),
    ]
    return [
        {"id": aid, "patientName": name, "patientId": pid, "date": _iso(now + timedelta(hours=h)),
         "time": label, "type": kind, "status": st, "isVirtual": virtual}
        for aid, name, pid, h, label, kind, st, virtual in rows
    ]


def demo_recent_patients(now=None) -> list:
    now = now or datetime.now(timezone.utc)
    rows = [
        ("pat-1", "Sarah Johnson", 42, "Female", 7, "Hypertension"),
        ("pat-2", "Michael Williams", 35, "Male", 14, "Diabetes"),
        ("pat-3", "David Brown", 28, "Male", 3, "Asthma"),
    ]
    return [
        {"id": pid, "name": name, "age": age, "gender": gender,
         "lastVisit": _iso(now - timedelta(days=days)), "condition": condition}
        for pid, name, age, gender, days, condition in rows
    ]


DEMO_UPCOMING_APPOINTMENTS = demo_upcoming_appointments()
DEMO_RECENT_PATIENTS = demo_recent_patients()


def public_user(user: dict) -> dict:
    return {k: user[k] for k in ("id", "firstName", "lastName", "email", "role")}


def authenticate_demo(email, password):
    """Return a login-shaped payload for a matching demo user, else ``None``."""
    for user in DEMO_USERS:
        if user["email"] == email and user["password"] == password:
            return {
                "user": public_user(user),
                "token": demo_token(),
                "message": "Login successful in demo mode",
            }
    return None


def register_demo(user_data: dict) -> dict:
    # demo registrations are always patients
    user = {
        "id": f"demo-{_ms()}",
        "firstName": user_data.get("firstName"),
        "lastName": user_data.get("lastName"),
        "email": user_data.get("email"),
        "role": "patient",
        "avatar": None,
    }
    return {"user": user, "token": demo_token(), "message": "Registration successful in demo mode"}
