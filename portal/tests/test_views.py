from datetime import datetime, timedelta, timezone

import pytest

from portal import demo, views

NOW = datetime(2030, 1, 15, 12, tzinfo=timezone.utc)


def at(**delta):
    return (NOW + timedelta(**delta)).isoformat()


def appt(id_, patient_id, start, type_="in-person", doctor=None, **extra):
    row = {"id": id_, "patient": {"id": patient_id, "firstName": "P", "lastName": str(patient_id)},
           "startTime": start, "type": type_, "status": "scheduled"}
    if doctor is not None:
        row["doctor"] = doctor
    row.update(extra)
    return row


# patients page

def test_roster_in_demo_mode_uses_demo_appointments():
    rows = views.patient_roster([appt(1, 1, at(hours=1))], demo_mode=True, now=NOW)
    assert [r["name"] for r in rows] == ["Sarah Johnson", "Michael Williams", "David Brown", "Emma Davis"]


def test_roster_from_appointments():
    rows = views.patient_roster([appt(1, 1, at(hours=1)), appt(2, 1, at(days=2), "telehealth")], now=NOW)
    assert len(rows) == 1
    assert rows[0]["appointmentCount"] == 2
    assert rows[0]["telehealthCount"] == 1


def test_filter_patients():
    rows = [
        {"name": "Ana Diaz", "condition": "Asthma", "careTeam": ["Olivia Hart"], "telehealthCount": 0},
        {"name": "Bo Chen", "condition": "Diabetes", "careTeam": ["Priya Raman"], "telehealthCount": 2},
    ]
    assert views.filter_patients(rows, "asth") == rows[:1]
    assert views.filter_patients(rows, "RAMAN") == rows[1:]
    assert views.filter_patients(rows, "  ") == rows
    assert views.filter_patients(rows, telehealth_only=True) == rows[1:]
    assert views.filter_patients(rows, "ana", telehealth_only=True) == []


def test_filter_patients_tolerates_non_text_fields():
    rows = [
        {"name": 12345, "condition": "Flu", "careTeam": [7, None], "telehealthCount": 1},
        {"name": "Cy", "condition": None, "careTeam": "Dr. Hart", "telehealthCount": 0},
    ]
    assert views.filter_patients(rows, "flu") == rows[:1]
    assert views.filter_patients(rows, "234") == rows[:1]
    assert views.filter_patients(rows, "7") == rows[:1]
    assert views.filter_patients(rows, "hart") == []
    assert views.filter_patients(rows, "cy") == rows[1:]


def test_filter_patients_over_derived_rows():
    rows = views.patient_roster([{"patientName": 12345, "reason": "Flu"}])
    assert views.filter_patients(rows, "flu") == rows


def test_patient_summary():
    rows = [
        {"telehealthCount": 1, "inPersonCount": 2, "riskLevel": "High"},
        {"telehealthCount": 0, "inPersonCount": 1, "riskLevel": "Low"},
    ]
    assert views.patient_summary(rows) == {"activePatients": 2, "telehealthVisits": 1,
                                           "inPersonVisits": 3, "highTouch": 1}


# telehealth page

def test_telehealth_sorted_by_start():
    items = [appt(1, 1, at(days=2), "telehealth"), appt(2, 2, at(hours=1), "Telehealth"),
             appt(3, 3, at(hours=2)), appt(4, 4, None, "telehealth")]
    assert [a["id"] for a in views.telehealth_appointments({"data": items}, now=NOW)] == [2, 1, 4]


def test_telehealth_falls_back_to_demo_list():
    assert views.telehealth_appointments([], now=NOW) == []


# dashboard

def test_upcoming_window():
    items = [appt(1, 1, at(hours=1)), appt(2, 1, at(days=1)), appt(3, 1, at(days=7)),
             appt(4, 1, at(days=8)), appt(5, 1, at(days=-1))]
    assert [a["id"] for a in views.upcoming_appointments(items, now=NOW)] == [2, 3]
    assert views.upcoming_appointments({"appointments": items}, now=NOW) == []
    assert len(views.upcoming_appointments(None, demo_mode=True, now=NOW)) == 4


def test_todays_appointments():
    items = [appt(1, 1, at(hours=-2)), appt(2, 1, at(hours=3)), appt(3, 1, at(days=1)), "junk"]
    assert [a["id"] for a in views.todays_appointments(items, now=NOW)] == [1, 2]
    assert len(views.todays_appointments(None, demo_mode=True, now=NOW)) == 4


def test_patient_upcoming_sorted():
    items = [appt(1, 1, at(days=3)), appt(2, 1, at(hours=1)), appt(3, 1, at(days=-3))]
    assert [a["id"] for a in views.patient_upcoming(items, now=NOW)] == [2, 1]
    demo_rows = views.patient_upcoming(None, demo_mode=True, now=NOW)
    assert [a["doctorName"] for a in demo_rows] == ["Dr. Olivia Hart", "Dr. Mateo Garcia", "Dr. Priya Raman"]


def test_patient_metrics_demo():
    assert views.patient_metrics([], demo_mode=True, now=NOW) == {
        "upcoming": 3, "completed": 6, "doctors": 3, "telehealth": 2}


def test_patient_metrics_computed():
    hart, raman = {"id": "d1"}, {"id": "d2"}
    items = [appt(1, 1, at(days=1), "telehealth", hart), appt(2, 1, at(days=2), doctor=hart),
             appt(3, 1, at(days=-5), "telehealth", raman)]
    assert views.patient_metrics(items, now=NOW) == {"upcoming": 2, "completed": 1, "doctors": 2, "telehealth": 1}
    assert views.patient_metrics(None, now=NOW) == {"upcoming": 0, "completed": 0, "doctors": 0, "telehealth": 0}


def test_doctor_display_name():
    assert views.doctor_display_name({"doctorName": "Dr. Who"}) == "Dr. Who"
    assert views.doctor_display_name({"doctor": {"firstName": "Ana", "lastName": "Lopez"}}) == "Dr. Ana Lopez"
    assert views.doctor_display_name({"doctor": 4}) == "Assigned doctor"
    assert views.doctor_display_name(None) == "Assigned doctor"


def test_resolve_user():
    assert views.resolve_user({"data": {"user": {"id": 1}}, "token": "t"}) == {"id": 1}
    assert views.resolve_user(None) is None


def test_dashboard_stats_demo_is_a_copy():
    stats = views.dashboard_stats([], demo_mode=True)
    assert stats == demo.DEMO_STATS
    stats["patients"]["total"] = 0
    assert demo.DEMO_STATS["patients"]["total"] == 342


def test_dashboard_stats_computed():
    items = [
        appt(1, 1, at(hours=2), "telehealth"),
        appt(2, 2, at(days=2), "telehealth"),
        appt(3, 1, at(days=-60)),
        appt(4, 3, at(days=-2)),
    ]
    stats = views.dashboard_stats({"data": items}, now=NOW, revenue={"today": 10, "outstanding": 5})
    assert stats == {
        "appointments": {"today": 1, "upcoming": 1, "total": 4},
        "patients": {"total": 3, "new": 2},
        "revenue": {"today": 10, "thisMonth": 0, "outstanding": 5},
        "telehealth": {"upcoming": 2},
    }


def test_build_booking_payload():
    payload = views.build_booking_payload({"doctor": "7", "date": "2030-01-20", "time": "09:30",
                                           "reason": "Rash", "type": "telehealth"})
    assert payload == {
        "doctor": "7",
        "startTime": "2030-01-20T09:30:00+00:00",
        "endTime": "2030-01-20T10:00:00+00:00",
        "type": "telehealth",
        "reason": "Rash",
        "status": "scheduled",
    }
    assert views.build_booking_payload({"doctor": "7", "date": "2030-01-20", "time": "09:30",
                                        "reason": "Rash"})["type"] == "in-person"


@pytest.mark.parametrize("form, message", [
    ({"doctor": "7", "date": "2030-01-20", "time": "09:30"}, "Please complete all booking fields"),
    ({"doctor": "7", "date": "someday", "time": "soon", "reason": "x"}, "Choose a valid date and time"),
])
def test_build_booking_payload_errors(form, message):
    with pytest.raises(ValueError, match=message):
        views.build_booking_payload(form)


# billing page

def test_build_invoices_and_totals():
    items = [appt(i, i, at(days=i), doctorName=f"Dr. {i}") for i in range(1, 8)]
    invoices = views.build_invoices(items, now=NOW)
    assert len(invoices) == 5
    assert [i["amount"] for i in invoices] == [45, 60, 75, 90, 105]
    assert [i["status"] for i in invoices] == ["Pending", "Paid", "Processing", "Pending", "Paid"]
    assert invoices[0]["id"] == "inv-1"
    assert invoices[0]["provider"] == "Dr. 1"
    assert views.billing_totals(invoices) == {"outstanding": 45 + 75 + 90, "paid": 60 + 105}


def test_build_invoices_uses_demo_appointments():
    invoices = views.build_invoices(None, now=NOW)
    assert [i["id"] for i in invoices] == ["inv-apt-1", "inv-apt-2", "inv-apt-3", "inv-apt-4"]
    assert invoices[0]["provider"] == "Care team"
    assert invoices[0]["type"] == "Check-up"
