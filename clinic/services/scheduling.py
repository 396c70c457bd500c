"""
Slot finding for the booking screens.

Working hours and slot length are fixed (09:00-17:00, 30 minutes).  Slots
are built in the current Django time zone and compared against the
doctor's active appointments with the usual half-open overlap test.
"""
from collections import Counter
from datetime import datetime, time, timedelta, date as date_cls
from typing import Optional, List

from django.contrib.auth import get_user_model
from django.utils import timezone

from clinic.models import Appointment

User = get_user_model()

WORK_START = 9
WORK_END = 17
SLOT_MINUTES = 30
MAX_SUGGESTIONS = 5
SUGGEST_DAYS = 7
HOURS_BY_TIME_OF_DAY = {
    'morning': (9, 12),
    'afternoon': (12, 17),
    'evening': (17, 19),
}


def _doctor(doctor_id: int):
    doctor = User.objects.filter(id=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise User.DoesNotExist('No doctor found with that ID')
    return doctor


def _doctor_summary(doctor) -> dict:
    return {'id': doctor.id, 'name': doctor.full_name, 'specialization': doctor.specialization}


def _slots(day: date_cls, start_hour: int, end_hour: int):
    tz = timezone.get_current_timezone()
    for hour in range(start_hour, end_hour):
        for minute in range(0, 60, SLOT_MINUTES):
            start = timezone.make_aware(datetime.combine(day, time(hour, minute)), tz)
            yield start, start + timedelta(minutes=SLOT_MINUTES)


def _busy(appointments, start, end) -> bool:
    return any(a.start_time < end and a.end_time > start for a in appointments)


def _active(doctor_id, start, end) -> List[Appointment]:
    return list(
        Appointment.objects.filter(doctor_id=doctor_id, start_time__lt=end, end_time__gt=start)
        .exclude(status__in=Appointment.INACTIVE_STATUSES)
        .order_by('start_time')
    )


def doctor_availability(doctor_id: int, day: date_cls, now: Optional[datetime]=None) -> dict:
    now = now or timezone.now()
    doctor = _doctor(doctor_id)
    tz = timezone.get_current_timezone()
    day_start = timezone.make_aware(datetime.combine(day, time.min), tz)
    booked = _active(doctor.id, day_start, day_start + timedelta(days=1))

    available, busy = [], []
    for start, end in _slots(day, WORK_START, WORK_END):
        slot = {'start': start.isoformat(), 'end': end.isoformat()}
        if _busy(booked, start, end):
            busy.append(slot)
        elif start > now:
            available.append(slot)
    return {
        'doctor': _doctor_summary(doctor),
        'date': day.isoformat(),
        'availableSlots': available,
        'busySlots': busy,
    }


def js_weekday(dt: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return dt.isoweekday() % 7


def time_of_day(hour: int) -> str:
    if hour < 12:
        return 'morning'
    if hour < 17:
        return 'afternoon'
    return 'evening'


def patient_preference(patient_id: int) -> Optional[dict]:
    recent = list(
        Appointment.objects.filter(patient_id=patient_id, status=Appointment.STATUS_COMPLETED)
        .order_by('-start_time')[:5]
    )
    if not recent:
        return None
    local = [timezone.localtime(a.start_time) for a in recent]
    # ties go to the most recent appointment
    day = Counter(js_weekday(dt) for dt in local).most_common(1)[0][0]
    tod = Counter(time_of_day(dt.hour) for dt in local).most_common(1)[0][0]
    return {'dayOfWeek': day, 'timeOfDay': tod}


def suggest_slots(doctor_id: int, patient_id: Optional[int]=None, now: Optional[datetime]=None) -> dict:
    now = now or timezone.now()
    doctor = _doctor(doctor_id)
    horizon = now + timedelta(days=SUGGEST_DAYS)
    booked = _active(doctor.id, now, horizon + timedelta(days=1))
    preference = patient_preference(patient_id) if patient_id else None

    if preference:
        start_hour, end_hour = HOURS_BY_TIME_OF_DAY[preference['timeOfDay']]
    else:
        start_hour, end_hour = WORK_START, WORK_END

    suggested = []
    day = timezone.localtime(now).date()
    last_day = timezone.localtime(horizon).date()
    while day <= last_day and len(suggested) < MAX_SUGGESTIONS:
        if preference and js_weekday(datetime.combine(day, time.min)) != preference['dayOfWeek']:
            day += timedelta(days=1)
            continue
        for start, end in _slots(day, start_hour, end_hour):
            if start <= now or _busy(booked, start, end):
                continue
            suggested.append({
                'start': start.isoformat(),
                'end': end.isoformat(),
                'doctor': _doctor_summary(doctor),
            })
            if len(suggested) >= MAX_SUGGESTIONS:
                break
        day += timedelta(days=1)

    return {'suggestedSlots': suggested, 'patientPreference': preference}
