import logging
from datetime import timedelta
from typing import List

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment
from clinic.services.appointments import serialize_appointment
from clinic.services.audit import log_action

User = get_user_model()
logger = logging.getLogger(__name__)


class SessionUnavailable(ValueError):
    """Raised when a session is requested outside its join window."""

    def __init__(self, message, available_at=None):
        super().__init__(message)
        self.available_at = available_at


def group_name(appointment_id: int) -> str:
    return f"telehealth.{appointment_id}"


def broadcast(appointment_id: int, event: str, user) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        'type': 'telehealth.event',
        'event': event,
        'appointmentId': appointment_id,
        'userId': user.id,
        'userRole': user.role,
        'ts': timezone.now().isoformat(),
    }
    async_to_sync(channel_layer.group_send)(group_name(appointment_id), payload)


def can_join(user, a: Appointment) -> bool:
    return user.role == User.ROLE_ADMIN or user.id in (a.patient_id, a.doctor_id)


def _telehealth(appointment_id: int) -> Appointment:
    a = Appointment.objects.select_related('patient', 'doctor').get(id=appointment_id)
    if a.type != Appointment.TYPE_TELEHEALTH:
        raise ValueError('This is not a telehealth appointment')
    return a


def join_session(user, appointment_id: int, now=None, request=None) -> dict:
    now = now or timezone.now()
    a = _telehealth(appointment_id)
    if not can_join(user, a):
        raise PermissionError('You are not authorized to access this telehealth session')

    window = timedelta(minutes=settings.TELEHEALTH_JOIN_WINDOW_MINUTES)
    opens_at = a.start_time - window
    if now < opens_at:
        raise SessionUnavailable(
            'This telehealth session is not yet available for joining. '
            f'You can join {settings.TELEHEALTH_JOIN_WINDOW_MINUTES} minutes before the scheduled time.',
            available_at=opens_at,
        )
    if now > a.end_time:
        raise ValueError('This telehealth session has ended')

    if not a.telehealth_link:
        a.telehealth_link = a.build_telehealth_link()
        a.save(update_fields=['telehealth_link', 'updated_at'])

    log_action(user=user, action='telehealth_join', object_type='telehealth', object_id=a.id, request=request)
    broadcast(a.id, 'joined', user)
    return {
        'appointment': {
            'id': a.id,
            'startTime': a.start_time.isoformat(),
            'endTime': a.end_time.isoformat(),
            'patient': {'id': a.patient_id, 'name': a.patient.full_name},
            'doctor': {'id': a.doctor_id, 'name': a.doctor.full_name, 'specialization': a.doctor.specialization},
        },
        'sessionUrl': a.telehealth_link,
        'sessionId': a.telehealth_link.rstrip('/').rsplit('/', 1)[-1],
        'userRole': user.role,
        'currentTime': now.isoformat(),
    }


@transaction.atomic
def end_session(user, appointment_id: int, request=None) -> Appointment:
    a = _telehealth(appointment_id)
    if not (user.role == User.ROLE_ADMIN or user.id == a.doctor_id):
        raise PermissionError('Only the doctor or admin can end the telehealth session')
    if user.id == a.doctor_id and a.status != Appointment.STATUS_COMPLETED:
        a.status = Appointment.STATUS_COMPLETED
        a.last_modified_by = user
        a.save(update_fields=['status', 'last_modified_by', 'updated_at'])
    log_action(user=user, action='telehealth_leave', object_type='telehealth', object_id=a.id, request=request)
    transaction.on_commit(lambda: broadcast(a.id, 'ended', user))
    return a


def upcoming_sessions(user, now=None) -> List[dict]:
    now = now or timezone.now()
    qs = Appointment.objects.select_related('patient', 'doctor').filter(
        type=Appointment.TYPE_TELEHEALTH, status=Appointment.STATUS_CONFIRMED, start_time__gte=now,
    )
    if user.role == User.ROLE_PATIENT:
        qs = qs.filter(patient_id=user.id)
    elif user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor_id=user.id)
    return [serialize_appointment(a) for a in qs.order_by('start_time')[:10]]


def session_history(user, patient_id: int) -> List[dict]:
    if user.role == User.ROLE_PATIENT and user.id != patient_id:
        raise PermissionError("You are not authorized to access this patient's telehealth history")
    if user.role == User.ROLE_DOCTOR and not Appointment.objects.filter(
        doctor_id=user.id, patient_id=patient_id, type=Appointment.TYPE_TELEHEALTH,
    ).exists():
        raise PermissionError('You have not had any telehealth sessions with this patient')
    qs = Appointment.objects.select_related('patient', 'doctor').filter(
        patient_id=patient_id, type=Appointment.TYPE_TELEHEALTH, status=Appointment.STATUS_COMPLETED,
    ).order_by('-start_time')
    return [serialize_appointment(a) for a in qs]
