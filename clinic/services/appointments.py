import logging
from typing import Optional, Tuple, List

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment
from clinic.permissions import owns_object
from clinic.services.audit import log_action
from clinic.services.users import serialize_user

User = get_user_model()
logger = logging.getLogger(__name__)

UPDATES_GROUP = 'updates'
SLOT_TAKEN = 'The selected time slot is not available for this doctor'


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patient': serialize_user(a.patient, brief=True) | {'phoneNumber': a.patient.phone_number},
        'doctor': serialize_user(a.doctor, brief=True),
        'startTime': a.start_time.isoformat(),
        'endTime': a.end_time.isoformat(),
        'durationMinutes': a.duration_minutes,
        'status': a.status,
        'type': a.type,
        'reason': a.reason,
        'notes': a.notes,
        'followUp': a.follow_up,
        'reminderSent': a.reminder_sent,
        'paymentStatus': a.payment_status,
        'telehealthLink': a.telehealth_link or None,
        'cancellationReason': a.cancellation_reason or None,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'updatedAt': a.updated_at.isoformat() if a.updated_at else None,
    }


def broadcast_change(action: str, a: Appointment) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        'type': 'appointments.changed',
        'action': action,
        'appointmentId': a.id,
        'patientId': a.patient_id,
        'doctorId': a.doctor_id,
        'status': a.status,
        'ts': timezone.now().isoformat(),
    }
    async_to_sync(channel_layer.group_send)(UPDATES_GROUP, payload)


def scoped_queryset(user):
    qs = Appointment.objects.select_related('patient', 'doctor')
    if user.role == User.ROLE_PATIENT:
        return qs.filter(patient_id=user.id)
    if user.role == User.ROLE_DOCTOR:
        return qs.filter(doctor_id=user.id)
    if user.role == User.ROLE_ADMIN:
        return qs
    return qs.none()


def list_appointments(user, *, status: Optional[str]=None, type: Optional[str]=None, start_date=None, end_date=None,
                      page: int=1, limit: int=10) -> Tuple[List[dict], int]:
    qs = scoped_queryset(user)
    if status:
        qs = qs.filter(status=status)
    if type:
        qs = qs.filter(type=type)
    if start_date:
        qs = qs.filter(start_time__gte=start_date)
    if end_date:
        qs = qs.filter(start_time__lte=end_date)

    total = qs.count()
    page = max(1, int(page or 1))
    limit = min(100, max(1, int(limit or 10)))
    start = (page - 1) * limit
    items = qs.order_by('start_time', 'id')[start:start + limit]
    return [serialize_appointment(a) for a in items], total


def get_appointment(user, appointment_id: int) -> Appointment:
    a = Appointment.objects.select_related('patient', 'doctor').get(id=appointment_id)
    if not owns_object(user, a):
        raise PermissionError('You are not authorized to access this appointment')
    return a


@transaction.atomic
def create_appointment(actor, data: dict, request=None) -> Appointment:
    if actor.role == User.ROLE_PATIENT:
        patient = actor
    else:
        if not data.get('patient'):
            raise ValueError('Patient is required')
        patient = User.objects.filter(id=data['patient'], role=User.ROLE_PATIENT).first()
        if patient is None:
            raise User.DoesNotExist('No patient found with that ID')
    doctor = User.objects.filter(id=data['doctor'], role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise User.DoesNotExist('No doctor found with that ID')

    start, end = data['startTime'], data['endTime']
    if Appointment.find_conflicts(doctor.id, start, end).exists():
        raise ValueError(SLOT_TAKEN)

    a = Appointment.objects.create(
        patient=patient, doctor=doctor,
        start_time=start, end_time=end,
        type=data.get('type') or Appointment.TYPE_IN_PERSON,
        status=data.get('status') or Appointment.STATUS_SCHEDULED,
        reason=data['reason'],
        notes=data.get('notes', ''),
        last_modified_by=actor,
    )
    if a.type == Appointment.TYPE_TELEHEALTH:
        a.telehealth_link = a.build_telehealth_link()
        a.save(update_fields=['telehealth_link'])

    log_action(user=actor, action='create', object_type='appointment', object_id=a.id,
               detail={'doctorId': doctor.id, 'patientId': patient.id}, request=request)
    transaction.on_commit(lambda: broadcast_change('created', a))
    return a


UPDATABLE = {
    'startTime': 'start_time',
    'endTime': 'end_time',
    'type': 'type',
    'status': 'status',
    'reason': 'reason',
    'notes': 'notes',
    'followUp': 'follow_up',
}


@transaction.atomic
def update_appointment(actor, a: Appointment, data: dict, request=None) -> Appointment:
    if not owns_object(actor, a):
        raise PermissionError('You are not authorized to access this appointment')
    if data.get('patient') or data.get('doctor'):
        raise ValueError('You cannot change the patient or doctor for an existing appointment')

    if 'startTime' in data or 'endTime' in data:
        start = data.get('startTime', a.start_time)
        end = data.get('endTime', a.end_time)
        if end <= start:
            raise ValueError('End time must be after start time')
        if Appointment.find_conflicts(a.doctor_id, start, end, exclude_id=a.id).exists():
            raise ValueError(SLOT_TAKEN)

    changed = []
    for key, attr in UPDATABLE.items():
        if key in data:
            setattr(a, attr, data[key])
            changed.append(key)
    if a.type == Appointment.TYPE_TELEHEALTH and not a.telehealth_link:
        a.telehealth_link = a.build_telehealth_link()
    a.last_modified_by = actor
    a.save()

    log_action(user=actor, action='update', object_type='appointment', object_id=a.id,
               detail={'updatedFields': changed}, request=request)
    transaction.on_commit(lambda: broadcast_change('updated', a))
    return a


@transaction.atomic
def cancel_appointment(actor, a: Appointment, reason: Optional[str]=None, request=None) -> Appointment:
    if not owns_object(actor, a):
        raise PermissionError('You are not authorized to access this appointment')
    if a.status == Appointment.STATUS_CANCELLED:
        raise ValueError('This appointment is already cancelled')
    if a.start_time < timezone.now():
        raise ValueError('Cannot cancel past appointments')

    a.status = Appointment.STATUS_CANCELLED
    a.cancellation_reason = (reason or '').strip() or 'No reason provided'
    a.last_modified_by = actor
    a.save(update_fields=['status', 'cancellation_reason', 'last_modified_by', 'updated_at'])

    log_action(user=actor, action='update', object_type='appointment', object_id=a.id,
               detail={'reason': a.cancellation_reason}, request=request)
    transaction.on_commit(lambda: broadcast_change('cancelled', a))
    return a


@transaction.atomic
def delete_appointment(actor, a: Appointment, request=None) -> int:
    allowed = actor.role == User.ROLE_ADMIN or (actor.role == User.ROLE_PATIENT and a.patient_id == actor.id)
    if not allowed:
        raise PermissionError('You do not have permission to delete this appointment')
    appointment_id = a.id
    a.delete()
    a.id = appointment_id
    log_action(user=actor, action='delete', object_type='appointment', object_id=appointment_id, request=request)
    transaction.on_commit(lambda: broadcast_change('deleted', a))
    return appointment_id
