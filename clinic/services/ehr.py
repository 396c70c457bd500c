import logging
from typing import Optional, Tuple, List

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, Count, Max
from django.utils import timezone

from clinic.models import Appointment, MedicalRecord, Prescription, LabTest, RecordAccess
from clinic.permissions import owns_object
from clinic.services.audit import log_action
from clinic.services.users import serialize_user

User = get_user_model()
logger = logging.getLogger(__name__)

RECORD_FIELDS = {
    'chiefComplaint': 'chief_complaint',
    'vitalSigns': 'vital_signs',
    'diagnosis': 'diagnosis',
    'treatment': 'treatment',
    'notes': 'notes',
    'followUp': 'follow_up',
    'imaging': 'imaging',
    'attachments': 'attachments',
}


def serialize_prescription(p: Prescription) -> dict:
    return {
        'id': p.id,
        'medication': {'name': p.name, 'dosage': p.dosage, 'frequency': p.frequency, 'duration': p.duration},
        'instructions': p.instructions,
        'dispenseAmount': p.dispense_amount,
        'refills': p.refills,
        'startDate': p.start_date.isoformat() if p.start_date else None,
        'endDate': p.end_date.isoformat() if p.end_date else None,
    }


def serialize_lab_test(t: LabTest) -> dict:
    data = {
        'id': t.id,
        'name': t.name,
        'code': t.code,
        'instructions': t.instructions,
        'orderedAt': t.ordered_at.isoformat(),
        'isCompleted': t.is_completed,
        'results': None,
    }
    if t.is_completed:
        data['results'] = {
            'value': t.result_value,
            'unit': t.result_unit,
            'normalRange': t.normal_range,
            'isAbnormal': t.is_abnormal,
            'notes': t.result_notes,
            'documentUrl': t.document_url or None,
            'date': t.result_date.isoformat() if t.result_date else None,
        }
    return data


def serialize_record(r: MedicalRecord, *, detail: bool=False) -> dict:
    data = {
        'id': r.id,
        'patient': serialize_user(r.patient, brief=True),
        'doctor': serialize_user(r.doctor, brief=True),
        'appointment': r.appointment_id,
        'visitDate': r.visit_date.isoformat(),
        'chiefComplaint': r.chief_complaint,
        'vitalSigns': r.vital_signs or {},
        'bmi': r.bmi,
        'diagnosis': r.diagnosis or [],
        'treatment': r.treatment,
        'notes': r.notes,
        'followUp': r.follow_up or {},
        'createdAt': r.created_at.isoformat() if r.created_at else None,
        'updatedAt': r.updated_at.isoformat() if r.updated_at else None,
    }
    if detail:
        data.update({
            'imaging': r.imaging or [],
            'attachments': r.attachments or [],
            'prescriptions': [serialize_prescription(p) for p in r.prescriptions.all()],
            'labTests': [serialize_lab_test(t) for t in r.lab_tests.all()],
        })
    return data


def _page(qs, page, limit):
    total = qs.count()
    page = max(1, int(page or 1))
    limit = min(100, max(1, int(limit or 10)))
    start = (page - 1) * limit
    return qs[start:start + limit], total


def _records():
    return MedicalRecord.objects.select_related('patient', 'doctor')


def list_records(user, *, patient_id: Optional[int]=None, page: int=1, limit: int=10) -> Tuple[List[dict], int]:
    qs = _records()
    if user.role == User.ROLE_PATIENT:
        if patient_id and patient_id != user.id:
            raise PermissionError("You are not authorized to access other patients' records")
        qs = qs.filter(patient_id=user.id)
    elif user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor_id=user.id)
    elif user.role != User.ROLE_ADMIN:
        qs = qs.none()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    items, total = _page(qs.order_by('-created_at', '-id'), page, limit)
    return [serialize_record(r) for r in items], total


def _get_patient(patient_id: int):
    patient = User.objects.filter(id=patient_id, role=User.ROLE_PATIENT).first()
    if patient is None:
        raise User.DoesNotExist('No patient found with that ID')
    return patient


def patient_records(user, patient_id: int, *, page: int=1, limit: int=10, request=None) -> Tuple[List[dict], int]:
    patient = _get_patient(patient_id)
    if user.role == User.ROLE_PATIENT and user.id != patient.id:
        raise PermissionError("You are not authorized to access this patient's records")
    if user.role == User.ROLE_DOCTOR and not MedicalRecord.objects.filter(doctor_id=user.id, patient_id=patient.id).exists():
        raise PermissionError("You are not authorized to access this patient's records")
    items, total = _page(_records().filter(patient_id=patient.id).order_by('-created_at', '-id'), page, limit)
    log_action(user=user, action='read', object_type='ehr', detail={'patientId': patient.id}, request=request)
    return [serialize_record(r) for r in items], total


def get_record(user, record_id: int, request=None) -> MedicalRecord:
    r = _records().prefetch_related('prescriptions', 'lab_tests').get(id=record_id)
    if not owns_object(user, r):
        raise PermissionError('You are not authorized to access this record')
    RecordAccess.objects.create(record=r, user=user, action='view')
    log_action(user=user, action='read', object_type='ehr', object_id=r.id, request=request)
    return r


def _require_author(user, r: MedicalRecord) -> None:
    if user.role != User.ROLE_DOCTOR:
        raise PermissionError('Only doctors can update medical records')
    if r.doctor_id != user.id:
        raise PermissionError('You are not authorized to update this medical record')


@transaction.atomic
def create_record(actor, data: dict, request=None) -> MedicalRecord:
    if actor.role != User.ROLE_DOCTOR:
        raise PermissionError('Only doctors can create medical records')
    patient = _get_patient(data['patient'])
    appointment = None
    if data.get('appointment'):
        appointment = Appointment.objects.get(id=data['appointment'])
        if appointment.patient_id != patient.id:
            raise ValueError('The appointment does not belong to this patient')

    r = MedicalRecord(patient=patient, doctor=actor, appointment=appointment)
    if data.get('visitDate'):
        r.visit_date = data['visitDate']
    for key, attr in RECORD_FIELDS.items():
        if key in data:
            setattr(r, attr, data[key])
    r.save()
    RecordAccess.objects.create(record=r, user=actor, action='create')
    log_action(user=actor, action='create', object_type='ehr', object_id=r.id,
               detail={'patientId': patient.id}, request=request)
    return r


@transaction.atomic
def update_record(actor, r: MedicalRecord, data: dict, request=None) -> MedicalRecord:
    _require_author(actor, r)
    if data.get('patient') and data['patient'] != r.patient_id:
        raise ValueError('You cannot change the patient or doctor for an existing medical record')
    changed = []
    for key, attr in RECORD_FIELDS.items():
        if key in data:
            setattr(r, attr, data[key])
            changed.append(key)
    r.save()
    RecordAccess.objects.create(record=r, user=actor, action='update', notes=','.join(changed)[:255])
    log_action(user=actor, action='update', object_type='ehr', object_id=r.id,
               detail={'updatedFields': changed}, request=request)
    return r


@transaction.atomic
def add_prescription(actor, r: MedicalRecord, data: dict, request=None) -> Prescription:
    if actor.role != User.ROLE_DOCTOR:
        raise PermissionError('Only doctors can add prescriptions')
    _require_author(actor, r)
    med = data['medication']
    p = Prescription.objects.create(
        record=r,
        name=med['name'], dosage=med['dosage'], frequency=med['frequency'], duration=med.get('duration', ''),
        instructions=data.get('instructions', ''),
        dispense_amount=data.get('dispenseAmount', ''),
        refills=data.get('refills') or 0,
        start_date=data.get('startDate') or timezone.localdate(),
        end_date=data.get('endDate'),
    )
    RecordAccess.objects.create(record=r, user=actor, action='update', notes='prescription added')
    log_action(user=actor, action='update', object_type='ehr', object_id=r.id,
               detail={'prescriptionId': p.id}, request=request)
    return p


@transaction.atomic
def add_lab_test(actor, r: MedicalRecord, data: dict, request=None) -> LabTest:
    if actor.role != User.ROLE_DOCTOR:
        raise PermissionError('Only doctors can add lab tests')
    _require_author(actor, r)
    t = LabTest.objects.create(
        record=r, name=data['name'], code=data.get('code', ''), instructions=data.get('instructions', ''),
    )
    RecordAccess.objects.create(record=r, user=actor, action='update', notes='lab test ordered')
    log_action(user=actor, action='update', object_type='ehr', object_id=r.id,
               detail={'labTestId': t.id}, request=request)
    return t


@transaction.atomic
def record_lab_results(actor, r: MedicalRecord, test_id: int, data: dict, request=None) -> LabTest:
    if actor.role != User.ROLE_DOCTOR:
        raise PermissionError('Only doctors can update lab test results')
    _require_author(actor, r)
    t = r.lab_tests.filter(id=test_id).first()
    if t is None:
        raise LabTest.DoesNotExist('No lab test found with that ID in this EHR')
    t.result_value = data['value']
    t.result_unit = data.get('unit', '')
    t.normal_range = data.get('normalRange', '')
    t.is_abnormal = bool(data.get('isAbnormal'))
    t.result_notes = data.get('notes', '')
    t.document_url = data.get('documentUrl', '')
    t.result_date = timezone.now()
    t.is_completed = True
    t.save()
    RecordAccess.objects.create(record=r, user=actor, action='update', notes='lab results recorded')
    log_action(user=actor, action='update', object_type='ehr', object_id=r.id,
               detail={'labTestId': t.id, 'abnormal': t.is_abnormal}, request=request)
    return t


# ---------------------------------------------------------------------
# Patient roster
# ---------------------------------------------------------------------
def _roster(user):
    qs = User.objects.filter(role=User.ROLE_PATIENT, is_active=True)
    if user.role == User.ROLE_ADMIN:
        return qs
    if user.role == User.ROLE_DOCTOR:
        return qs.filter(
            Q(patient_appointments__doctor_id=user.id) | Q(medical_records__doctor_id=user.id)
        ).distinct()
    raise PermissionError('You do not have permission to perform this action')


def serialize_patient(u, stats: Optional[dict]=None) -> dict:
    data = serialize_user(u)
    if stats is not None:
        data.update(stats)
    return data


def list_patients(user, *, q: Optional[str]=None, page: int=1, limit: int=20) -> Tuple[List[dict], int]:
    qs = _roster(user)
    if q:
        qs = qs.filter(Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q))
    ids = list(qs.values_list('id', flat=True))
    # annotate over a fresh queryset so the roster joins do not inflate counts
    annotated = (
        User.objects.filter(id__in=ids)
        .annotate(
            appointment_count=Count('patient_appointments', distinct=True),
            record_count=Count('medical_records', distinct=True),
            last_visit=Max('patient_appointments__start_time'),
        )
        .order_by('last_name', 'first_name', 'id')
    )
    items, total = _page(annotated, page, limit or 20)
    return [serialize_patient(u, {
        'appointmentCount': u.appointment_count,
        'recordCount': u.record_count,
        'lastVisit': u.last_visit.isoformat() if u.last_visit else None,
    }) for u in items], total


def get_patient(user, patient_id: int):
    if user.role == User.ROLE_PATIENT:
        if user.id != patient_id:
            raise PermissionError("You are not authorized to access other patients' records")
        return user
    patient = _roster(user).filter(id=patient_id).first()
    if patient is None:
        if user.role == User.ROLE_DOCTOR and User.objects.filter(id=patient_id, role=User.ROLE_PATIENT).exists():
            raise PermissionError("You are not authorized to access this patient's records")
        raise User.DoesNotExist('No patient found with that ID')
    return patient


def roster_records(user, patient_id: int) -> List[dict]:
    """All records of one roster patient, newest first; staff see every author's notes."""
    patient = get_patient(user, patient_id)
    return [serialize_record(r) for r in _records().filter(patient_id=patient.id).order_by('-created_at', '-id')]
