import logging
import statistics
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Optional, Tuple, List

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from clinic.models import Appointment, Invoice
from clinic.permissions import owns_object
from clinic.services.audit import log_action
from clinic.services.users import serialize_user

User = get_user_model()
logger = logging.getLogger(__name__)

STAFF = (User.ROLE_ADMIN, User.ROLE_DOCTOR)
ANOMALY_WINDOW_DAYS = 30
DUPLICATE_TOLERANCE = Decimal('0.05')


def _money(v) -> float:
    return float(v or 0)


def serialize_invoice(inv: Invoice) -> dict:
    return {
        'id': inv.id,
        'invoiceNumber': inv.invoice_number,
        'patient': serialize_user(inv.patient, brief=True),
        'doctor': serialize_user(inv.doctor, brief=True),
        'appointment': inv.appointment_id,
        'date': inv.date.isoformat(),
        'dueDate': inv.due_date.isoformat() if inv.due_date else None,
        'status': inv.status,
        'items': inv.items or [],
        'subtotal': _money(inv.subtotal),
        'tax': _money(inv.tax),
        'discount': _money(inv.discount),
        'total': _money(inv.total),
        'amountPaid': _money(inv.amount_paid),
        'balance': _money(inv.balance),
        'paymentMethod': inv.payment_method or None,
        'paymentDetails': inv.payment_details or {},
        'insurance': inv.insurance or {},
        'notes': inv.notes,
    }


def _items(raw) -> list:
    items = []
    for item in raw or []:
        item = dict(item)
        for key in ('unitPrice', 'discount', 'tax', 'total'):
            if item.get(key) is not None:
                item[key] = float(item[key])
        items.append(item)
    return items


def list_invoices(user, *, status: Optional[str]=None, page: int=1, limit: int=10) -> Tuple[List[dict], int]:
    qs = Invoice.objects.select_related('patient', 'doctor')
    if user.role == User.ROLE_PATIENT:
        qs = qs.filter(patient_id=user.id)
    elif user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor_id=user.id)
    elif user.role != User.ROLE_ADMIN:
        qs = qs.none()
    if status:
        qs = qs.filter(status=status)

    total = qs.count()
    page = max(1, int(page or 1))
    limit = min(100, max(1, int(limit or 10)))
    start = (page - 1) * limit
    items = qs.order_by('-date', '-id')[start:start + limit]
    return [serialize_invoice(i) for i in items], total


def get_invoice(user, invoice_id: int) -> Invoice:
    inv = Invoice.objects.select_related('patient', 'doctor').get(id=invoice_id)
    if not owns_object(user, inv):
        raise PermissionError('You are not authorized to access this billing')
    return inv


@transaction.atomic
def create_invoice(actor, data: dict, request=None) -> Invoice:
    if actor.role not in STAFF:
        raise PermissionError('Only doctors or admins can create billings')
    patient = User.objects.filter(id=data['patient'], role=User.ROLE_PATIENT).first()
    if patient is None:
        raise User.DoesNotExist('No patient found with that ID')
    doctor_id = data.get('doctor') or (actor.id if actor.role == User.ROLE_DOCTOR else None)
    doctor = User.objects.filter(id=doctor_id, role=User.ROLE_DOCTOR).first() if doctor_id else None
    if doctor is None:
        raise User.DoesNotExist('No doctor found with that ID')

    appointment = None
    if data.get('appointment'):
        appointment = Appointment.objects.get(id=data['appointment'])
        if appointment.patient_id != patient.id or appointment.doctor_id != doctor.id:
            raise ValueError('The appointment does not match the specified patient and doctor')

    inv = Invoice(
        patient=patient, doctor=doctor, appointment=appointment,
        items=_items(data.get('items')),
        tax=data.get('tax') or Decimal('0'),
        discount=data.get('discount') or Decimal('0'),
        status=data.get('status') or Invoice.STATUS_PENDING,
        insurance=dict(data.get('insurance') or {}),
        notes=data.get('notes', ''),
        created_by=actor, last_modified_by=actor,
    )
    if data.get('dueDate'):
        inv.due_date = data['dueDate']
    inv.save()

    if appointment is not None:
        Appointment.objects.filter(id=appointment.id).update(payment_status='pending')
    log_action(user=actor, action='create', object_type='billing', object_id=inv.id,
               detail={'invoiceNumber': inv.invoice_number, 'total': _money(inv.total)}, request=request)
    return inv


@transaction.atomic
def update_invoice(actor, inv: Invoice, data: dict, request=None) -> Invoice:
    if actor.role not in STAFF:
        raise PermissionError('Only doctors or admins can update billings')
    if not owns_object(actor, inv):
        raise PermissionError('You are not authorized to access this billing')
    changed = []
    if 'items' in data:
        inv.items = _items(data['items'])
        changed.append('items')
    for key, attr in (('tax', 'tax'), ('discount', 'discount'), ('dueDate', 'due_date'),
                      ('status', 'status'), ('notes', 'notes')):
        if key in data:
            setattr(inv, attr, data[key])
            changed.append(key)
    if 'insurance' in data:
        inv.insurance = dict(data['insurance'])
        changed.append('insurance')
    inv.last_modified_by = actor
    inv.save()
    log_action(user=actor, action='update', object_type='billing', object_id=inv.id,
               detail={'updatedFields': changed}, request=request)
    return inv


def delete_invoice(actor, inv: Invoice, request=None) -> None:
    if actor.role != User.ROLE_ADMIN:
        raise PermissionError('Only admins can delete billings')
    invoice_id = inv.id
    inv.delete()
    log_action(user=actor, action='delete', object_type='billing', object_id=invoice_id, request=request)


@transaction.atomic
def process_payment(actor, inv: Invoice, data: dict, request=None) -> Invoice:
    if not owns_object(actor, inv):
        raise PermissionError('You are not authorized to access this billing')
    if inv.status == Invoice.STATUS_PAID:
        raise ValueError('This invoice has already been paid')
    amount, method = data.get('amount'), data.get('paymentMethod')
    if not amount or not method:
        raise ValueError('Payment amount and method are required')

    details = dict(data.get('paymentDetails') or {})
    stamp = int(timezone.now().timestamp() * 1000)
    inv.payment_details = {
        'transactionId': details.get('transactionId') or f'txn_{stamp}',
        'cardLast4': details.get('cardLast4') or 'N/A',
        'paymentDate': timezone.now().isoformat(),
    }
    inv.amount_paid = Decimal(inv.amount_paid or 0) + Decimal(amount)
    inv.payment_method = method
    if inv.status == Invoice.STATUS_OVERDUE:
        inv.status = Invoice.STATUS_PENDING
    inv.last_modified_by = actor
    inv.save()

    if inv.appointment_id and inv.status == Invoice.STATUS_PAID:
        Appointment.objects.filter(id=inv.appointment_id).update(payment_status='paid')
    log_action(user=actor, action='payment', object_type='billing', object_id=inv.id, request=request,
               detail={'amount': _money(amount), 'paymentMethod': method,
                       'transactionId': inv.payment_details['transactionId']})
    logger.info("payment of %s recorded on %s (status=%s)", amount, inv.invoice_number, inv.status)
    return inv


def invoice_document(actor, inv: Invoice, request=None) -> dict:
    filename = f'Invoice_{inv.invoice_number}.pdf'
    log_action(user=actor, action='export', object_type='billing', object_id=inv.id, request=request)
    return {'invoiceUrl': f'/invoices/{filename}', 'filename': filename}


def _ref(inv: Invoice) -> dict:
    return {'id': inv.id, 'invoiceNumber': inv.invoice_number, 'total': _money(inv.total), 'date': inv.date.isoformat()}


def detect_anomalies(actor, now=None, request=None) -> List[dict]:
    """Scan the last 30 days of bills for duplicates, outliers and empty invoices."""
    if actor.role not in STAFF:
        raise PermissionError('You do not have permission to perform this action')
    now = now or timezone.now()
    recent = list(
        Invoice.objects.filter(created_at__gte=now - timedelta(days=ANOMALY_WINDOW_DAYS)).order_by('-created_at', '-id')
    )
    anomalies = []

    seen = defaultdict(list)
    for inv in recent:
        key = (inv.patient_id, inv.doctor_id, timezone.localtime(inv.date).date())
        if seen[key]:
            first = seen[key][0]
            base = Decimal(first.total or 0)
            if base and abs(base - Decimal(inv.total or 0)) / base < DUPLICATE_TOLERANCE:
                anomalies.append({
                    'type': 'duplicate_billing',
                    'severity': 'high',
                    'details': {'billing1': _ref(first), 'billing2': _ref(inv)},
                })
        seen[key].append(inv)

    if len(recent) > 5:
        amounts = [float(inv.total or 0) for inv in recent]
        avg = statistics.fmean(amounts)
        threshold = avg + 2 * statistics.pstdev(amounts)
        for inv in recent:
            if float(inv.total or 0) > threshold:
                anomalies.append({
                    'type': 'unusually_high_amount',
                    'severity': 'medium',
                    'details': _ref(inv) | {'avgAmount': round(avg, 2), 'threshold': round(threshold, 2)},
                })

    for inv in recent:
        if not inv.items:
            anomalies.append({
                'type': 'missing_items',
                'severity': 'medium',
                'details': {'id': inv.id, 'invoiceNumber': inv.invoice_number, 'date': inv.date.isoformat()},
            })

    log_action(user=actor, action='read', object_type='billing', detail={'anomaliesFound': len(anomalies)},
               request=request)
    return anomalies
