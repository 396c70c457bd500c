"""
Database models for the practice backend.

These models capture the core concepts of a healthcare practice: users
(patients, doctors and administrators), appointments, electronic health
records with their prescriptions and lab tests, invoices and an audit
trail.  Field names on the JSON side stay camelCase; serialisation is
done by the service layer.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone


def _hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode()).hexdigest()


class User(AbstractUser):
    """Custom user model with a practice role.

    The e-mail address is the login identifier; ``username`` mirrors it
    so that Django's authentication backend keeps working.  Deactivating
    an account (``is_active=False``) is the soft delete used by the API.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone_number = models.CharField(max_length=32, blank=True)
    address = models.JSONField(default=dict, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    profile_picture = models.CharField(max_length=512, blank=True, default='default.jpg')

    # doctor specific
    specialization = models.CharField(max_length=128, blank=True, db_index=True)
    license_number = models.CharField(max_length=64, blank=True)
    years_of_experience = models.PositiveIntegerField(null=True, blank=True)

    # patient specific
    medical_history = models.JSONField(default=list, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)

    password_changed_at = models.DateTimeField(null=True, blank=True)
    password_reset_token = models.CharField(max_length=64, blank=True, null=True, db_index=True)
    password_reset_expires = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def changed_password_after(self, issued_at: int | float | None) -> bool:
        """True when the password changed after a token issued at ``issued_at`` (epoch seconds)."""
        if not self.password_changed_at or issued_at is None:
            return False
        return int(self.password_changed_at.timestamp()) > int(issued_at)

    def mark_password_changed(self) -> None:
        # one second back so a token minted right after the change stays valid
        self.password_changed_at = timezone.now() - timedelta(seconds=1)

    def create_password_reset_token(self) -> str:
        raw = secrets.token_hex(32)
        self.password_reset_token = _hash_token(raw)
        self.password_reset_expires = timezone.now() + timedelta(minutes=settings.PASSWORD_RESET_TIMEOUT_MINUTES)
        return raw

    @classmethod
    def find_by_reset_token(cls, raw: str) -> 'User | None':
        return cls.objects.filter(
            password_reset_token=_hash_token(raw),
            password_reset_expires__gt=timezone.now(),
        ).first()


class Appointment(models.Model):
    """A booked visit between a patient and a doctor."""
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no-show'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No show'),
    ]
    INACTIVE_STATUSES = (STATUS_CANCELLED, STATUS_NO_SHOW)

    TYPE_IN_PERSON = 'in-person'
    TYPE_TELEHEALTH = 'telehealth'
    TYPE_CHOICES = [
        (TYPE_IN_PERSON, 'In person'),
        (TYPE_TELEHEALTH, 'Telehealth'),
    ]

    PAYMENT_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
    ]

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_IN_PERSON)
    reason = models.CharField(max_length=500)
    notes = models.TextField(blank=True)
    follow_up = models.BooleanField(default=False)
    reminder_sent = models.BooleanField(default=False)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_CHOICES, blank=True, null=True)
    telehealth_link = models.CharField(max_length=512, blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)
    last_modified_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='modified_appointments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['doctor', 'start_time'], name='clinic_appo_doctor__9b1f3e_idx'),
            models.Index(fields=['patient', 'start_time'], name='clinic_appo_patient_4c2a7d_idx'),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} p={self.patient_id} @ {self.start_time:%F %H:%M}"

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    @classmethod
    def find_conflicts(cls, doctor_id, start, end, exclude_id=None):
        qs = cls.objects.filter(
            Q(doctor_id=doctor_id) & Q(start_time__lt=end) & Q(end_time__gt=start)
        ).exclude(status__in=cls.INACTIVE_STATUSES)
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        return qs

    def build_telehealth_link(self) -> str:
        stamp = int(timezone.now().timestamp() * 1000)
        prefix = secrets.token_hex(4)
        return f"https://{settings.TELEHEALTH_DOMAIN}/room/{prefix}-{self.id}-{stamp}"


class MedicalRecord(models.Model):
    """One electronic health record entry written by a doctor for a visit."""
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='authored_records')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='records'
    )
    visit_date = models.DateTimeField(default=timezone.now)
    chief_complaint = models.TextField()
    vital_signs = models.JSONField(default=dict, blank=True)
    diagnosis = models.JSONField(default=list, blank=True)
    treatment = models.TextField()
    notes = models.TextField(blank=True)
    follow_up = models.JSONField(default=dict, blank=True)
    imaging = models.JSONField(default=list, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at'], name='clinic_medi_patient_7e5d21_idx'),
            models.Index(fields=['doctor', 'created_at'], name='clinic_medi_doctor__a83c90_idx'),
        ]

    def __str__(self) -> str:
        return f"ehr {self.id} p={self.patient_id} d={self.doctor_id}"

    @property
    def bmi(self) -> float | None:
        vitals = self.vital_signs or {}
        height, weight = vitals.get('height'), vitals.get('weight')
        if not height or not weight:
            return None
        meters = float(height) / 100
        return round(float(weight) / (meters * meters), 1)


class Prescription(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='prescriptions')
    name = models.CharField(max_length=255)
    dosage = models.CharField(max_length=128)
    frequency = models.CharField(max_length=128)
    duration = models.CharField(max_length=128, blank=True)
    instructions = models.TextField(blank=True)
    dispense_amount = models.CharField(max_length=64, blank=True)
    refills = models.PositiveIntegerField(default=0)
    start_date = models.DateField(default=timezone.localdate)
    end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} {self.dosage} (ehr {self.record_id})"


class LabTest(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='lab_tests')
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=64, blank=True)
    instructions = models.TextField(blank=True)
    ordered_at = models.DateTimeField(default=timezone.now)
    is_completed = models.BooleanField(default=False)
    result_value = models.CharField(max_length=255, blank=True)
    result_unit = models.CharField(max_length=64, blank=True)
    normal_range = models.CharField(max_length=128, blank=True)
    is_abnormal = models.BooleanField(default=False)
    result_notes = models.TextField(blank=True)
    document_url = models.CharField(max_length=512, blank=True)
    result_date = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return f"lab {self.name} (ehr {self.record_id})"


class RecordAccess(models.Model):
    """Who touched a health record and how."""
    ACTION_CHOICES = [
        ('view', 'view'),
        ('create', 'create'),
        ('update', 'update'),
        ('delete', 'delete'),
    ]
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='access_logs')
    user = models.ForeignKey(User, null=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=10, choices=ACTION_CHOICES)
    timestamp = models.DateTimeField(auto_now_add=True)
    notes = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ['timestamp']


class Invoice(models.Model):
    """A bill for services rendered to a patient.

    Line items are embedded as JSON.  Totals, balance and the
    paid/overdue status transitions are recomputed on every save.
    """
    STATUS_DRAFT = 'draft'
    STATUS_PENDING = 'pending'
    STATUS_PAID = 'paid'
    STATUS_OVERDUE = 'overdue'
    STATUS_CANCELLED = 'cancelled'
    STATUS_REFUNDED = 'refunded'
    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
        (STATUS_OVERDUE, 'Overdue'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_REFUNDED, 'Refunded'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('credit_card', 'Credit card'),
        ('debit_card', 'Debit card'),
        ('cash', 'Cash'),
        ('insurance', 'Insurance'),
        ('bank_transfer', 'Bank transfer'),
        ('other', 'Other'),
    ]

    invoice_number = models.CharField(max_length=32, unique=True)
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_invoices')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_invoices')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices'
    )
    date = models.DateTimeField(default=timezone.now, db_index=True)
    due_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    items = models.JSONField(default=list, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_details = models.JSONField(default=dict, blank=True)
    insurance = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices_created'
    )
    last_modified_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices_modified'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'date'], name='clinic_invo_patient_5b0e44_idx'),
            models.Index(fields=['doctor', 'date'], name='clinic_invo_doctor__d2f6a8_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.invoice_number} ({self.status})"

    @staticmethod
    def next_invoice_number(when=None) -> str:
        when = when or timezone.now()
        prefix = f"INV-{when:%y%m}-"
        last = (
            Invoice.objects.filter(invoice_number__startswith=prefix)
            .order_by('-invoice_number')
            .values_list('invoice_number', flat=True)
            .first()
        )
        seq = int(last.rsplit('-', 1)[1]) + 1 if last else 1
        return f"{prefix}{seq:04d}"

    def recalculate(self) -> None:
        subtotal = Decimal('0')
        items = []
        for item in self.items or []:
            item = dict(item)
            quantity = Decimal(str(item.get('quantity') or 1))
            unit_price = Decimal(str(item.get('unitPrice') or 0))
            discount = Decimal(str(item.get('discount') or 0))
            tax = Decimal(str(item.get('tax') or 0))
            line_total = item.get('total')
            line_total = Decimal(str(line_total)) if line_total is not None else quantity * unit_price - discount + tax
            item['total'] = float(line_total)
            items.append(item)
            subtotal += line_total
        self.items = items
        self.subtotal = subtotal
        self.total = subtotal + Decimal(self.tax or 0) - Decimal(self.discount or 0)
        self.balance = self.total - Decimal(self.amount_paid or 0)

        if self.balance <= 0 and self.status not in (self.STATUS_CANCELLED, self.STATUS_REFUNDED, self.STATUS_DRAFT):
            self.status = self.STATUS_PAID
        elif self.status == self.STATUS_PENDING and self.due_date and self.due_date < timezone.now():
            self.status = self.STATUS_OVERDUE

    def save(self, *args, **kwargs):
        if not self.invoice_number:
            self.invoice_number = self.next_invoice_number()
        if not self.due_date:
            self.due_date = (self.date or timezone.now()) + timedelta(days=settings.INVOICE_DUE_DAYS)
        self.recalculate()
        super().save(*args, **kwargs)


class AuditEvent(models.Model):
    ACTION_CHOICES = [(a, a) for a in (
        'login', 'logout', 'create', 'read', 'update', 'delete', 'export', 'payment',
        'password_change', 'password_reset', 'telehealth_join', 'telehealth_leave', 'failed_login',
    )]
    RESOURCE_CHOICES = [(r, r) for r in (
        'user', 'appointment', 'ehr', 'billing', 'telehealth', 'system', 'analytics',
    )]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=32, choices=ACTION_CHOICES)
    object_type = models.CharField(max_length=32, choices=RESOURCE_CHOICES, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=512, blank=True)
    successful = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='clinic_audi_action_1f9c3b_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='clinic_audi_object__6d2e58_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
