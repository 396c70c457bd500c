"""
Management command to populate the database with demo data.
"""
import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from clinic.management.commands.ensure_demo_users import PASSWORD, ensure_demo_users
from clinic.models import User, Appointment, MedicalRecord, Prescription, LabTest, Invoice

EXTRA_DOCTORS = [
    {'email': 'sarah.johnson@example.com', 'first_name': 'Sarah', 'last_name': 'Johnson', 'specialization': 'Pediatrics'},
    {'email': 'michael.chen@example.com', 'first_name': 'Michael', 'last_name': 'Chen', 'specialization': 'Dermatology'},
]
EXTRA_PATIENTS = [
    {'email': 'emma.wilson@example.com', 'first_name': 'Emma', 'last_name': 'Wilson', 'gender': 'female'},
    {'email': 'robert.brown@example.com', 'first_name': 'Robert', 'last_name': 'Brown', 'gender': 'male'},
    {'email': 'olivia.davis@example.com', 'first_name': 'Olivia', 'last_name': 'Davis', 'gender': 'female'},
]
REASONS = ['Annual checkup', 'Follow-up consultation', 'Blood pressure review', 'Skin rash', 'Persistent cough']
COMPLAINTS = ['Headache', 'Fatigue', 'Chest discomfort', 'Shortness of breath', 'Joint pain']


class Command(BaseCommand):
    help = 'Populate database with demo data (idempotent for users, additive for activity).'

    def add_arguments(self, parser):
        parser.add_argument('--appointments', type=int, default=12)
        parser.add_argument('--seed', type=int, default=None)

    @transaction.atomic
    def handle(self, *args, **options):
        if options['seed'] is not None:
            random.seed(options['seed'])
        self.stdout.write('Creating demo data...')

        core = ensure_demo_users()
        doctors = [core['doctor']] + self.create_users(EXTRA_DOCTORS, User.ROLE_DOCTOR)
        patients = [core['patient']] + self.create_users(EXTRA_PATIENTS, User.ROLE_PATIENT)

        appointments = self.create_appointments(doctors, patients, options['appointments'])
        self.create_records(appointments)
        self.create_invoices(appointments, core['admin'])

        self.stdout.write(self.style.SUCCESS('Demo data created.'))

    def create_users(self, rows, role):
        users = []
        for i, data in enumerate(rows):
            defaults = {k: v for k, v in data.items() if k != 'email'}
            if role == User.ROLE_DOCTOR:
                defaults.setdefault('license_number', f'MD-{20001 + i}')
                defaults.setdefault('years_of_experience', 5 + 3 * i)
            user, created = User.objects.get_or_create(
                email=data['email'],
                defaults={'username': data['email'], 'role': role, **defaults},
            )
            if created:
                user.set_password(PASSWORD)
                user.save(update_fields=['password'])
            users.append(user)
            self.stdout.write(f'{role}: {user.email}')
        return users

    def create_appointments(self, doctors, patients, count):
        now = timezone.now().replace(minute=0, second=0, microsecond=0)
        created = []
        for i in range(count):
            doctor = doctors[i % len(doctors)]
            patient = patients[i % len(patients)]
            # half in the past, half ahead, on working hours
            day_offset = i - count // 2
            start = (now + timedelta(days=day_offset)).replace(hour=9 + (i % 8))
            end = start + timedelta(minutes=30)
            if Appointment.find_conflicts(doctor.id, start, end).exists():
                continue
            past = start < now
            a = Appointment.objects.create(
                patient=patient, doctor=doctor,
                start_time=start, end_time=end,
                type=Appointment.TYPE_TELEHEALTH if i % 3 == 0 else Appointment.TYPE_IN_PERSON,
                status=Appointment.STATUS_COMPLETED if past else random.choice(
                    [Appointment.STATUS_SCHEDULED, Appointment.STATUS_CONFIRMED]),
                reason=random.choice(REASONS),
            )
            if a.type == Appointment.TYPE_TELEHEALTH:
                a.telehealth_link = a.build_telehealth_link()
                a.save(update_fields=['telehealth_link'])
            created.append(a)
        self.stdout.write(f'appointments: {len(created)}')
        return created

    def create_records(self, appointments):
        n = 0
        for a in appointments:
            if a.status != Appointment.STATUS_COMPLETED:
                continue
            record = MedicalRecord.objects.create(
                patient=a.patient, doctor=a.doctor, appointment=a,
                visit_date=a.start_time,
                chief_complaint=random.choice(COMPLAINTS),
                vital_signs={
                    'temperature': round(random.uniform(36.2, 37.8), 1),
                    'bloodPressure': {'systolic': random.randint(105, 145), 'diastolic': random.randint(65, 95)},
                    'heartRate': random.randint(58, 98),
                    'height': random.randint(155, 190),
                    'weight': random.randint(50, 95),
                },
                diagnosis=[{'code': 'R51', 'description': 'Headache', 'isPrimary': True}],
                treatment='Rest, fluids and review in two weeks',
            )
            Prescription.objects.create(record=record, name='Ibuprofen', dosage='400mg', frequency='Every 8 hours',
                                        duration='5 days')
            LabTest.objects.create(record=record, name='Complete blood count', code='CBC')
            n += 1
        self.stdout.write(f'records: {n}')

    def create_invoices(self, appointments, admin):
        n = 0
        for a in appointments:
            if a.status != Appointment.STATUS_COMPLETED:
                continue
            fee = Decimal(random.choice([80, 120, 150, 200]))
            inv = Invoice(
                patient=a.patient, doctor=a.doctor, appointment=a, date=a.start_time,
                items=[{'service': 'Consultation', 'quantity': 1, 'unitPrice': float(fee)}],
                created_by=admin, last_modified_by=admin,
            )
            if n % 2 == 0:
                inv.amount_paid = fee
                inv.payment_method = 'credit_card'
            inv.save()
            a.payment_status = 'paid' if inv.status == Invoice.STATUS_PAID else 'pending'
            a.save(update_fields=['payment_status'])
            n += 1
        self.stdout.write(f'invoices: {n}')
