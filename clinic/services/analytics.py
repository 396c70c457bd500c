"""
Dashboard and reporting aggregates.

Dashboards are role specific and cached per user for
``ANALYTICS_CACHE_SECONDS``; the detailed appointment and financial
reports are computed on demand for staff.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db.models import Avg, Count, Sum
from django.db.models.functions import ExtractHour, ExtractIsoWeekDay, TruncMonth
from django.utils import timezone

from clinic.models import Appointment, Invoice, MedicalRecord
from clinic.services.appointments import serialize_appointment
from clinic.services.billing import serialize_invoice
from clinic.services.ehr import serialize_record

User = get_user_model()
logger = logging.getLogger(__name__)

DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


def dashboard_cache_key(user) -> str:
    return f'analytics:dashboard:{user.id}'


def _money(v) -> float:
    return float(v or 0)


def _revenue(qs) -> dict:
    agg = qs.aggregate(total=Sum('total'), collected=Sum('amount_paid'))
    return {'total': _money(agg['total']), 'collected': _money(agg['collected'])}


def _distribution(qs, field: str) -> list:
    return [{'_id': row[field], 'count': row['count']} for row in qs.values(field).annotate(count=Count('id')).order_by(field)]


def _bounds(now):
    local = timezone.localtime(now)
    tz = timezone.get_current_timezone()
    start_of_day = timezone.make_aware(datetime.combine(local.date(), time.min), tz)
    # weeks start on Sunday
    start_of_week = start_of_day - timedelta(days=local.isoweekday() % 7)
    start_of_month = start_of_day.replace(day=1)
    start_of_year = start_of_month.replace(month=1)
    return start_of_day, start_of_week, start_of_month, start_of_year


def _admin_stats(now) -> dict:
    day, _, month, year = _bounds(now)
    active = Appointment.objects.exclude(status__in=Appointment.INACTIVE_STATUSES)
    live_bills = Invoice.objects.filter(status__in=[Invoice.STATUS_PAID, Invoice.STATUS_PENDING])
    trend_start = month.replace(year=month.year - 1)
    trend = (
        Invoice.objects.filter(date__gte=trend_start)
        .annotate(month=TruncMonth('date'))
        .values('month')
        .annotate(total=Sum('total'), collected=Sum('amount_paid'))
        .order_by('month')
    )
    return {
        'users': {
            'patients': User.objects.filter(role=User.ROLE_PATIENT, is_active=True).count(),
            'doctors': User.objects.filter(role=User.ROLE_DOCTOR, is_active=True).count(),
        },
        'appointments': {
            'total': Appointment.objects.count(),
            'today': Appointment.objects.filter(start_time__gte=day, start_time__lt=day + timedelta(days=1)).count(),
            'upcoming': active.filter(start_time__gte=now).count(),
            'statusDistribution': _distribution(Appointment.objects.all(), 'status'),
        },
        'financials': {
            'monthlyRevenue': _revenue(live_bills.filter(date__gte=month)),
            'yearlyRevenue': _revenue(live_bills.filter(date__gte=year)),
            'recentBillings': [serialize_invoice(i) for i in
                               Invoice.objects.select_related('patient', 'doctor').order_by('-date', '-id')[:10]],
            'revenueTrend': [
                {'label': f"{row['month']:%Y-%m}", 'total': _money(row['total']), 'collected': _money(row['collected'])}
                for row in trend
            ],
        },
    }


def _doctor_stats(user, now) -> dict:
    day, week, month, _ = _bounds(now)
    mine = Appointment.objects.select_related('patient', 'doctor').filter(doctor_id=user.id)
    return {
        'patients': {'total': mine.values('patient_id').distinct().count()},
        'appointments': {
            'today': [serialize_appointment(a) for a in
                      mine.filter(start_time__gte=day, start_time__lt=day + timedelta(days=1)).order_by('start_time')],
            'thisWeek': mine.filter(start_time__gte=week, start_time__lt=week + timedelta(days=7)).count(),
            'upcoming': [serialize_appointment(a) for a in
                         mine.filter(start_time__gte=now).exclude(status__in=Appointment.INACTIVE_STATUSES)
                         .order_by('start_time')[:10]],
            'typeDistribution': _distribution(mine, 'type'),
        },
        'medicalRecords': {
            'recentEHRs': [serialize_record(r) for r in
                           MedicalRecord.objects.select_related('patient', 'doctor')
                           .filter(doctor_id=user.id).order_by('-created_at')[:5]],
        },
        'financials': {
            'monthlyRevenue': _revenue(Invoice.objects.filter(doctor_id=user.id, date__gte=month)),
        },
    }


def _patient_stats(user, now) -> dict:
    mine = Appointment.objects.select_related('patient', 'doctor').filter(patient_id=user.id)
    bills = Invoice.objects.select_related('patient', 'doctor').filter(patient_id=user.id)
    return {
        'appointments': {
            'total': mine.count(),
            'completed': mine.filter(status=Appointment.STATUS_COMPLETED).count(),
            'upcoming': [serialize_appointment(a) for a in
                         mine.filter(start_time__gte=now).exclude(status__in=Appointment.INACTIVE_STATUSES)
                         .order_by('start_time')[:5]],
        },
        'medicalRecords': {
            'recentEHRs': [serialize_record(r) for r in
                           MedicalRecord.objects.select_related('patient', 'doctor')
                           .filter(patient_id=user.id).order_by('-created_at')[:5]],
        },
        'financials': {
            'totalBillings': bills.count(),
            'pendingBillings': [serialize_invoice(i) for i in
                                bills.filter(status__in=[Invoice.STATUS_PENDING, Invoice.STATUS_OVERDUE])
                                .order_by('due_date')[:5]],
        },
    }


def dashboard(user, now=None) -> dict:
    key = dashboard_cache_key(user)
    cached = cache.get(key)
    if cached is not None:
        return cached
    logger.debug("dashboard cache miss for user %s", user.id)
    now = now or timezone.now()
    if user.role == User.ROLE_ADMIN:
        stats = _admin_stats(now)
    elif user.role == User.ROLE_DOCTOR:
        stats = _doctor_stats(user, now)
    else:
        stats = _patient_stats(user, now)
    data = {'role': user.role, 'stats': stats, 'generatedAt': now.isoformat()}
    cache.set(key, data, settings.ANALYTICS_CACHE_SECONDS)
    return data


def _require_staff(user) -> None:
    if user.role not in (User.ROLE_ADMIN, User.ROLE_DOCTOR):
        raise PermissionError('You do not have permission to access this resource')


def appointment_report(user, *, start_date=None, end_date=None, now=None) -> dict:
    _require_staff(user)
    now = now or timezone.now()
    qs = Appointment.objects.all()
    if user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor_id=user.id)
    if start_date:
        qs = qs.filter(start_time__gte=start_date)
    if end_date:
        qs = qs.filter(start_time__lte=end_date)

    by_day = [0] * 7
    for row in qs.annotate(dow=ExtractIsoWeekDay('start_time')).values('dow').annotate(count=Count('id')):
        by_day[row['dow'] % 7] += row['count']
    by_hour = [0] * 24
    for row in qs.annotate(hour=ExtractHour('start_time')).values('hour').annotate(count=Count('id')):
        by_hour[row['hour']] += row['count']

    past = qs.filter(start_time__lt=now)
    total_past = past.count()
    no_shows = past.filter(status=Appointment.STATUS_NO_SHOW).count()
    durations = [(end - start).total_seconds() / 60 for start, end in qs.values_list('start_time', 'end_time')]

    return {
        'byStatus': _distribution(qs, 'status'),
        'byType': _distribution(qs, 'type'),
        'byDayOfWeek': {'labels': DAY_NAMES, 'data': by_day},
        'byHourOfDay': {'labels': [f'{h}:00' for h in range(24)], 'data': by_hour},
        'noShowRate': {
            'totalPast': total_past,
            'noShows': no_shows,
            'rate': (no_shows / total_past * 100) if total_past else 0,
        },
        'averageDuration': round(sum(durations) / len(durations)) if durations else 0,
    }


def financial_report(user, *, start_date=None, end_date=None, now=None) -> dict:
    _require_staff(user)
    now = now or timezone.now()
    qs = Invoice.objects.all()
    if user.role == User.ROLE_DOCTOR:
        qs = qs.filter(doctor_id=user.id)
    qs = qs.filter(date__gte=start_date or now - timedelta(days=365))
    if end_date:
        qs = qs.filter(date__lte=end_date)

    monthly = []
    for row in (qs.annotate(month=TruncMonth('date')).values('month')
                .annotate(billed=Sum('total'), collected=Sum('amount_paid')).order_by('month')):
        billed, collected = _money(row['billed']), _money(row['collected'])
        monthly.append({'label': f"{row['month']:%Y-%m}", 'billed': billed, 'collected': collected,
                        'outstanding': round(billed - collected, 2)})

    by_status = [
        {'_id': row['status'], 'count': row['count'], 'amount': _money(row['amount'])}
        for row in qs.values('status').annotate(count=Count('id'), amount=Sum('total')).order_by('status')
    ]
    methods = [
        {'_id': row['payment_method'], 'count': row['count'], 'amount': _money(row['amount'])}
        for row in qs.filter(status=Invoice.STATUS_PAID).exclude(payment_method='')
        .values('payment_method').annotate(count=Count('id'), amount=Sum('amount_paid')).order_by('payment_method')
    ]
    outstanding = [
        {'_id': row['status'], 'totalOutstanding': _money(row['balance']), 'count': row['count']}
        for row in qs.filter(status__in=[Invoice.STATUS_PENDING, Invoice.STATUS_OVERDUE])
        .values('status').annotate(balance=Sum('balance'), count=Count('id')).order_by('status')
    ]
    avg = qs.aggregate(avg=Avg('total'))['avg']
    return {
        'monthlyRevenue': monthly,
        'billingsByStatus': by_status,
        'averageInvoiceAmount': round(float(avg), 2) if avg is not None else 0,
        'paymentMethodDistribution': methods,
        'outstandingBalance': {
            'total': round(sum(row['totalOutstanding'] for row in outstanding), 2),
            'byStatus': outstanding,
        },
    }


def invalidate_dashboards(*user_ids: Optional[int]) -> None:
    """Drop the cached dashboards of the given users and of every admin."""
    ids = {uid for uid in user_ids if uid}
    ids.update(User.objects.filter(role=User.ROLE_ADMIN).values_list('id', flat=True))
    cache.delete_many([f'analytics:dashboard:{uid}' for uid in ids])
