from datetime import timedelta

import pytest
from django.core.cache import cache
from django.urls import reverse
from django.utils import timezone

from clinic.models import Invoice
from clinic.services.analytics import dashboard_cache_key
from clinic.services.scheduling import js_weekday

from .conftest import book, client_for, tomorrow_at

pytestmark = pytest.mark.django_db


def test_patient_dashboard(patient, doctor):
    book(patient, doctor, tomorrow_at(9))
    book(patient, doctor, timezone.now() - timedelta(days=3), status='completed')
    r = client_for(patient).get(reverse('analytics-dashboard'))
    assert r.status_code == 200
    data = r.data['data']
    assert data['role'] == 'patient'
    assert data['stats']['appointments']['total'] == 2
    assert data['stats']['appointments']['completed'] == 1
    assert len(data['stats']['appointments']['upcoming']) == 1
    assert data['generatedAt']


def test_doctor_dashboard(patient, other_patient, doctor):
    book(patient, doctor, tomorrow_at(9))
    book(other_patient, doctor, tomorrow_at(10), type='telehealth')
    stats = client_for(doctor).get(reverse('analytics-dashboard')).data['data']['stats']
    assert stats['patients']['total'] == 2
    assert len(stats['appointments']['upcoming']) == 2
    types = {row['_id']: row['count'] for row in stats['appointments']['typeDistribution']}
    assert types == {'in-person': 1, 'telehealth': 1}


def test_admin_dashboard(admin, patient, doctor):
    book(patient, doctor, tomorrow_at(9))
    Invoice.objects.create(patient=patient, doctor=doctor, items=[{'service': 'Visit', 'unitPrice': 120}])
    stats = client_for(admin).get(reverse('analytics-dashboard')).data['data']['stats']
    assert stats['users'] == {'patients': 1, 'doctors': 1}
    assert stats['appointments']['upcoming'] == 1
    assert stats['financials']['monthlyRevenue']['total'] == 120.0
    assert len(stats['financials']['recentBillings']) == 1


def test_dashboard_is_cached_until_appointments_change(patient, doctor):
    client = client_for(patient)
    first = client.get(reverse('analytics-dashboard')).data['data']
    assert first['stats']['appointments']['total'] == 0
    assert cache.get(dashboard_cache_key(patient)) is not None

    book(patient, doctor, tomorrow_at(9))
    cached = client.get(reverse('analytics-dashboard')).data['data']
    assert cached['generatedAt'] == first['generatedAt']
    assert cached['stats']['appointments']['total'] == 0

    start = tomorrow_at(11)
    r = client.post(reverse('appointments'), {
        'doctor': doctor.id, 'startTime': start.isoformat(),
        'endTime': (start + timedelta(minutes=30)).isoformat(), 'reason': 'Follow-up',
    }, format='json')
    assert r.status_code == 201
    fresh = client.get(reverse('analytics-dashboard')).data['data']
    assert fresh['stats']['appointments']['total'] == 2


def test_admin_dashboard_refreshes_after_writes(admin, patient, doctor):
    client = client_for(admin)
    first = client.get(reverse('analytics-dashboard')).data['data']['stats']
    assert first['appointments']['total'] == 0
    assert cache.get(dashboard_cache_key(admin)) is not None

    start = tomorrow_at(11)
    r = client_for(patient).post(reverse('appointments'), {
        'doctor': doctor.id, 'startTime': start.isoformat(),
        'endTime': (start + timedelta(minutes=30)).isoformat(), 'reason': 'Follow-up',
    }, format='json')
    assert r.status_code == 201
    assert cache.get(dashboard_cache_key(admin)) is None
    stats = client.get(reverse('analytics-dashboard')).data['data']['stats']
    assert stats['appointments']['total'] == 1
    assert stats['financials']['recentBillings'] == []

    r = client_for(doctor).post(reverse('billing'), {
        'patient': patient.id, 'items': [{'service': 'Visit', 'unitPrice': '80.00'}],
    }, format='json')
    assert r.status_code == 201
    stats = client.get(reverse('analytics-dashboard')).data['data']['stats']
    assert len(stats['financials']['recentBillings']) == 1


def test_appointment_report(admin, patient, doctor):
    book(patient, doctor, tomorrow_at(9))
    book(patient, doctor, tomorrow_at(10), minutes=60, type='telehealth')
    book(patient, doctor, timezone.now() - timedelta(days=2), status='no-show')
    book(patient, doctor, timezone.now() - timedelta(days=1), status='completed')

    r = client_for(admin).get(reverse('analytics-appointments'))
    assert r.status_code == 200
    data = r.data['data']
    assert sum(data['byDayOfWeek']['data']) == 4
    assert data['byDayOfWeek']['labels'][0] == 'Sunday'
    assert data['byDayOfWeek']['data'][js_weekday(timezone.localtime(tomorrow_at(9)))] >= 2
    assert data['byHourOfDay']['data'][9] >= 1
    assert data['noShowRate'] == {'totalPast': 2, 'noShows': 1, 'rate': 50.0}
    # 30, 60, 30, 30 minutes
    assert data['averageDuration'] == 38
    statuses = {row['_id']: row['count'] for row in data['byStatus']}
    assert statuses['scheduled'] == 2


def test_doctor_report_is_scoped(patient, doctor, other_doctor):
    book(patient, doctor, tomorrow_at(9))
    book(patient, other_doctor, tomorrow_at(10))
    data = client_for(doctor).get(reverse('analytics-appointments')).data['data']
    assert sum(data['byDayOfWeek']['data']) == 1


def test_reports_are_staff_only(patient):
    assert client_for(patient).get(reverse('analytics-appointments')).status_code == 403
    assert client_for(patient).get(reverse('analytics-financial')).status_code == 403


def test_financial_report(admin, patient, doctor):
    paid = Invoice.objects.create(patient=patient, doctor=doctor, items=[{'service': 'Visit', 'unitPrice': 100}])
    paid.amount_paid = paid.total
    paid.payment_method = 'credit_card'
    paid.save()
    Invoice.objects.create(patient=patient, doctor=doctor, items=[{'service': 'Lab', 'unitPrice': 50}])

    r = client_for(admin).get(reverse('analytics-financial'))
    assert r.status_code == 200
    data = r.data['data']
    assert data['averageInvoiceAmount'] == 75.0
    assert data['outstandingBalance']['total'] == 50.0
    assert data['paymentMethodDistribution'] == [{'_id': 'credit_card', 'count': 1, 'amount': 100.0}]
    month = data['monthlyRevenue'][-1]
    assert month['billed'] == 150.0
    assert month['collected'] == 100.0
    assert month['outstanding'] == 50.0
    statuses = {row['_id']: row['count'] for row in data['billingsByStatus']}
    assert statuses == {'paid': 1, 'pending': 1}
