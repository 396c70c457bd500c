"""
URL mappings for the practice API.

Paths mirror the ones the portal client calls and carry no trailing
slash (``APPEND_SLASH`` is off).
"""
from django.urls import path, include

from .auth_views import (
    forgot_password_view,
    login_view,
    logout_view,
    refresh_view,
    reset_password_view,
    signup_view,
    update_password_view,
)
from .views import analytics, appointments, billing, ehr, health, telehealth, users


urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Authentication
    path('api/auth/signup', signup_view, name='signup'),
    path('api/auth/login', login_view, name='login'),
    path('api/auth/logout', logout_view, name='logout'),
    path('api/auth/refresh', refresh_view, name='token-refresh'),
    path('api/auth/update-password', update_password_view, name='update-password'),
    path('api/auth/forgot-password', forgot_password_view, name='forgot-password'),
    path('api/auth/reset-password/<str:token>', reset_password_view, name='reset-password'),

    # Appointments
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/doctor-availability', appointments.availability, name='doctor-availability'),
    path('api/appointments/suggest-slots', appointments.suggestions, name='suggest-slots'),
    path('api/appointments/<int:pk>', appointments.appointment_detail, name='appointment-detail'),
    path('api/appointments/<int:pk>/cancel', appointments.appointment_cancel, name='appointment-cancel'),

    # Health records and patient roster
    path('api/ehr', ehr.records, name='ehr'),
    path('api/ehr/patients', ehr.patients, name='patients'),
    path('api/ehr/patients/<int:pk>', ehr.patient_detail, name='patient-detail'),
    path('api/ehr/patients/<int:pk>/records', ehr.patient_record_list, name='patient-records'),
    path('api/ehr/patient/<int:patient_id>', ehr.records_for_patient, name='ehr-patient'),
    path('api/ehr/<int:pk>', ehr.record_detail, name='ehr-detail'),
    path('api/ehr/<int:pk>/prescription', ehr.record_prescription, name='ehr-prescription'),
    path('api/ehr/<int:pk>/lab-test', ehr.record_lab_test, name='ehr-lab-test'),
    path('api/ehr/<int:pk>/lab-test/<int:test_id>/results', ehr.lab_test_results, name='ehr-lab-results'),

    # Billing
    path('api/billing', billing.billings, name='billing'),
    path('api/billing/anomalies', billing.billing_anomalies, name='billing-anomalies'),
    path('api/billing/<int:pk>', billing.billing_detail, name='billing-detail'),
    path('api/billing/<int:pk>/process-payment', billing.billing_payment, name='billing-payment'),
    path('api/billing/<int:pk>/generate-invoice', billing.billing_invoice, name='billing-invoice'),

    # Telehealth
    path('api/telehealth/appointments/<int:appointment_id>/session', telehealth.session, name='telehealth-session'),
    path('api/telehealth/appointments/<int:appointment_id>/end', telehealth.session_end, name='telehealth-end'),
    path('api/telehealth/upcoming', telehealth.upcoming, name='telehealth-upcoming'),
    path('api/telehealth/patients/<int:patient_id>/history', telehealth.history, name='telehealth-history'),

    # Users
    path('api/users', users.users, name='users'),
    path('api/users/me', users.me, name='users-me'),
    path('api/users/doctors', users.doctors, name='users-doctors'),
    path('api/users/<int:pk>', users.user_detail, name='user-detail'),

    # Analytics
    path('api/analytics/dashboard', analytics.dashboard_stats, name='analytics-dashboard'),
    path('api/analytics/appointments', analytics.appointment_analytics, name='analytics-appointments'),
    path('api/analytics/financial', analytics.financial_analytics, name='analytics-financial'),
]
