"""
Django admin registrations for the practice models.

Superusers can inspect and correct data through ``/admin/``.  Health
record access logs and audit events are read-only here.
"""

from django.contrib import admin

from .models import (
    User,
    Appointment,
    MedicalRecord,
    Prescription,
    LabTest,
    RecordAccess,
    Invoice,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'specialization', 'is_active')
    list_filter = ('role', 'is_active', 'specialization')
    search_fields = ('email', 'first_name', 'last_name', 'license_number')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'start_time', 'end_time', 'type', 'status', 'payment_status')
    list_filter = ('status', 'type', 'payment_status')
    search_fields = ('patient__email', 'doctor__email', 'reason')
    date_hierarchy = 'start_time'


class PrescriptionInline(admin.TabularInline):
    model = Prescription
    extra = 0


class LabTestInline(admin.TabularInline):
    model = LabTest
    extra = 0


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'visit_date', 'chief_complaint')
    search_fields = ('patient__email', 'doctor__email', 'chief_complaint')
    inlines = [PrescriptionInline, LabTestInline]


@admin.register(RecordAccess)
class RecordAccessAdmin(admin.ModelAdmin):
    list_display = ('record', 'user', 'action', 'timestamp')
    list_filter = ('action',)

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'patient', 'doctor', 'date', 'total', 'balance', 'status')
    list_filter = ('status', 'payment_method')
    search_fields = ('invoice_number', 'patient__email', 'doctor__email')
    readonly_fields = ('subtotal', 'total', 'balance')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'object_type', 'object_id', 'successful', 'ip_address')
    list_filter = ('action', 'object_type', 'successful')
    search_fields = ('user__email',)

    def has_change_permission(self, request, obj=None):
        return False
