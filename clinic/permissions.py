"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission

STAFF_ROLES = {"admin", "doctor"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "admin"


class IsDoctorRole(BasePermission):
    """Allow access only to doctors."""
    message = "Only doctors can perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "doctor"


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "patient"


class IsStaffRole(BasePermission):
    """admin or doctor."""
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES


def owns_object(user, obj) -> bool:
    """Admin sees everything, patients their own rows, doctors the rows assigned to them."""
    role = getattr(user, "role", None)
    if role == "admin":
        return True
    if role == "patient":
        return getattr(obj, "patient_id", None) == user.id
    if role == "doctor":
        return getattr(obj, "doctor_id", None) == user.id
    return False
