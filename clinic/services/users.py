import logging
import secrets
from typing import Optional, Tuple, List

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q

from clinic.services.audit import log_action

User = get_user_model()
logger = logging.getLogger(__name__)

# camelCase payload key -> model attribute
PROFILE_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'phoneNumber': 'phone_number',
    'address': 'address',
    'gender': 'gender',
    'profilePicture': 'profile_picture',
    'emergencyContact': 'emergency_contact',
}
ADMIN_FIELDS = {
    **PROFILE_FIELDS,
    'role': 'role',
    'email': 'email',
    'specialization': 'specialization',
    'licenseNumber': 'license_number',
    'yearsOfExperience': 'years_of_experience',
    'active': 'is_active',
}


def serialize_user(u, *, brief: bool=False) -> Optional[dict]:
    if u is None:
        return None
    data = {
        'id': u.id,
        'firstName': u.first_name,
        'lastName': u.last_name,
        'fullName': u.full_name,
        'email': u.email,
        'role': u.role,
    }
    if u.role == User.ROLE_DOCTOR:
        data['specialization'] = u.specialization
    if brief:
        return data
    data.update({
        'phoneNumber': u.phone_number,
        'address': u.address or {},
        'dateOfBirth': u.date_of_birth.isoformat() if u.date_of_birth else None,
        'gender': u.gender or None,
        'profilePicture': u.profile_picture,
        'active': u.is_active,
        'createdAt': u.date_joined.isoformat() if u.date_joined else None,
        'lastLogin': u.last_login.isoformat() if u.last_login else None,
    })
    if u.role == User.ROLE_DOCTOR:
        data['licenseNumber'] = u.license_number
        data['yearsOfExperience'] = u.years_of_experience
    if u.role == User.ROLE_PATIENT:
        data['medicalHistory'] = u.medical_history or []
        data['emergencyContact'] = u.emergency_contact or {}
    return data


def _paginate(qs, page, limit, default_limit=10):
    total = qs.count()
    page = max(1, int(page or 1))
    limit = min(100, max(1, int(limit or default_limit)))
    start = (page - 1) * limit
    return qs[start:start + limit], total, page, limit


def list_users(*, role: Optional[str]=None, q: Optional[str]=None, page: int=1, limit: int=10) -> Tuple[List[dict], int]:
    qs = User.objects.all()
    if role:
        qs = qs.filter(role=role)
    if q:
        qs = qs.filter(Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q))
    items, total, _, _ = _paginate(qs.order_by('last_name', 'first_name', 'id'), page, limit)
    return [serialize_user(u) for u in items], total


def list_doctors(*, specialization: Optional[str]=None, page: int=1, limit: int=50) -> Tuple[List[dict], int]:
    qs = User.objects.filter(role=User.ROLE_DOCTOR, is_active=True)
    if specialization:
        qs = qs.filter(specialization__iexact=specialization)
    items, total, _, _ = _paginate(qs.order_by('last_name', 'first_name', 'id'), page, limit, default_limit=50)
    return [serialize_user(u, brief=True) | {'yearsOfExperience': u.years_of_experience} for u in items], total


def _apply(user, data: dict, fields: dict) -> List[str]:
    changed = []
    for key, attr in fields.items():
        if key in data:
            value = data[key]
            if isinstance(value, dict):
                value = dict(value)
            setattr(user, attr, value)
            changed.append(attr)
    return changed


def update_profile(user, data: dict):
    changed = _apply(user, data, PROFILE_FIELDS)
    if changed:
        user.save(update_fields=changed)
        log_action(user=user, action='update', object_type='user', object_id=user.id, detail={'fields': changed})
    return user


def update_user(actor, target, data: dict):
    if actor.role == User.ROLE_ADMIN:
        fields = ADMIN_FIELDS
    elif actor.id == target.id:
        fields = PROFILE_FIELDS
    else:
        raise PermissionError('You do not have permission to perform this action')
    if 'email' in data and fields is ADMIN_FIELDS:
        email = data['email'].strip().lower()
        if User.objects.filter(email=email).exclude(id=target.id).exists():
            raise ValueError('Email already in use')
        data = {**data, 'email': email}
    changed = _apply(target, data, fields)
    if 'email' in changed:
        target.username = target.email
        changed.append('username')
    if changed:
        target.save(update_fields=changed)
        log_action(user=actor, action='update', object_type='user', object_id=target.id, detail={'fields': changed})
    return target


def deactivate_user(actor, target) -> None:
    if actor.role != User.ROLE_ADMIN:
        raise PermissionError('You do not have permission to perform this action')
    if actor.id == target.id:
        raise ValueError('You cannot deactivate your own account')
    target.is_active = False
    target.save(update_fields=['is_active'])
    log_action(user=actor, action='delete', object_type='user', object_id=target.id)
    logger.info("user %s deactivated by %s", target.id, actor.id)


@transaction.atomic
def create_patient(actor, data: dict):
    """Staff-side patient registration. A random password is set when none is given."""
    if actor.role not in (User.ROLE_ADMIN, User.ROLE_DOCTOR):
        raise PermissionError('You do not have permission to perform this action')
    email = data['email']
    if User.objects.filter(email=email).exists():
        raise ValueError('Email already in use')
    patient = User(
        username=email,
        email=email,
        first_name=data['firstName'],
        last_name=data['lastName'],
        role=User.ROLE_PATIENT,
        phone_number=data.get('phoneNumber', ''),
        gender=data.get('gender', ''),
        date_of_birth=data.get('dateOfBirth'),
        medical_history=data.get('medicalHistory') or [],
        emergency_contact=dict(data.get('emergencyContact') or {}),
    )
    patient.set_password(data.get('password') or secrets.token_urlsafe(16))
    patient.save()
    log_action(user=actor, action='create', object_type='user', object_id=patient.id, detail={'role': 'patient'})
    return patient
