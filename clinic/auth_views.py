"""
Authentication views.

Email/password signup and login, JWT refresh and logout, and the
password update / forgot / reset flow.  Every successful path answers
with the same token payload so the client can treat them alike.  The
authentication class itself lives in ``clinic.authentication`` to keep
DRF's import of it free of view imports.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import authenticate
from django.db import transaction
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.serializers.auth import (
    ForgotPasswordSerializer,
    LoginSerializer,
    ResetPasswordSerializer,
    SignupSerializer,
    UpdatePasswordSerializer,
)
from clinic.services.audit import log_action
from clinic.services.users import serialize_user

from .models import User

logger = logging.getLogger(__name__)


def token_payload(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    return {
        'ok': True,
        'token': str(refresh.access_token),
        'refreshToken': str(refresh),
        'data': {'user': serialize_user(user)},
    }


# ---------------------------------------------------------------------
# Signup / login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def signup_view(request):
    s = SignupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if User.objects.filter(email=vd['email']).exists():
        return Response({'ok': False, 'detail': 'Email already in use'}, status=400)

    with transaction.atomic():
        user = User(
            username=vd['email'],
            email=vd['email'],
            first_name=vd['firstName'],
            last_name=vd['lastName'],
            role=vd.get('role') or User.ROLE_PATIENT,
            phone_number=vd.get('phoneNumber', ''),
            gender=vd.get('gender', ''),
            date_of_birth=vd.get('dateOfBirth'),
            specialization=vd.get('specialization', ''),
            license_number=vd.get('licenseNumber', ''),
            years_of_experience=vd.get('yearsOfExperience'),
        )
        user.set_password(vd['password'])
        user.save()

    log_action(user=user, action='create', object_type='user', object_id=user.id,
               detail={'op': 'signup', 'role': user.role}, request=request)
    return Response(token_payload(user), status=201)

signup_view.cls.throttle_scope = 'signup'


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Email/password login.
    Accepts fields:
      - email, password
      - role (optional): the portal the user signs in from; must match the account
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    account = User.objects.filter(email=vd['email']).first()
    user = authenticate(request, username=account.username, password=vd['password']) if account else None
    if not user:
        log_action(user=account, action='failed_login', object_type='user',
                   object_id=getattr(account, 'id', None), detail={'email': vd['email']},
                   request=request, successful=False)
        return Response({'ok': False, 'detail': 'Incorrect email or password'}, status=401)

    if vd.get('role') and vd['role'] != user.role:
        return Response({'ok': False, 'detail': f'This account is registered as a {user.role}'}, status=403)

    log_action(user=user, action='login', object_type='user', object_id=user.id, request=request)
    return Response(token_payload(user), status=200)

# ScopedRateThrottle reads throttle_scope from the wrapped view class
login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Return a new access token from a refresh token (``refresh`` or ``refreshToken``)."""
    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    if 'refresh' not in data and 'refreshToken' in data:
        data['refresh'] = data['refreshToken']
    s = TokenRefreshSerializer(data=data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        return Response({'ok': False, 'detail': str(e)}, status=401)
    out = {'ok': True, 'token': s.validated_data['access']}
    if 'refresh' in s.validated_data:
        out['refreshToken'] = s.validated_data['refresh']
    return Response(out)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    raw = None
    if request.method == 'POST':
        raw = request.data.get('refresh') or request.data.get('refreshToken')
    count = 0
    if raw:
        try:
            RefreshToken(raw).blacklist()
            count = 1
        except TokenError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id, request=request)
    return Response({'ok': True, 'blacklisted': count})


# ---------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------
@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def update_password_view(request):
    s = UpdatePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = request.user
    if not user.check_password(s.validated_data['currentPassword']):
        return Response({'ok': False, 'detail': 'Your current password is wrong'}, status=401)

    user.set_password(s.validated_data['password'])
    user.mark_password_changed()
    user.save(update_fields=['password', 'password_changed_at'])
    log_action(user=user, action='password_change', object_type='user', object_id=user.id, request=request)
    return Response(token_payload(user))


@api_view(['POST'])
@permission_classes([AllowAny])
def forgot_password_view(request):
    s = ForgotPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = User.objects.filter(email=s.validated_data['email'], is_active=True).first()
    if not user:
        return Response({'ok': False, 'detail': 'There is no user with that email address'}, status=404)

    raw = user.create_password_reset_token()
    user.save(update_fields=['password_reset_token', 'password_reset_expires'])
    reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{raw}"
    # no mail transport is configured; the link is returned to the caller
    logger.info("password reset issued for user %s", user.id)
    log_action(user=user, action='password_reset', object_type='user', object_id=user.id,
               detail={'stage': 'requested'}, request=request)
    return Response({'ok': True, 'message': 'Token sent to email!', 'resetURL': reset_url})

forgot_password_view.cls.throttle_scope = 'password_reset'


@api_view(['POST', 'PATCH'])
@permission_classes([AllowAny])
def reset_password_view(request, token: str):
    s = ResetPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = User.find_by_reset_token(token)
    if not user:
        return Response({'ok': False, 'detail': 'Token is invalid or has expired'}, status=400)

    user.set_password(s.validated_data['password'])
    user.password_reset_token = None
    user.password_reset_expires = None
    user.mark_password_changed()
    user.save(update_fields=['password', 'password_reset_token', 'password_reset_expires', 'password_changed_at'])
    log_action(user=user, action='password_reset', object_type='user', object_id=user.id,
               detail={'stage': 'completed'}, request=request)
    return Response(token_payload(user))

reset_password_view.cls.throttle_scope = 'password_reset'
