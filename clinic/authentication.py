"""
Bearer JWT authentication for the API.

simplejwt already validates signature, expiry and the active flag.  This
subclass additionally rejects access tokens that were minted before the
user's most recent password change, so changing a password logs out
every other session.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed


class BearerJWTAuthentication(JWTAuthentication):
    """``Authorization: Bearer <access token>``."""

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if user.changed_password_after(validated_token.get('iat')):
            raise AuthenticationFailed('User recently changed password. Please log in again.', code='password_changed')
        return user
