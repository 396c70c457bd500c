"""
WebSocket authentication.

Browsers cannot set an ``Authorization`` header on a WebSocket, so the
access token travels as ``?token=<jwt>``.  When it is absent or invalid
the session based ``AuthMiddlewareStack`` result is left in place.
"""
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken


@database_sync_to_async
def user_for_token(raw: str):
    try:
        token = AccessToken(raw)
    except TokenError:
        return None
    User = get_user_model()
    user = User.objects.filter(id=token.get('user_id'), is_active=True).first()
    if user is None or user.changed_password_after(token.get('iat')):
        return None
    return user


class JWTAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get('query_string', b'').decode())
        raw = (params.get('token') or [None])[0]
        if raw:
            user = await user_for_token(raw)
            if user is not None:
                scope = dict(scope, user=user)
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner):
    return AuthMiddlewareStack(JWTAuthMiddleware(inner))
