"""
Authentication against ``/api/auth``.

The logged-in payload is kept in ``storage['user']`` exactly as the
server (or demo mode) returned it.
"""
import logging
import time
from typing import Optional

import jwt

from portal import demo
from portal.http import ApiError

logger = logging.getLogger(__name__)

API = "api/auth/"


class AuthService:
    def __init__(self, client, config=None, storage: Optional[dict] = None):
        self.client = client
        self.config = config if config is not None else client.config
        self.storage = storage if storage is not None else {}

    @property
    def demo_mode(self) -> bool:
        return demo.is_demo_mode(self.config)

    def _remember(self, payload):
        if payload:
            self.storage["user"] = payload
        return payload

    def register(self, user_data: dict):
        if self.demo_mode:
            return self._remember(demo.register_demo(user_data))
        return self._remember(self.client.post(API + "signup", user_data))

    def login(self, user_data: dict):
        if self.demo_mode:
            payload = demo.authenticate_demo(user_data.get("email"), user_data.get("password"))
            if not payload:
                raise ApiError("Invalid email or password", status=401)
            return self._remember(payload)
        return self._remember(self.client.post(API + "login", user_data))

    def logout(self) -> dict:
        user = self.storage.pop("user", None)
        if not self.demo_mode:
            token = user.get("token") if isinstance(user, dict) else None
            try:
                self.client.get(API + "logout", token=token)
            except ApiError as e:
                logger.info("logout call failed status=%s msg=%s", e.status, e)
        return {"success": True}

    def current_user(self, now: Optional[float] = None):
        """Return the stored payload if its token is still usable, logging out otherwise."""
        user = self.storage.get("user")
        if not isinstance(user, dict):
            return None
        token = user.get("token")

        if demo.is_demo_token(token):
            if self.demo_mode:
                return user
            self.logout()
            return None

        if not token:
            return None
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as e:
            logger.info("discarding undecodable token: %s", e)
            self.logout()
            return None
        exp = claims.get("exp")
        if exp is not None and exp < (now if now is not None else time.time()):
            self.logout()
            return None
        return user

    def forgot_password(self, email: str):
        return self.client.post(API + "forgot-password", {"email": email})

    def reset_password(self, token: str, password: str):
        return self.client.post(API + f"reset-password/{token}", {"password": password})
