"""
Thin HTTP layer shared by the portal services.

Every call goes through a single ``requests.Session``; the bearer token
is attached per request so one client can serve several logins.
Non-2xx responses raise :class:`ApiError` carrying the server's message.
"""
import logging
from typing import Any, Optional

import requests

from portal.config import PortalConfig

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


def error_message(body: Any, default: str = "") -> str:
    """Pick the human readable message out of an error envelope."""
    if isinstance(body, dict):
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return default


def unwrap(body: Any, key: Optional[str] = None) -> Any:
    """Return the envelope's ``data``; with ``key``, descend one level when present."""
    data = body.get("data", body) if isinstance(body, dict) else body
    if key and isinstance(data, dict) and key in data:
        return data[key]
    return data


class ApiClient:
    def __init__(self, config: Optional[PortalConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or PortalConfig()
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.config.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, token: Optional[str] = None,
                json: Any = None, params: Optional[dict] = None) -> Any:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self.session.request(
                method, self.url(path), json=json, params=params,
                headers=headers, timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            logger.warning("portal request failed method=%s path=%s err=%s", method, path, e)
            raise ApiError(str(e) or "Network error") from e

        body: Any = None
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
        if not resp.ok:
            message = error_message(body, default=resp.reason or f"HTTP {resp.status_code}")
            logger.info("portal request rejected method=%s path=%s status=%s", method, path, resp.status_code)
            raise ApiError(message, status=resp.status_code, body=body)
        return body

    def get(self, path, token=None, params=None):
        return self.request("GET", path, token=token, params=params)

    def post(self, path, data=None, token=None):
        return self.request("POST", path, token=token, json=data)

    def put(self, path, data=None, token=None):
        return self.request("PUT", path, token=token, json=data)

    def patch(self, path, data=None, token=None):
        return self.request("PATCH", path, token=token, json=data)

    def delete(self, path, token=None):
        return self.request("DELETE", path, token=token)
