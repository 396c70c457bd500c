import os
from dataclasses import dataclass


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class PortalConfig:
    base_url: str = "http://127.0.0.1:8000"
    timeout: float = 10.0
    demo_mode: bool = False

    @classmethod
    def from_env(cls, environ=None) -> "PortalConfig":
        """Build a config from ``PORTAL_API_URL``, ``PORTAL_TIMEOUT`` and ``PORTAL_DEMO_MODE``."""
        env = os.environ if environ is None else environ
        return cls(
            base_url=env.get("PORTAL_API_URL", cls.base_url).rstrip("/"),
            timeout=float(env.get("PORTAL_TIMEOUT", cls.timeout)),
            demo_mode=_flag(env.get("PORTAL_DEMO_MODE", "0")),
        )
