"""Startup configuration for the session proxy."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from android_session_proxy.device.permissions import DANGEROUS_PERMISSIONS

ENV_PREFIX = "ASP_"


def _default_sdk_path() -> str | None:
    return os.environ.get("ANDROID_HOME") or os.environ.get("ANDROID_SDK_ROOT")


@dataclass(frozen=True)
class ProxyConfig:
    """Ports, paths and poll budgets; read once at startup."""

    port: int = 4723
    host: str = "127.0.0.1"
    app_server_port: int = 7100
    local_app_server_port: int = 6100
    root_path: str = "/wd/hub"
    sdk_path: str | None = field(default_factory=_default_sdk_path)
    dangerous_permissions: frozenset[str] = DANGEROUS_PERMISSIONS

    boot_poll_attempts: int = 60
    boot_poll_interval: float = 1.0
    health_poll_attempts: int = 50
    health_poll_interval: float = 0.2
    health_timeout: float = 0.5
    health_path: str = "/ping"
    proxy_timeout: float = 60.0

    @property
    def app_server_url(self) -> str:
        return f"http://localhost:{self.local_app_server_port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ProxyConfig:
        """Build config from ``ASP_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        int_fields = ("port", "app_server_port", "local_app_server_port")
        for name in int_fields:
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value:
                overrides[name] = int(value)
        for name in ("host", "root_path", "sdk_path"):
            value = env.get(f"{ENV_PREFIX}{name.upper()}")
            if value:
                overrides[name] = value
        return cls(**overrides)  # type: ignore[arg-type]
