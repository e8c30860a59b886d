"""Proxy core - wiring and lifecycle of the session subsystems."""

from __future__ import annotations

import httpx
import structlog

from android_session_proxy.config import ProxyConfig
from android_session_proxy.daemon.proxy import AppServerProxy
from android_session_proxy.device.commands import CommandRunner
from android_session_proxy.session.holder import SessionHolder
from android_session_proxy.session.orchestrator import SessionOrchestrator

logger = structlog.get_logger()


class ProxyCore:
    """Central coordinator owning the runner, relay and session state."""

    def __init__(
        self,
        config: ProxyConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ProxyConfig()
        self.runner = runner or CommandRunner()
        self.proxy = AppServerProxy(
            self.config.app_server_url,
            timeout=self.config.proxy_timeout,
            health_path=self.config.health_path,
            health_timeout=self.config.health_timeout,
            transport=transport,
        )
        self.session_holder = SessionHolder()
        self.orchestrator = SessionOrchestrator(
            self.config, self.runner, self.proxy, self.session_holder
        )

    async def start(self) -> None:
        logger.info("proxy_core_started", app_server=self.config.app_server_url)

    async def stop(self) -> None:
        """Release the upstream connection pool."""
        await self.proxy.close()
        logger.info("proxy_core_stopped")
