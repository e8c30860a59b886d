"""Session orchestrator - device bring-up and app reset protocols."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from android_session_proxy.device.permissions import requires_runtime_grants
from android_session_proxy.device.tools import DeviceTools
from android_session_proxy.session.models import Capabilities, Session
from android_session_proxy.session.readiness import poll_until_ready

if TYPE_CHECKING:
    from android_session_proxy.config import ProxyConfig
    from android_session_proxy.daemon.proxy import AppServerProxy
    from android_session_proxy.device.commands import CommandRunner
    from android_session_proxy.session.holder import SessionHolder

logger = structlog.get_logger()


class SessionOrchestrator:
    """Drives a device from "maybe not running" to "automation server ready".

    Steps run strictly one after another; the first failure aborts the rest
    and leaves the previously live session untouched.
    """

    def __init__(
        self,
        config: ProxyConfig,
        runner: CommandRunner,
        proxy: AppServerProxy,
        holder: SessionHolder,
    ) -> None:
        self._config = config
        self._runner = runner
        self._proxy = proxy
        self._holder = holder

    def tools_for(self, caps: Capabilities) -> DeviceTools:
        """Build a facade bound to the device named in ``caps``."""
        return DeviceTools(
            self._runner,
            sdk_path=self._config.sdk_path,
            device_name=caps.device_name,
            avd_name=caps.avd_name,
            dangerous_permissions=self._config.dangerous_permissions,
            boot_poll_attempts=self._config.boot_poll_attempts,
            boot_poll_interval=self._config.boot_poll_interval,
        )

    async def start_session(self, caps: Capabilities) -> Session:
        """Run bring-up and make the result the live session."""
        async with self._holder.exclusive("start session"):
            log = logger.bind(device=caps.device_name, package=caps.package_name)
            log.info("session_bring_up_started", platform_version=caps.platform_version)
            tools = self.tools_for(caps)

            running = await tools.list_running_devices()
            if caps.device_name not in running:
                log.info("device_not_running", running=running)
                await tools.start_device()

            await tools.install_app(caps.package_name, caps.app)
            app_metadata = await tools.package_info(caps.package_name)

            if requires_runtime_grants(caps.platform_version):
                await tools.grant_permissions(
                    caps.package_name, app_metadata.requested_permissions
                )

            await tools.start_app(caps.package_name)
            await tools.tcp_forward(
                self._config.local_app_server_port, self._config.app_server_port
            )
            await self.wait_for_app_server()

            session = Session(
                capabilities=caps,
                app_metadata=app_metadata,
                host_port=self._config.local_app_server_port,
                device_port=self._config.app_server_port,
            )
            self._holder.replace(session)
            log.info("session_bring_up_done")
            return session

    async def reset_app(self) -> Session:
        """Clear app data and relaunch it using the metadata from bring-up."""
        session = self._holder.require()
        async with self._holder.exclusive("reset app"):
            caps = session.capabilities
            log = logger.bind(device=caps.device_name, package=caps.package_name)
            log.info("app_reset_started")
            tools = self.tools_for(caps)

            await tools.clear_app(caps.package_name)
            if requires_runtime_grants(caps.platform_version):
                await tools.grant_permissions(
                    caps.package_name, session.app_metadata.requested_permissions
                )
            await tools.start_app(caps.package_name)
            await self.wait_for_app_server()

            log.info("app_reset_done")
            return session

    async def wait_for_app_server(self) -> None:
        await poll_until_ready(
            self._proxy.ping,
            max_attempts=self._config.health_poll_attempts,
            interval=self._config.health_poll_interval,
            operation="app_server_health",
        )
