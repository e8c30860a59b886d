"""Device tools - adb and emulator operations against a single device."""

from __future__ import annotations

import asyncio
import os
import shlex
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import structlog

from android_session_proxy.device.commands import CommandResult, CommandRunner
from android_session_proxy.device.permissions import DANGEROUS_PERMISSIONS
from android_session_proxy.errors import (
    ProxyError,
    avd_name_required_error,
    device_name_required_error,
)
from android_session_proxy.session.readiness import poll_until_ready

logger = structlog.get_logger()

T = TypeVar("T")

REQUESTED_PERMISSIONS_MARKER = "requested permissions:"
INSTALL_PERMISSIONS_MARKER = "install permissions:"
LAUNCHER_CATEGORY = "android.intent.category.LAUNCHER"

BOOT_POLL_ATTEMPTS = 60
BOOT_POLL_INTERVAL = 1.0


@dataclass(frozen=True)
class AppMetadata:
    """What an installed package declares about itself."""

    requested_permissions: tuple[str, ...] = ()


async def best_effort(awaitable: Awaitable[T], operation: str) -> T | None:
    """Await a tool invocation whose command failure is expected and harmless.

    Only tool command failures (``ERR_TOOL_COMMAND``) are absorbed; a missing
    executable or any other error still propagates.
    """
    try:
        return await awaitable
    except ProxyError as exc:
        if exc.code != "ERR_TOOL_COMMAND":
            raise
        logger.debug("best_effort_failed", operation=operation, error=str(exc))
        return None


def parse_device_list(output: str) -> list[str]:
    """Parse ``adb devices`` output into device names, skipping the header."""
    devices: list[str] = []
    for line in output.splitlines()[1:]:
        parts = line.strip().split()
        if parts:
            devices.append(parts[0])
    return devices


def parse_requested_permissions(output: str) -> tuple[str, ...]:
    """Extract the ``requested permissions:`` block from ``dumpsys package``."""
    rows = [row.strip() for row in output.splitlines()]
    start = 0
    if REQUESTED_PERMISSIONS_MARKER in rows:
        start = rows.index(REQUESTED_PERMISSIONS_MARKER) + 1
    end = len(rows)
    if INSTALL_PERMISSIONS_MARKER in rows:
        end = rows.index(INSTALL_PERMISSIONS_MARKER)
    return tuple(rows[start:end])


class DeviceTools:
    """Issues adb and emulator commands for one device.

    Every method accepts an explicit ``device_name`` and falls back to the
    one given at construction.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        sdk_path: str | Path | None = None,
        device_name: str | None = None,
        avd_name: str | None = None,
        dangerous_permissions: Iterable[str] = DANGEROUS_PERMISSIONS,
        boot_poll_attempts: int = BOOT_POLL_ATTEMPTS,
        boot_poll_interval: float = BOOT_POLL_INTERVAL,
    ) -> None:
        self._runner = runner
        self.sdk_path = Path(sdk_path or os.environ.get("ANDROID_HOME", ""))
        self.device_name = device_name
        self.avd_name = avd_name
        self.dangerous_permissions = frozenset(dangerous_permissions)
        self.boot_poll_attempts = boot_poll_attempts
        self.boot_poll_interval = boot_poll_interval

    @property
    def adb_path(self) -> Path:
        return self.sdk_path / "platform-tools" / "adb"

    @property
    def emulator_path(self) -> Path:
        return self.sdk_path / "emulator" / "emulator"

    async def exec_adb(self, cmd: str, device_name: str | None = None) -> CommandResult:
        """Run ``adb -s <device> <cmd>``.

        Raises:
            ProxyError: If no device name is known or the invocation fails
        """
        device_name = device_name or self.device_name
        if not device_name:
            raise device_name_required_error()
        adb = shlex.quote(str(self.adb_path))
        return await self._runner.execute(f"{adb} -s {shlex.quote(device_name)} {cmd}")

    async def list_running_devices(self, device_name: str | None = None) -> list[str]:
        """List device names currently attached to adb."""
        result = await self.exec_adb("devices", device_name)
        return parse_device_list(result.stdout)

    async def start_device(
        self, avd_name: str | None = None, device_name: str | None = None
    ) -> None:
        """Launch an emulator and wait until its package manager answers.

        The emulator process is not supervised; booting is confirmed only by
        ``pm list packages`` returning a non-empty list.
        """
        avd_name = avd_name or self.avd_name
        if not avd_name:
            raise avd_name_required_error(device_name or self.device_name or "")

        await self._runner.spawn(str(self.emulator_path), "-avd", avd_name)
        logger.info("device_spawned", avd=avd_name, device=device_name or self.device_name)

        await poll_until_ready(
            lambda: self.list_packages(device_name),
            max_attempts=self.boot_poll_attempts,
            interval=self.boot_poll_interval,
            is_ready=bool,
            operation="device_boot",
        )
        logger.info("device_booted", avd=avd_name)

    async def list_packages(self, device_name: str | None = None) -> list[str]:
        """List installed packages, one raw ``pm list packages`` line each."""
        result = await self.exec_adb("shell pm list packages", device_name)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def package_info(self, package: str, device_name: str | None = None) -> AppMetadata:
        """Read the permissions a package requests."""
        result = await self.exec_adb(f"shell dumpsys package {package}", device_name)
        return AppMetadata(requested_permissions=parse_requested_permissions(result.stdout))

    async def install_app(
        self, package: str, apk_path: str, device_name: str | None = None
    ) -> None:
        """Install an apk, replacing any previous install of the package."""
        # Fails when the package is not installed yet
        await best_effort(self.exec_adb(f"uninstall {package}", device_name), "uninstall")
        await self.exec_adb(f"install {shlex.quote(apk_path)}", device_name)
        logger.info("app_installed", package=package, apk=apk_path)

    async def clear_app(self, package: str, device_name: str | None = None) -> None:
        """Clear app data for a package."""
        await self.exec_adb(f"shell pm clear {package}", device_name)

    async def start_app(self, package: str, device_name: str | None = None) -> None:
        """Launch the package's launcher activity."""
        await self.exec_adb(
            f"shell monkey -p {package} -c {LAUNCHER_CATEGORY} 1",
            device_name,
        )

    async def grant_permission(
        self, package: str, permission: str, device_name: str | None = None
    ) -> None:
        await self.exec_adb(f"shell pm grant {package} {permission}", device_name)

    async def grant_permissions(
        self,
        package: str,
        permissions: Iterable[str],
        device_name: str | None = None,
    ) -> list[str]:
        """Grant the dangerous subset of ``permissions`` concurrently.

        Returns:
            Permissions that were granted
        """
        dangerous = [p for p in permissions if p in self.dangerous_permissions]
        await asyncio.gather(
            *(self.grant_permission(package, p, device_name) for p in dangerous)
        )
        logger.info("permissions_granted", package=package, permissions=dangerous)
        return dangerous

    async def tcp_forward(
        self, host_port: int, device_port: int, device_name: str | None = None
    ) -> None:
        """Forward a host TCP port to a device port."""
        await self.exec_adb(f"forward tcp:{host_port} tcp:{device_port}", device_name)

    async def reverse_tcp_forward(
        self, host_port: int, device_port: int, device_name: str | None = None
    ) -> None:
        """Expose a host TCP port to the device."""
        await self.exec_adb(f"reverse tcp:{device_port} tcp:{host_port}", device_name)
