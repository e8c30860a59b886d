"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from android_session_proxy.config import ProxyConfig
from android_session_proxy.device.commands import CommandResult, classify_output

DUMPSYS_TWO_DANGEROUS = """
Packages:
  Package [fi.foo.bar] (3c1a2f):
    requested permissions:
      android.permission.RECORD_AUDIO
      android.permission.USE_SIP
      android.permission.INTERNET
    install permissions:
      android.permission.INTERNET: granted=true
"""


class FakeRunner:
    """Records commands and answers them from canned outputs.

    ``outputs`` maps an adb subcommand prefix (e.g. ``"shell dumpsys"``) to a
    string, an exception, or a list of those consumed one call at a time.
    Unmatched commands succeed with empty output.
    """

    def __init__(self, outputs: dict[str, Any] | None = None) -> None:
        self.outputs: dict[str, Any] = dict(outputs or {})
        self.commands: list[str] = []
        self.spawned: list[tuple[str, ...]] = []

    @property
    def adb_calls(self) -> list[str]:
        """Commands with the ``<adb> -s <device>`` prefix removed."""
        return [command.split(" ", 3)[3] for command in self.commands]

    async def execute(self, command: str) -> CommandResult:
        self.commands.append(command)
        subcommand = command.split(" ", 3)[3]
        output: Any = ""
        for prefix, value in self.outputs.items():
            if subcommand.startswith(prefix):
                output = value.pop(0) if isinstance(value, list) else value
                break
        if isinstance(output, Exception):
            raise output
        return classify_output(command, output, "")

    async def spawn(self, *args: str) -> None:
        self.spawned.append(args)


class AppServerStub:
    """In-process stand-in for the automation server behind httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, bytes]] = []
        self.responses: list[httpx.Response] = []
        self.ping_failures = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.decode()
        if request.url.path == "/ping":
            if self.ping_failures > 0:
                self.ping_failures -= 1
                raise httpx.ConnectError("Connection refused", request=request)
            self.requests.append((request.method, path, request.content))
            return httpx.Response(200, json={})
        self.requests.append((request.method, path, request.content))
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(200, json={})

    def respond(self, status_code: int, payload: Any) -> None:
        self.responses.append(
            httpx.Response(
                status_code,
                content=json.dumps(payload).encode(),
                headers={"content-type": "application/json"},
            )
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def config() -> ProxyConfig:
    """Config with zero poll intervals so retries do not sleep."""
    return ProxyConfig(
        sdk_path="/sdk",
        boot_poll_interval=0.0,
        health_poll_interval=0.0,
    )


@pytest.fixture
def app_server() -> AppServerStub:
    return AppServerStub()


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    """Factory for command runners with canned adb output."""
    return FakeRunner


@pytest.fixture
def running_device_output() -> str:
    return "List of devices attached\n        emulator-5554 device\n"


@pytest.fixture
def capabilities_body() -> dict[str, Any]:
    return {
        "desiredCapabilities": {
            "deviceName": "emulator-5554",
            "avdName": "super-duper-avd",
            "packageName": "fi.foo.bar",
            "app": "/path/to/app.apk",
            "platformVersion": "6.0",
            "newCommandTimeout": 120,
        }
    }


@pytest.fixture
def dumpsys_output() -> str:
    """``dumpsys package`` output requesting two dangerous permissions."""
    return DUMPSYS_TWO_DANGEROUS
