"""Tests for CLI commands."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

from typer.testing import CliRunner

from android_session_proxy.cli import main
from android_session_proxy.errors import tool_not_found_error

runner = CliRunner()


class DummyTools:
    """DeviceTools stand-in returning a fixed device list."""

    devices: list[str] = []
    error: Exception | None = None
    init_kwargs: dict[str, Any] = {}

    def __init__(self, _runner: Any, **kwargs: Any) -> None:
        self.__class__.init_kwargs = kwargs

    async def list_running_devices(self) -> list[str]:
        if self.error:
            raise self.error
        return self.devices


def test_version() -> None:
    result = runner.invoke(main.app, ["version"])
    assert result.exit_code == 0
    assert "android-session-proxy v" in result.output


def test_devices_lists_names() -> None:
    DummyTools.devices = ["emulator-5554", "emulator-5556"]
    DummyTools.error = None

    with patch.object(main, "DeviceTools", DummyTools):
        result = runner.invoke(main.app, ["devices", "--sdk-path", "/sdk"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["emulator-5554", "emulator-5556"]
    assert DummyTools.init_kwargs == {"sdk_path": "/sdk", "device_name": "emulator-5554"}


def test_devices_none_running() -> None:
    DummyTools.devices = []
    DummyTools.error = None

    with patch.object(main, "DeviceTools", DummyTools):
        result = runner.invoke(main.app, ["devices"])

    assert result.exit_code == 0
    assert "No running devices." in result.output


def test_devices_reports_errors() -> None:
    DummyTools.error = tool_not_found_error("/sdk/platform-tools/adb")

    with patch.object(main, "DeviceTools", DummyTools):
        result = runner.invoke(main.app, ["devices"])

    assert result.exit_code == 1
    assert "ERR_TOOL_NOT_FOUND" in result.output
    assert "Hint:" in result.output


def test_serve_builds_config() -> None:
    calls: list[tuple[Any, dict[str, Any]]] = []

    def fake_run(app: Any, **kwargs: Any) -> None:
        calls.append((app, kwargs))

    with patch("uvicorn.run", fake_run), patch(
        "android_session_proxy.daemon.server.create_app"
    ) as create_app:
        result = runner.invoke(
            main.app,
            ["serve", "--port", "4444", "--local-app-server-port", "6200", "--sdk-path", "/sdk"],
        )

    assert result.exit_code == 0, result.output
    config = create_app.call_args[0][0]
    assert config.port == 4444
    assert config.local_app_server_port == 6200
    assert config.sdk_path == "/sdk"
    assert calls[0][1] == {"host": "127.0.0.1", "port": 4444, "log_level": "info"}


def test_serve_rejects_unknown_log_level() -> None:
    with patch("uvicorn.run") as run:
        result = runner.invoke(main.app, ["serve", "--log-level", "chatty"])

    assert result.exit_code != 0
    run.assert_not_called()
