"""Tests for ProxyConfig."""

from __future__ import annotations

import pytest

from android_session_proxy.config import ProxyConfig
from android_session_proxy.device.permissions import (
    DANGEROUS_PERMISSIONS,
    requires_runtime_grants,
)


def test_defaults() -> None:
    config = ProxyConfig(sdk_path="/sdk")
    assert config.port == 4723
    assert config.app_server_port == 7100
    assert config.local_app_server_port == 6100
    assert config.root_path == "/wd/hub"
    assert config.app_server_url == "http://localhost:6100"
    assert config.health_poll_attempts == 50
    assert config.boot_poll_attempts == 60
    assert config.health_timeout < config.proxy_timeout
    assert config.dangerous_permissions is DANGEROUS_PERMISSIONS


def test_sdk_path_from_android_home(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANDROID_HOME", "/opt/android-sdk")
    monkeypatch.delenv("ANDROID_SDK_ROOT", raising=False)
    assert ProxyConfig().sdk_path == "/opt/android-sdk"


def test_from_env_overrides() -> None:
    config = ProxyConfig.from_env(
        {
            "ASP_PORT": "4444",
            "ASP_LOCAL_APP_SERVER_PORT": "6200",
            "ASP_ROOT_PATH": "/",
            "ASP_SDK_PATH": "/custom/sdk",
        }
    )
    assert config.port == 4444
    assert config.local_app_server_port == 6200
    assert config.app_server_port == 7100
    assert config.root_path == "/"
    assert config.sdk_path == "/custom/sdk"


def test_from_env_rejects_bad_port() -> None:
    with pytest.raises(ValueError):
        ProxyConfig.from_env({"ASP_PORT": "not-a-port"})


def test_dangerous_permissions_are_immutable() -> None:
    assert isinstance(DANGEROUS_PERMISSIONS, frozenset)
    assert len(DANGEROUS_PERMISSIONS) == 24
    assert "android.permission.INTERNET" not in DANGEROUS_PERMISSIONS


@pytest.mark.parametrize(
    ("version", "expected"),
    [("6.0", True), ("7.1.1", True), ("9", True), ("5.1", False), ("", False), ("10.0", False)],
)
def test_runtime_grants_compare_as_strings(version: str, expected: bool) -> None:
    assert requires_runtime_grants(version) is expected
