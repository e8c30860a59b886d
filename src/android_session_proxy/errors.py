"""Error model - Actionable errors with remediation hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProxyError(Exception):
    """
    Base error with context and remediation guidance.

    Raised anywhere in bring-up, reset or proxying. The HTTP layer renders
    it with ``http_status`` so the client learns what failed and what to do.
    """

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    remediation: str = ""
    http_status: int = 500

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "remediation": self.remediation,
        }


# Specific error constructors for common cases


def tool_command_error(command: str, reason: str) -> ProxyError:
    """Create error for a failed adb/emulator invocation."""
    return ProxyError(
        code="ERR_TOOL_COMMAND",
        message=f"Command failed: {command}",
        context={"command": command, "reason": reason},
        remediation="Check the device connection and command arguments, then retry.",
    )


def tool_not_found_error(path: str) -> ProxyError:
    """Create error for a missing SDK executable."""
    return ProxyError(
        code="ERR_TOOL_NOT_FOUND",
        message=f"Executable not found: {path}",
        context={"path": path},
        remediation="Set --sdk-path or ANDROID_HOME to your Android SDK directory.",
    )


def device_name_required_error() -> ProxyError:
    """Create error for adb commands issued without a target device."""
    return ProxyError(
        code="ERR_DEVICE_NAME_REQUIRED",
        message="missing deviceName",
        context={},
        remediation="Provide deviceName in desiredCapabilities (e.g. 'emulator-5554').",
    )


def avd_name_required_error(device_name: str) -> ProxyError:
    """Create error for starting an emulator without an AVD name."""
    return ProxyError(
        code="ERR_AVD_NAME_REQUIRED",
        message=f"Device {device_name} is not running and no avdName was given",
        context={"device_name": device_name},
        remediation="Start the device manually or provide avdName in desiredCapabilities.",
    )


def not_ready_error(operation: str, attempts: int) -> ProxyError:
    """Create error for a readiness poll that ran out of attempts."""
    return ProxyError(
        code="ERR_NOT_READY",
        message=f"Not ready after {attempts} attempts: {operation}",
        context={"operation": operation, "attempts": attempts},
        remediation="Check the device or app server logs; it may need longer to start.",
    )


def no_active_session_error() -> ProxyError:
    """Create error for session operations issued before bring-up."""
    return ProxyError(
        code="ERR_NO_ACTIVE_SESSION",
        message="No active session",
        context={},
        remediation="Create a session with POST <root>/session before resetting the app.",
    )


def session_busy_error(operation: str) -> ProxyError:
    """Create error for a protocol started while another one is in flight."""
    return ProxyError(
        code="ERR_SESSION_BUSY",
        message=f"Cannot {operation}: another session operation is in progress",
        context={"operation": operation},
        remediation="Wait for the pending session request to finish and retry.",
        http_status=409,
    )


def invalid_capabilities_error(reason: str) -> ProxyError:
    """Create error for a start-session body without usable capabilities."""
    return ProxyError(
        code="ERR_INVALID_CAPABILITIES",
        message=f"Invalid desiredCapabilities: {reason}",
        context={"reason": reason},
        remediation="Send deviceName, packageName and app under desiredCapabilities.",
        http_status=400,
    )


def upstream_unreachable_error(url: str, reason: str) -> ProxyError:
    """Create error for transport failures talking to the automation server."""
    return ProxyError(
        code="ERR_UPSTREAM_UNREACHABLE",
        message=f"Cannot reach automation server at {url}",
        context={"url": url, "reason": reason},
        remediation="Ensure the app is running and the port forward is in place.",
    )


def internal_error(exc: Exception) -> ProxyError:
    """Wrap an unexpected exception raised while serving a request."""
    return ProxyError(
        code="ERR_INTERNAL",
        message=str(exc) or type(exc).__name__,
        context={"type": type(exc).__name__},
        remediation="See the proxy log for details.",
    )
