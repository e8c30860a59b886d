"""Runtime permissions that must be granted explicitly on Android 6.0+."""

from __future__ import annotations

DANGEROUS_PERMISSIONS: frozenset[str] = frozenset(
    {
        "android.permission.READ_CALENDAR",
        "android.permission.WRITE_CALENDAR",
        "android.permission.CAMERA",
        "android.permission.READ_CONTACTS",
        "android.permission.WRITE_CONTACTS",
        "android.permission.GET_ACCOUNTS",
        "android.permission.ACCESS_FINE_LOCATION",
        "android.permission.ACCESS_COARSE_LOCATION",
        "android.permission.RECORD_AUDIO",
        "android.permission.READ_PHONE_STATE",
        "android.permission.CALL_PHONE",
        "android.permission.READ_CALL_LOG",
        "android.permission.WRITE_CALL_LOG",
        "android.permission.ADD_VOICEMAIL",
        "android.permission.USE_SIP",
        "android.permission.PROCESS_OUTGOING_CALLS",
        "android.permission.BODY_SENSORS",
        "android.permission.SEND_SMS",
        "android.permission.RECEIVE_SMS",
        "android.permission.READ_SMS",
        "android.permission.RECEIVE_WAP_PUSH",
        "android.permission.RECEIVE_MMS",
        "android.permission.READ_EXTERNAL_STORAGE",
        "android.permission.WRITE_EXTERNAL_STORAGE",
    }
)

# Runtime permissions arrived with Android 6.0 (API 23)
RUNTIME_PERMISSIONS_VERSION = "6.0"


def requires_runtime_grants(platform_version: str) -> bool:
    """Return True if the platform needs dangerous permissions granted at runtime.

    Compares version strings lexicographically, so "10.0" sorts below "6.0"
    and is treated as pre-runtime-permissions.
    """
    return platform_version >= RUNTIME_PERMISSIONS_VERSION
