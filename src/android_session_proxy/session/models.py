"""Session models - client capabilities and live session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from android_session_proxy.device.tools import AppMetadata
from android_session_proxy.errors import invalid_capabilities_error


class Capabilities(BaseModel):
    """desiredCapabilities sent with a start-session request.

    Unknown keys are kept so they can travel on to the automation server.
    """

    model_config = ConfigDict(
        extra="allow", frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    device_name: str = Field(alias="deviceName")
    package_name: str = Field(alias="packageName")
    app: str
    avd_name: str | None = Field(default=None, alias="avdName")
    platform_version: str = Field(default="", alias="platformVersion")


def capabilities_from_body(body: Any) -> Capabilities:
    """Extract capabilities from a start-session request body.

    Raises:
        ProxyError: If the body has no usable ``desiredCapabilities``
    """
    if not isinstance(body, dict):
        raise invalid_capabilities_error("request body must be a JSON object")
    caps = body.get("desiredCapabilities")
    if not isinstance(caps, dict):
        raise invalid_capabilities_error("desiredCapabilities is missing")
    try:
        return Capabilities.model_validate(caps)
    except ValidationError as exc:
        missing = ", ".join(str(err["loc"][0]) for err in exc.errors())
        raise invalid_capabilities_error(f"invalid or missing fields: {missing}") from exc


@dataclass(frozen=True)
class Session:
    """The single live session: what was started and where it listens."""

    capabilities: Capabilities
    app_metadata: AppMetadata
    host_port: int
    device_port: int
    created_at: datetime = field(default_factory=datetime.now)
