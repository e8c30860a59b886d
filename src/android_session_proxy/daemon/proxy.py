"""Transparent relay to the in-device automation server."""

from __future__ import annotations

import httpx
import structlog

from android_session_proxy.errors import upstream_unreachable_error

logger = structlog.get_logger()

# Request headers carried over to the automation server; the rest are hop-specific
FORWARDED_HEADERS = ("content-type", "accept")


class AppServerProxy:
    """Forwards requests to the automation server behind the adb port forward.

    Responses with any HTTP status are returned as-is; only failures to reach
    the server at all are raised.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        health_path: str = "/ping",
        health_timeout: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.health_path = health_path
        self.health_timeout = health_timeout
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def forward(
        self,
        method: str,
        path: str,
        body: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Relay one request verbatim.

        Raises:
            ProxyError: If the automation server cannot be reached
        """
        forwarded = {
            key: value
            for key, value in (headers or {}).items()
            if key.lower() in FORWARDED_HEADERS
        }
        try:
            response = await self._client.request(
                method, path, content=body or None, headers=forwarded
            )
        except httpx.TransportError as exc:
            logger.warning("proxy_upstream_unreachable", method=method, path=path, error=str(exc))
            raise upstream_unreachable_error(f"{self.base_url}{path}", str(exc)) from exc
        logger.debug("proxy_forwarded", method=method, path=path, status=response.status_code)
        return response

    async def ping(self) -> None:
        """Check the automation server answers its health path with 2xx.

        Uses ``health_timeout`` rather than the relay timeout so a server that
        accepts connections but never replies fails each attempt quickly.

        Raises:
            ProxyError: If the server is unreachable
            httpx.HTTPStatusError: If it answers with an error status
        """
        try:
            response = await self._client.get(self.health_path, timeout=self.health_timeout)
        except httpx.TransportError as exc:
            url = f"{self.base_url}{self.health_path}"
            raise upstream_unreachable_error(url, str(exc)) from exc
        response.raise_for_status()
