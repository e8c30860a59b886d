"""Session holder - lifecycle of the single live session."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog

from android_session_proxy.errors import no_active_session_error, session_busy_error
from android_session_proxy.session.models import Session

logger = structlog.get_logger()


class SessionHolder:
    """Owns the current session and guards the protocols that touch it.

    Only one bring-up or reset may run at a time; a second one is rejected
    rather than queued.
    """

    def __init__(self) -> None:
        self._session: Session | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Session | None:
        return self._session

    def require(self) -> Session:
        """Return the live session.

        Raises:
            ProxyError: If no session has been started
        """
        if self._session is None:
            raise no_active_session_error()
        return self._session

    def replace(self, session: Session) -> None:
        previous = self._session
        self._session = session
        logger.info(
            "session_replaced" if previous else "session_created",
            device=session.capabilities.device_name,
            package=session.capabilities.package_name,
        )

    @asynccontextmanager
    async def exclusive(self, operation: str) -> AsyncGenerator[None, None]:
        """Hold the session for the duration of one protocol.

        Raises:
            ProxyError: If another protocol is already running
        """
        if self._lock.locked():
            logger.warning("session_busy", operation=operation)
            raise session_busy_error(operation)
        async with self._lock:
            yield
