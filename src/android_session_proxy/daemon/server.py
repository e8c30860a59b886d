"""FastAPI server - session control endpoints and catch-all relay."""

from __future__ import annotations

import json
import traceback
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from android_session_proxy import __version__
from android_session_proxy.config import ProxyConfig
from android_session_proxy.daemon.core import ProxyCore
from android_session_proxy.errors import ProxyError, internal_error, invalid_capabilities_error
from android_session_proxy.session.models import capabilities_from_body

logger = structlog.get_logger()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _error_response(error: ProxyError, stack: str) -> JSONResponse:
    return JSONResponse(
        status_code=error.http_status,
        content={"status": "error", "error": error.to_dict(), "stack": stack},
    )


def _relay_response(upstream: httpx.Response) -> Response:
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )


def _target_path(request: Request) -> str:
    """Path and query exactly as the client sent them, percent-encoding intact."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.scope.get("query_string", b"").decode("latin-1")
    return f"{path}?{query}" if query else path


async def _relay(core: ProxyCore, request: Request, body: bytes) -> Response:
    upstream = await core.proxy.forward(
        request.method, _target_path(request), body, dict(request.headers)
    )
    return _relay_response(upstream)


async def _guarded(
    request: Request, handler: Callable[[ProxyCore, bytes], Awaitable[Response]]
) -> Response:
    """Run an endpoint body, rendering any failure as an error response."""
    core: ProxyCore = request.app.state.core
    body = await request.body()
    try:
        return await handler(core, body)
    except ProxyError as exc:
        logger.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            code=exc.code,
            error=exc.message,
        )
        return _error_response(exc, traceback.format_exc())
    except Exception as exc:
        logger.exception("request_crashed", method=request.method, path=request.url.path)
        return _error_response(internal_error(exc), traceback.format_exc())


def create_app(config: ProxyConfig | None = None) -> FastAPI:
    """Build the proxy application for ``config``."""
    config = config or ProxyConfig.from_env()
    root = config.root_path.rstrip("/")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("proxy_starting", port=config.port, root_path=root)
        app.state.core = ProxyCore(config)
        await app.state.core.start()
        yield
        logger.info("proxy_stopping")
        await app.state.core.stop()

    app = FastAPI(
        title="Android Session Proxy",
        version=__version__,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )

    @app.post(f"{root}/session")
    async def create_session(request: Request) -> Response:
        """Bring up device and app, then open the remote session."""

        async def _handle(core: ProxyCore, body: bytes) -> Response:
            try:
                payload = json.loads(body or b"null")
            except ValueError as exc:
                raise invalid_capabilities_error("request body is not valid JSON") from exc
            caps = capabilities_from_body(payload)
            await core.orchestrator.start_session(caps)
            return await _relay(core, request, body)

        return await _guarded(request, _handle)

    @app.post(f"{root}/session/{{session_id}}/appium/app/reset")
    async def reset_app(request: Request, session_id: str) -> Response:
        """Reset app state, then let the automation server handle the reset."""

        async def _handle(core: ProxyCore, body: bytes) -> Response:
            logger.info("app_reset_requested", session_id=session_id)
            await core.orchestrator.reset_app()
            return await _relay(core, request, body)

        return await _guarded(request, _handle)

    @app.api_route("/{path:path}", methods=PROXY_METHODS)
    async def forward(request: Request, path: str) -> Response:
        """Relay everything else to the automation server."""

        async def _handle(core: ProxyCore, body: bytes) -> Response:
            return await _relay(core, request, body)

        return await _guarded(request, _handle)

    return app
