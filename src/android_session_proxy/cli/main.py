"""CLI entry point using Typer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

import structlog
import typer

from android_session_proxy.config import ProxyConfig
from android_session_proxy.device.commands import CommandRunner
from android_session_proxy.device.tools import DeviceTools
from android_session_proxy.errors import ProxyError

app = typer.Typer(
    name="android-session-proxy",
    help="Android test session bring-up and automation server proxy",
    no_args_is_help=True,
)


def configure_logging(level: str) -> None:
    """Route structlog output through a level filter."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level: {level}")
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(numeric))


def _render_error(error: ProxyError) -> None:
    typer.echo(f"{error.code}: {error.message}", err=True)
    if error.remediation:
        typer.echo(f"Hint: {error.remediation}", err=True)
    raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    from android_session_proxy import __version__

    typer.echo(f"android-session-proxy v{__version__}")


@app.command()
def serve(
    port: int = typer.Option(4723, "--port", help="Port to listen on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    app_server_port: int = typer.Option(
        7100, "--app-server-port", help="Automation server port on the device"
    ),
    local_app_server_port: int = typer.Option(
        6100, "--local-app-server-port", help="Host port forwarded to the automation server"
    ),
    root_path: str = typer.Option("/wd/hub", "--root-path", help="WebDriver root path"),
    sdk_path: str | None = typer.Option(
        None, "--sdk-path", envvar="ANDROID_HOME", help="Android SDK directory"
    ),
    log_level: str = typer.Option("info", "--log-level", help="Log level"),
) -> None:
    """Run the session proxy server."""
    import uvicorn

    from android_session_proxy.daemon.server import create_app

    configure_logging(log_level)
    config = ProxyConfig(
        port=port,
        host=host,
        app_server_port=app_server_port,
        local_app_server_port=local_app_server_port,
        root_path=root_path,
    )
    if sdk_path:
        config = replace(config, sdk_path=sdk_path)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=log_level)


@app.command()
def devices(
    device: str = typer.Option("emulator-5554", "--device", help="Device passed to adb -s"),
    sdk_path: str | None = typer.Option(
        None, "--sdk-path", envvar="ANDROID_HOME", help="Android SDK directory"
    ),
) -> None:
    """List devices visible to adb, using the same parsing as bring-up."""
    tools = DeviceTools(CommandRunner(), sdk_path=sdk_path, device_name=device)
    try:
        names = asyncio.run(tools.list_running_devices())
    except ProxyError as exc:
        _render_error(exc)
        return
    if not names:
        typer.echo("No running devices.")
        return
    for name in names:
        typer.echo(name)


if __name__ == "__main__":
    app()
