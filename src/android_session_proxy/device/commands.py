"""Command execution - run SDK tool invocations and classify their output."""

from __future__ import annotations

import asyncio
import shlex
from dataclasses import dataclass

import structlog

from android_session_proxy.errors import tool_command_error, tool_not_found_error

logger = structlog.get_logger()

# Exit status a POSIX shell reports when the command itself cannot be found
SHELL_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """Captured output of one invocation."""

    stdout: str
    stderr: str


def classify_output(command: str, stdout: str, stderr: str) -> CommandResult:
    """Reject output that follows the tool's "error on exit code 0" convention.

    adb reports some failures (e.g. ``install`` of a corrupt apk) by printing a
    line starting with ``error`` while still exiting 0. Checked on stdout first,
    then stderr, case-insensitively.

    Raises:
        ProxyError: If either stream starts with ``error``
    """
    if stdout.lower().startswith("error"):
        raise tool_command_error(command, stdout.strip())
    if stderr.lower().startswith("error"):
        raise tool_command_error(command, stderr.strip())
    return CommandResult(stdout=stdout, stderr=stderr)


class CommandRunner:
    """Runs shell commands on the host and spawns detached processes."""

    async def execute(self, command: str) -> CommandResult:
        """Run a shell command and return its classified output.

        Raises:
            ProxyError: If the command is missing, exits non-zero, or reports an error
        """
        logger.debug("command_executing", command=command)
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        out, err = await proc.communicate()
        stdout = out.decode(errors="replace")
        stderr = err.decode(errors="replace")

        if proc.returncode == SHELL_NOT_FOUND:
            raise tool_not_found_error(shlex.split(command)[0])
        if proc.returncode != 0:
            reason = (stderr or stdout or f"exit status {proc.returncode}").strip()
            raise tool_command_error(command, reason)
        return classify_output(command, stdout, stderr)

    async def spawn(self, *args: str) -> asyncio.subprocess.Process:
        """Start a process in the background without waiting for it.

        The child's stdio is discarded; it keeps running after the request
        that started it completes.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError as exc:
            raise tool_not_found_error(args[0]) from exc
        logger.info("process_spawned", pid=proc.pid, args=list(args))
        return proc
