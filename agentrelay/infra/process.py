"""Local process execution: timeouts, output caps and PTY wrapping."""

from __future__ import annotations

import asyncio
import logging
import os

from agentrelay.infra.agents.base import shell_quote

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600.0
DEFAULT_MAX_BUFFER = 10 * 1024 * 1024
_READ_CHUNK = 64 * 1024


class CommandExecutionError(RuntimeError):
    """A process exited non-zero or overflowed its output buffer.

    Carries whatever stdout was captured so callers can still salvage a
    reply from it.
    """

    def __init__(
        self,
        message: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


class CommandTimeoutError(CommandExecutionError):
    """A process ran past its allotted time and was killed."""


class _BufferOverflow(Exception):
    pass


async def _read_capped(stream: asyncio.StreamReader | None, sink: bytearray, limit: int) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        sink.extend(chunk)
        if len(sink) > limit:
            del sink[limit:]
            raise _BufferOverflow()


def _decode(data: bytearray) -> str:
    return bytes(data).decode(errors="replace")


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


async def exec_local(
    program: str,
    args: list[str] | tuple[str, ...] = (),
    *,
    timeout: float = DEFAULT_TIMEOUT,
    max_buffer: int = DEFAULT_MAX_BUFFER,
    env: dict[str, str] | None = None,
    cwd: str | None = None,
) -> str:
    """Run a program to completion and return its stdout.

    Raises CommandTimeoutError when ``timeout`` seconds elapse and
    CommandExecutionError on a non-zero exit or when stdout/stderr grow past
    ``max_buffer`` bytes. The process is killed in both failure cases and
    when the caller is cancelled.
    """
    full_env = None
    if env:
        full_env = os.environ.copy()
        full_env.update(env)

    proc = await asyncio.create_subprocess_exec(
        program,
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=full_env,
        cwd=cwd,
    )
    stdout = bytearray()
    stderr = bytearray()

    async def _collect() -> None:
        await asyncio.gather(
            _read_capped(proc.stdout, stdout, max_buffer),
            _read_capped(proc.stderr, stderr, max_buffer),
        )
        await proc.wait()

    try:
        await asyncio.wait_for(_collect(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise CommandTimeoutError(
            f"Command timed out after {timeout:g}s: {program}",
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            returncode=proc.returncode,
        ) from None
    except _BufferOverflow:
        await _kill(proc)
        raise CommandExecutionError(
            f"Command output exceeded {max_buffer} bytes: {program}",
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            returncode=proc.returncode,
        ) from None
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    if proc.returncode != 0:
        raise CommandExecutionError(
            f"Command failed with exit code {proc.returncode}: {program}",
            stdout=_decode(stdout),
            stderr=_decode(stderr),
            returncode=proc.returncode,
        )
    return _decode(stdout)


def wrap_command_with_pty(command: str) -> str:
    """Run a shell command under ``script`` so the child sees a terminal."""
    return f"script -q -e -c {shell_quote(command)} /dev/null"


def prepare_agent_command(command: str, needs_pty: bool = False, merge_stderr: bool = False) -> str:
    if needs_pty:
        command = wrap_command_with_pty(command)
    if merge_stderr:
        command = f"{command} 2>&1"
    return command
