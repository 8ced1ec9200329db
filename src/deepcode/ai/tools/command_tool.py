"""Shell command execution for the agent."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

from .arguments import RunCommandRequest
from .base import BaseTool, ToolContext, ToolResult
from .errors import ErrorCode, ProcessError

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_BUFFER = 2 * 1024 * 1024
STDOUT_LIMIT = 50_000
STDERR_LIMIT = 10_000
DEFAULT_TIMEOUT_MS = 30_000
_READ_CHUNK = 64 * 1024


@dataclass(slots=True, frozen=True)
class ProcessOutput:
    """Captured output of a finished process."""

    stdout: str
    stderr: str
    exit_code: int


class ProcessRunner(Protocol):
    """Runs a process to completion or raises :class:`ProcessError`.

    ``command`` is a shell string when ``shell`` is true, otherwise an argv
    sequence. A timeout kills the process and raises with ``timed_out`` set.
    """

    async def run(
        self,
        command: str | Sequence[str],
        *,
        cwd: str,
        timeout: float,
        shell: bool = False,
        env: Mapping[str, str] | None = None,
        max_buffer: int = DEFAULT_MAX_BUFFER,
    ) -> ProcessOutput:
        ...


class AsyncProcessRunner:
    """:class:`ProcessRunner` built on asyncio subprocesses."""

    async def run(
        self,
        command: str | Sequence[str],
        *,
        cwd: str,
        timeout: float,
        shell: bool = False,
        env: Mapping[str, str] | None = None,
        max_buffer: int = DEFAULT_MAX_BUFFER,
    ) -> ProcessOutput:
        display = command if isinstance(command, str) else " ".join(command)
        merged_env = {**os.environ, **(env or {})}
        kwargs = {
            "cwd": cwd,
            "env": merged_env,
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
        }
        if os.name == "posix":
            kwargs["start_new_session"] = True
        try:
            if shell:
                proc = await asyncio.create_subprocess_shell(str(command), **kwargs)
            else:
                proc = await asyncio.create_subprocess_exec(*command, **kwargs)
        except OSError as exc:
            raise ProcessError(
                message=f"Failed to start {display!r}: {exc.strerror or exc}",
                command=display,
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                asyncio.gather(_drain(proc.stdout, max_buffer), _drain(proc.stderr, max_buffer)),
                timeout=timeout,
            )
            await proc.wait()
        except asyncio.TimeoutError:
            await _kill(proc)
            raise ProcessError(
                error_code=ErrorCode.TIMEOUT,
                message=f"Command timed out after {timeout:g}s: {display}",
                command=display,
                timed_out=True,
            ) from None
        except asyncio.CancelledError:
            await _kill(proc)
            raise

        return ProcessOutput(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
        )


async def _drain(stream: asyncio.StreamReader | None, limit: int) -> bytes:
    if stream is None:
        return b""
    buffer = bytearray()
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        room = limit - len(buffer)
        if room > 0:
            buffer.extend(chunk[:room])
    return bytes(buffer)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


class RunCommandTool(BaseTool):
    """Runs a shell command in the workspace root.

    Non-zero exit codes yield ``success=False`` while still returning the
    captured output.
    """

    name = "run_command"
    request_type = RunCommandRequest

    def __init__(
        self,
        *,
        max_buffer: int = DEFAULT_MAX_BUFFER,
        stdout_limit: int = STDOUT_LIMIT,
        stderr_limit: int = STDERR_LIMIT,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self._max_buffer = max_buffer
        self._default_timeout_ms = default_timeout_ms
        self._stdout_limit = stdout_limit
        self._stderr_limit = stderr_limit

    async def execute(self, context: ToolContext, request: RunCommandRequest) -> ToolResult:
        runner = context.process_runner or AsyncProcessRunner()
        timeout = max(1, request.timeout_ms or self._default_timeout_ms) / 1000.0
        LOGGER.debug("run_command: %s (timeout=%.1fs)", request.command, timeout)
        result = await runner.run(
            request.command,
            cwd=context.workspace_root,
            timeout=timeout,
            shell=True,
            env={"FORCE_COLOR": "0"},
            max_buffer=self._max_buffer,
        )

        parts: list[str] = []
        if result.stdout.strip():
            parts.append("stdout:\n" + result.stdout.strip()[: self._stdout_limit])
        if result.stderr.strip():
            parts.append("stderr:\n" + result.stderr.strip()[: self._stderr_limit])
        parts.append(f"Exit code: {result.exit_code}")
        return ToolResult(success=result.exit_code == 0, output="\n\n".join(parts))


__all__ = [
    "DEFAULT_MAX_BUFFER",
    "ProcessOutput",
    "ProcessRunner",
    "AsyncProcessRunner",
    "RunCommandTool",
]
