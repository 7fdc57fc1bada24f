"""Subprocess adapter shared by the probe, provisioner and supervisor.

Every external tool invocation goes through this module.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class ProcessResult:
    """Captured result of a subprocess execution."""

    returncode: int
    stdout: bytes
    stderr: bytes

    def stdout_text(self) -> str:
        """Decode stdout as UTF-8 with replacement."""
        return self.stdout.decode("utf-8", errors="replace")

    def stderr_text(self) -> str:
        """Decode stderr as UTF-8 with replacement."""
        return self.stderr.decode("utf-8", errors="replace")


async def spawn_exec(
    executable: str,
    *args: str,
    stdin: int | None = None,
    stdout: int | None = None,
    stderr: int | None = None,
) -> asyncio.subprocess.Process:
    """Spawn a subprocess using ``create_subprocess_exec``."""
    return await asyncio.create_subprocess_exec(
        executable,
        *args,
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
    )


async def _communicate(
    process: asyncio.subprocess.Process,
    *,
    timeout: float | None = None,
) -> tuple[bytes, bytes]:
    try:
        if timeout is None:
            stdout, stderr = await process.communicate()
        else:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        with contextlib.suppress(ProcessLookupError):
            await process.communicate()
        raise

    return stdout or b"", stderr or b""


async def run_exec_capture(
    executable: str,
    *args: str,
    timeout: float | None = None,
) -> ProcessResult:
    """Run an exec subprocess and capture stdout/stderr.

    Raises:
        OSError: If the executable cannot be launched.
        TimeoutError: If *timeout* elapses; the process is killed first.
    """
    process = await spawn_exec(
        executable,
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await _communicate(process, timeout=timeout)
    return ProcessResult(
        returncode=process.returncode if process.returncode is not None else 1,
        stdout=stdout,
        stderr=stderr,
    )


def _decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


async def pump_lines(
    stream: asyncio.StreamReader | None,
    on_line: Callable[[str], None],
) -> None:
    """Forward each decoded line from *stream* to *on_line* until EOF.

    A line longer than the stream buffer limit is forwarded in buffer-sized
    pieces instead of failing the read.
    """
    if stream is None:
        return
    overran = False
    while True:
        try:
            raw = await stream.readuntil(b"\n")
        except asyncio.IncompleteReadError as exc:
            if exc.partial:
                on_line(_decode_line(exc.partial))
            return
        except asyncio.LimitOverrunError as exc:
            on_line(_decode_line(await stream.read(max(exc.consumed, 1))))
            overran = True
            continue

        line = _decode_line(raw)
        # The newline that ends an overrun line is not a line of its own.
        if line or not overran:
            on_line(line)
        overran = False


async def run_exec_streaming(
    executable: str,
    *args: str,
    on_stdout: Callable[[str], None],
    on_stderr: Callable[[str], None],
) -> int:
    """Run an exec subprocess, forwarding output line by line, and return its exit code.

    Raises:
        OSError: If the executable cannot be launched.
    """
    process = await spawn_exec(
        executable,
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    await asyncio.gather(
        pump_lines(process.stdout, on_stdout),
        pump_lines(process.stderr, on_stderr),
    )
    returncode = await process.wait()
    return returncode if returncode is not None else 1


__all__ = [
    "ProcessResult",
    "pump_lines",
    "run_exec_capture",
    "run_exec_streaming",
    "spawn_exec",
]
