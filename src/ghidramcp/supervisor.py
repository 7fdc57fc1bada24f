"""Single-instance supervision of the bridge server process."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from ghidramcp.errors import AlreadyRunningError, LaunchError, NotRunningError
from ghidramcp.process import pump_lines, spawn_exec

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ghidramcp.output import OutputChannel

logger = logging.getLogger(__name__)


class ProcessSupervisor:
    """Owns the one slot for the running server process.

    Construct once per host process and hand it to the command handlers.
    The slot is cleared by ``stop()`` or by the process's own exit,
    whichever happens first.
    """

    def __init__(
        self,
        sink: OutputChannel,
        *,
        on_exit: Callable[[int], None] | None = None,
    ) -> None:
        self._sink = sink
        self._on_exit = on_exit
        self._process: asyncio.subprocess.Process | None = None
        self._watcher: asyncio.Task[int] | None = None
        self._watchers: set[asyncio.Task[int]] = set()
        self._last_process: asyncio.subprocess.Process | None = None
        self._starting = False
        self._stop_requested: set[int] = set()
        self.last_exit_code: int | None = None

    @property
    def is_running(self) -> bool:
        return self._process is not None or self._starting

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    async def start(self, command: str, args: Sequence[str]) -> None:
        """Spawn *command* and begin streaming its output.

        Returns once the process is spawned; does not wait for it to exit.

        Raises:
            AlreadyRunningError: If a process is already tracked.
            LaunchError: If the process cannot be spawned.
        """
        if self.is_running:
            msg = "Ghidra MCP server is already running"
            raise AlreadyRunningError(msg)

        self._starting = True
        try:
            process = await spawn_exec(
                command,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            self._sink.append_line(f"Server process error: {exc}")
            msg = f"Failed to start server: {exc}"
            raise LaunchError(msg) from exc
        finally:
            self._starting = False

        self._process = process
        self._last_process = process
        self._watcher = asyncio.create_task(self._watch(process))
        self._watchers.add(self._watcher)
        self._watcher.add_done_callback(self._watchers.discard)
        logger.debug("Spawned server process pid=%s", process.pid)

    async def _watch(self, process: asyncio.subprocess.Process) -> int:
        try:
            await asyncio.gather(
                pump_lines(
                    process.stdout, lambda line: self._sink.append_line(f"[STDOUT] {line}")
                ),
                pump_lines(
                    process.stderr, lambda line: self._sink.append_line(f"[STDERR] {line}")
                ),
            )
            returncode = await process.wait()
        finally:
            # The slot must not outlive the process, even if reading its output failed.
            if self._process is process:
                self._process = None
            self.last_exit_code = process.returncode
            requested = process.pid in self._stop_requested
            self._stop_requested.discard(process.pid)

        self._sink.append_line(f"Server process exited with code {returncode}")
        if not requested and self._on_exit is not None:
            self._on_exit(returncode)
        return returncode

    def stop(self) -> None:
        """Signal the tracked process to terminate and clear the slot at once.

        Raises:
            NotRunningError: If no process is tracked.
        """
        process = self._process
        if process is None:
            msg = "Ghidra MCP server is not running"
            raise NotRunningError(msg)

        self._process = None
        self._stop_requested.add(process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.terminate()

    async def wait(self) -> int | None:
        """Wait for the tracked process to exit and return its exit code."""
        watcher = self._watcher
        if watcher is None:
            return self.last_exit_code
        return await watcher

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Terminate any tracked process; used when the host is going away."""
        watcher = self._watcher
        if self._process is not None:
            self.stop()
        if watcher is None or watcher.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(watcher), timeout=timeout)
        except TimeoutError:
            logger.warning("Server process did not exit within %.1fs; killing it", timeout)
            if self._last_process is not None:
                with contextlib.suppress(ProcessLookupError):
                    self._last_process.kill()
            await watcher


__all__ = ["ProcessSupervisor"]
