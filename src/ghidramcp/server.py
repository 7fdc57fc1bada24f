"""Start and stop handlers for the Ghidra MCP bridge server."""

from __future__ import annotations

import logging
import shlex
from typing import TYPE_CHECKING

from ghidramcp.errors import GhidraMCPError, LaunchError, NotRunningError
from ghidramcp.provision import EnvironmentProvisioner
from ghidramcp.supervisor import ProcessSupervisor

if TYPE_CHECKING:
    from ghidramcp.config import GhidraMCPConfig
    from ghidramcp.notify import Notifier
    from ghidramcp.output import OutputChannel

logger = logging.getLogger(__name__)


class ServerController:
    """Wires configuration, provisioning and supervision behind start/stop.

    Errors from the taxonomy are reported through the output channel and the
    notifier; they never propagate to the caller.
    """

    def __init__(
        self,
        config: GhidraMCPConfig,
        sink: OutputChannel,
        notifier: Notifier,
        *,
        provisioner: EnvironmentProvisioner | None = None,
        supervisor: ProcessSupervisor | None = None,
    ) -> None:
        self.config = config
        self.sink = sink
        self._notifier = notifier
        env = config.environment
        self.provisioner = provisioner or EnvironmentProvisioner(
            sink,
            runner=env.runner,
            base_interpreter=env.base_interpreter or None,
            probe_timeout=env.probe_timeout,
        )
        self.supervisor = supervisor or ProcessSupervisor(sink, on_exit=self._on_server_exit)

    @property
    def is_running(self) -> bool:
        return self.supervisor.is_running

    def _report(self, prefix: str, error: GhidraMCPError) -> None:
        self.sink.append_line(f"{prefix}: {error}")
        logger.debug("%s", prefix, exc_info=error)
        self._notifier.error(f"Failed to start server: {error}")

    def _on_server_exit(self, returncode: int) -> None:
        if returncode == 0:
            self._notifier.info("Ghidra MCP server exited")
            return
        error = LaunchError(
            f"Server process exited with code {returncode}", returncode=returncode
        )
        self.sink.append_line(f"Server process error: {error}")
        self._notifier.error(str(error))

    async def start(self) -> bool:
        """Provision the environment and launch the server.

        Returns:
            True if the server process was spawned.
        """
        if self.supervisor.is_running:
            self._notifier.warning("Ghidra MCP server is already running")
            return False

        try:
            script_path = self.config.resolve_script_path()
            provisioned = await self.provisioner.provision(
                script_path, self.config.resolve_venv_path()
            )
            args = provisioned.launch_args(self.config.server_options())
            self.sink.append_line(
                "Starting Ghidra MCP server with command: "
                f"{shlex.join([provisioned.command, *args])}"
            )
            await self.supervisor.start(provisioned.command, args)
        except GhidraMCPError as exc:
            self._report("Error starting server", exc)
            return False

        self._notifier.info("Ghidra MCP server started")
        return True

    def stop(self) -> bool:
        """Stop the running server.

        Returns:
            True if a running server was signalled.
        """
        try:
            self.supervisor.stop()
        except NotRunningError as exc:
            self._notifier.warning(str(exc))
            return False
        self.sink.append_line("Stopping Ghidra MCP server...")
        self._notifier.info("Ghidra MCP server stopped")
        return True

    async def shutdown(self) -> None:
        await self.supervisor.shutdown()


__all__ = ["ServerController"]
