"""Error taxonomy for launching and supervising the MCP bridge server."""

from __future__ import annotations


class GhidraMCPError(Exception):
    """Base class for errors surfaced to the user as a single message."""


class ConfigurationError(GhidraMCPError):
    """Raised when the launch target or a configured path cannot be resolved."""


class ProvisioningError(GhidraMCPError):
    """Raised when the fallback environment cannot be created."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class AlreadyRunningError(GhidraMCPError):
    """Raised when a start is requested while a server process is tracked."""


class NotRunningError(GhidraMCPError):
    """Raised when a stop is requested with no tracked server process."""


class LaunchError(GhidraMCPError):
    """Raised when the server process fails to spawn or exits abnormally."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


__all__ = [
    "AlreadyRunningError",
    "ConfigurationError",
    "GhidraMCPError",
    "LaunchError",
    "NotRunningError",
    "ProvisioningError",
]
