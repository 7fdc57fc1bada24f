"""ghidramcp: launch and supervise the Ghidra MCP bridge server."""

from ghidramcp.paths import CURRENT_PLATFORM, resolve_platform_value

__version__ = "0.1.0"

__all__ = ["CURRENT_PLATFORM", "resolve_platform_value"]
