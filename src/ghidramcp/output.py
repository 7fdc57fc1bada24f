"""Output channel for launcher and server log lines.

Lines are kept in a ring buffer for later inspection and mirrored to the
``ghidramcp.output`` logger. An optional echo callback shows them live.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

MAX_OUTPUT_LINES = 2000
MAX_LINE_LENGTH = 8000

_channel_logger = logging.getLogger("ghidramcp.output")


@dataclass(slots=True)
class OutputLine:
    """A captured output line."""

    text: str
    timestamp: float


class OutputChannel:
    """Log sink that accepts text lines and never raises."""

    def __init__(
        self,
        name: str = "Ghidra MCP",
        *,
        echo: Callable[[str], None] | None = None,
        max_lines: int = MAX_OUTPUT_LINES,
    ) -> None:
        self.name = name
        self._echo = echo
        self._lines: deque[OutputLine] = deque(maxlen=max_lines)

    def append_line(self, text: str) -> None:
        """Record one line of output."""
        if len(text) > MAX_LINE_LENGTH:
            text = text[:MAX_LINE_LENGTH] + "... [truncated]"
        self._lines.append(OutputLine(text=text, timestamp=time.time()))
        _channel_logger.info("%s", text)
        if self._echo is not None:
            try:
                self._echo(text)
            except Exception:  # quality-allow-broad-except
                _channel_logger.debug("Output echo failed", exc_info=True)

    def lines(self) -> list[str]:
        """Return the buffered lines, oldest first."""
        return [entry.text for entry in self._lines]

    def clear(self) -> None:
        self._lines.clear()

    def export(self, path: Path) -> int:
        """Write the buffered lines to *path* and return how many were written."""
        from datetime import datetime

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            handle.write(f"# {self.name} output ({len(self._lines)} lines)\n")
            for entry in self._lines:
                ts = datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
                handle.write(f"{ts} {entry.text}\n")
        return len(self._lines)


_logging_configured: bool = False


def configure_logging(*, verbose: bool = False) -> None:
    """Install a stderr handler on the root logger.

    Idempotent. Output-channel lines are echoed separately, so the channel
    logger only reaches the handler in verbose mode.
    """
    global _logging_configured

    if _logging_configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    _channel_logger.propagate = verbose

    _logging_configured = True


__all__ = ["MAX_OUTPUT_LINES", "OutputChannel", "OutputLine", "configure_logging"]
