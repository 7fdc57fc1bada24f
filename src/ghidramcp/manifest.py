"""Parse the inline ``# /// script`` dependency block of a Python script.

Only the ``dependencies`` list is read. Parsing is best-effort: malformed
entries are dropped and a missing block yields an empty list.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

BLOCK_START = "# /// script"
BLOCK_END = "# ///"

_DEPENDENCIES_RE = re.compile(r"^#\s*dependencies\s*=\s*\[(?P<rest>.*)$")
_ITEM_RE = re.compile(r"\s*(\"[^\"]*\"?|'[^']*'?|[^,]+)")
_QUOTES = "\"'"


class _ScanState(Enum):
    OUTSIDE_BLOCK = "outside-block"
    IN_BLOCK = "in-block"
    IN_LIST = "in-list"


def _clean_entry(raw: str) -> str | None:
    """Strip quotes and whitespace from one list item.

    Returns None for blank items and for items with an unterminated quote.
    """
    item = raw.strip().rstrip(",").strip()
    if not item:
        return None
    if item[0] in _QUOTES:
        if len(item) < 2 or item[-1] != item[0]:
            return None
        item = item[1:-1].strip()
    return item or None


def _split_items(body: str) -> Iterator[str]:
    for match in _ITEM_RE.finditer(body):
        entry = _clean_entry(match.group(1))
        if entry is not None:
            yield entry


def _find_closing_bracket(body: str) -> int:
    """Return the index of the first ``]`` outside quotes, or -1."""
    quote: str | None = None
    for index, char in enumerate(body):
        if quote is not None:
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char == "]":
            return index
    return -1


def _strip_comment(line: str) -> str:
    stripped = line.strip()
    if stripped.startswith("#"):
        stripped = stripped[1:]
    return stripped


def scan_dependencies(lines: Iterable[str]) -> list[str]:
    """Collect dependency specifiers from the first manifest block in *lines*."""
    state = _ScanState.OUTSIDE_BLOCK
    dependencies: list[str] = []

    for raw_line in lines:
        line = raw_line.strip()

        if state is _ScanState.OUTSIDE_BLOCK:
            if line == BLOCK_START:
                state = _ScanState.IN_BLOCK
            continue

        if line == BLOCK_END:
            break

        if state is _ScanState.IN_BLOCK:
            match = _DEPENDENCIES_RE.match(line)
            if match is None:
                continue
            rest = match.group("rest")
            close = _find_closing_bracket(rest)
            if close != -1:
                # Inline list; anything after the closing bracket is ignored.
                dependencies.extend(_split_items(rest[:close]))
                break
            dependencies.extend(_split_items(rest))
            state = _ScanState.IN_LIST
            continue

        content = _strip_comment(line)
        close = _find_closing_bracket(content)
        if close != -1:
            dependencies.extend(_split_items(content[:close]))
            break
        dependencies.extend(_split_items(content))

    return dependencies


def parse_manifest(text: str) -> list[str]:
    """Return the dependencies declared in a script's manifest block."""
    return scan_dependencies(text.splitlines())


def read_manifest(script_path: Path) -> list[str]:
    """Read *script_path* and parse its manifest block.

    Unreadable files are logged and treated as declaring no dependencies.
    """
    try:
        with script_path.open(encoding="utf-8", errors="replace") as handle:
            return scan_dependencies(handle)
    except OSError as exc:
        logger.warning("Could not read dependency manifest from %s: %s", script_path, exc)
        return []


__all__ = ["BLOCK_END", "BLOCK_START", "parse_manifest", "read_manifest", "scan_dependencies"]
