"""Tests for the output channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from ghidramcp.output import MAX_LINE_LENGTH, OutputChannel

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


def test_lines_are_buffered_in_order():
    channel = OutputChannel()
    channel.append_line("one")
    channel.append_line("two")

    assert channel.lines() == ["one", "two"]


def test_ring_buffer_drops_oldest():
    channel = OutputChannel(max_lines=2)
    for text in ("a", "b", "c"):
        channel.append_line(text)

    assert channel.lines() == ["b", "c"]


def test_oversized_lines_are_truncated():
    channel = OutputChannel()
    channel.append_line("x" * (MAX_LINE_LENGTH + 10))

    assert channel.lines()[0].endswith("... [truncated]")


def test_echo_failure_is_swallowed():
    def broken_echo(text: str) -> None:
        raise BrokenPipeError(text)

    channel = OutputChannel(echo=broken_echo)
    channel.append_line("still recorded")

    assert channel.lines() == ["still recorded"]


def test_lines_reach_logging(caplog):
    channel = OutputChannel()
    with caplog.at_level(logging.INFO, logger="ghidramcp.output"):
        channel.append_line("[STDOUT] hello")

    assert "[STDOUT] hello" in caplog.messages


def test_export_writes_lines(tmp_path: Path):
    channel = OutputChannel()
    channel.append_line("first")
    channel.append_line("second")
    target = tmp_path / "logs" / "server.log"

    assert channel.export(target) == 2

    content = target.read_text(encoding="utf-8").splitlines()
    assert content[0] == "# Ghidra MCP output (2 lines)"
    assert content[1].endswith(" first")
    assert content[2].endswith(" second")


def test_clear_empties_buffer():
    channel = OutputChannel()
    channel.append_line("gone")
    channel.clear()

    assert channel.lines() == []
