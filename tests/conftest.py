"""Pytest fixtures for ghidramcp tests."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

_TEST_BASE_DIR = Path(tempfile.mkdtemp(prefix="ghidramcp-tests-"))
os.environ["GHIDRAMCP_DATA_DIR"] = str(_TEST_BASE_DIR / "data")
os.environ["GHIDRAMCP_CONFIG_DIR"] = str(_TEST_BASE_DIR / "config")
os.environ["GHIDRAMCP_CACHE_DIR"] = str(_TEST_BASE_DIR / "cache")

from ghidramcp.output import OutputChannel  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Callable


settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


BRIDGE_SCRIPT = """\
# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "requests>=2,<3",
#     "mcp>=1.2.0,<2",
# ]
# ///
import sys

print("bridge", *sys.argv[1:])
"""


@pytest.fixture
def sink() -> OutputChannel:
    return OutputChannel()


@pytest.fixture
def bridge_script(tmp_path: Path) -> Path:
    """A bridge script with an inline dependency manifest."""
    script = tmp_path / "bridge" / "bridge_mcp_ghidra.py"
    script.parent.mkdir()
    script.write_text(BRIDGE_SCRIPT, encoding="utf-8")
    return script


@pytest.fixture
def python_command() -> Callable[[str], tuple[str, list[str]]]:
    """Build a (command, args) pair that runs *code* with the current interpreter."""

    def build(code: str) -> tuple[str, list[str]]:
        return sys.executable, ["-c", code]

    return build
