"""Tests for runner detection."""

from __future__ import annotations

import pytest

from ghidramcp.probe import PROBE_TIMEOUT_SECONDS, is_runner_available
from ghidramcp.process import ProcessResult

pytestmark = pytest.mark.unit


class TestIsRunnerAvailable:
    @pytest.mark.asyncio
    async def test_zero_exit_means_available(self, mocker):
        mock_run = mocker.patch(
            "ghidramcp.probe.run_exec_capture",
            return_value=ProcessResult(returncode=0, stdout=b"uv 0.5.0\n", stderr=b""),
        )
        assert await is_runner_available() is True
        mock_run.assert_called_once_with("uv", "--version", timeout=PROBE_TIMEOUT_SECONDS)

    @pytest.mark.asyncio
    async def test_custom_runner_and_timeout(self, mocker):
        mock_run = mocker.patch(
            "ghidramcp.probe.run_exec_capture",
            return_value=ProcessResult(returncode=0, stdout=b"", stderr=b""),
        )
        assert await is_runner_available("pipx", timeout=2.5) is True
        mock_run.assert_called_once_with("pipx", "--version", timeout=2.5)

    @pytest.mark.asyncio
    async def test_nonzero_exit_means_unavailable(self, mocker):
        mocker.patch(
            "ghidramcp.probe.run_exec_capture",
            return_value=ProcessResult(returncode=2, stdout=b"", stderr=b"boom"),
        )
        assert await is_runner_available() is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            FileNotFoundError("uv"),
            PermissionError("denied"),
            OSError("exec format error"),
            TimeoutError(),
        ],
    )
    async def test_launch_failures_never_raise(self, mocker, error: BaseException):
        mocker.patch("ghidramcp.probe.run_exec_capture", side_effect=error)
        assert await is_runner_available() is False

    @pytest.mark.asyncio
    async def test_missing_binary_on_real_host(self):
        assert await is_runner_available("ghidramcp-no-such-runner-xyz") is False

    @pytest.mark.asyncio
    async def test_result_is_not_cached(self, mocker):
        mock_run = mocker.patch(
            "ghidramcp.probe.run_exec_capture",
            side_effect=[
                ProcessResult(returncode=0, stdout=b"", stderr=b""),
                FileNotFoundError("uv"),
            ],
        )
        assert await is_runner_available() is True
        assert await is_runner_available() is False
        assert mock_run.call_count == 2
