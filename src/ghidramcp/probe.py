"""Detect whether the dependency-aware script runner is installed."""

from __future__ import annotations

import logging

from ghidramcp.process import run_exec_capture

logger = logging.getLogger(__name__)

DEFAULT_RUNNER = "uv"
PROBE_TIMEOUT_SECONDS = 10.0


async def is_runner_available(
    runner: str = DEFAULT_RUNNER,
    *,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> bool:
    """Return True when ``<runner> --version`` launches and exits with status 0.

    Launch failures, timeouts and non-zero exits all mean "not available".
    The answer is not cached; the host may change between calls.
    """
    try:
        result = await run_exec_capture(runner, "--version", timeout=timeout)
    except FileNotFoundError:
        logger.debug("Runner %s not found", runner)
        return False
    except TimeoutError:
        logger.warning("Runner %s did not answer --version within %.1fs", runner, timeout)
        return False
    except OSError as exc:
        logger.debug("Runner %s could not be launched: %s", runner, exc)
        return False

    if result.returncode != 0:
        logger.debug(
            "Runner %s --version exited with code %s: %s",
            runner,
            result.returncode,
            result.stderr_text().strip(),
        )
        return False

    logger.debug("Runner available: %s", result.stdout_text().strip())
    return True


__all__ = ["DEFAULT_RUNNER", "PROBE_TIMEOUT_SECONDS", "is_runner_available"]
