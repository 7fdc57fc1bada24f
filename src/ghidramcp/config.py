"""Configuration loader for ghidramcp."""

from __future__ import annotations

import asyncio
import os
import tempfile
import tomllib
from pathlib import Path

import tomlkit
from pydantic import BaseModel, Field, ValidationError, field_validator

from ghidramcp.errors import ConfigurationError
from ghidramcp.paths import CURRENT_PLATFORM, get_config_path, resolve_platform_value
from ghidramcp.probe import DEFAULT_RUNNER, PROBE_TIMEOUT_SECONDS
from ghidramcp.provision import ServerOptions


def _atomic_write(path: Path, content: str) -> None:
    """Write file atomically to avoid partial/corrupt writes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        Path(tmp_path).replace(path)
    except Exception:
        Path(tmp_path).unlink(missing_ok=True)
        raise


class ServerConfig(BaseModel):
    """Where the bridge script lives and how the server is exposed."""

    bridge_script_path: str | dict[str, str] | None = Field(
        default=None,
        description="Path to the bridge script, or a table of per-platform paths",
    )
    venv_path: str | dict[str, str] | None = Field(
        default=None,
        description="Fallback virtual environment root (blank = private storage default)",
    )
    mcp_host: str = Field(default="127.0.0.1")
    mcp_port: int = Field(default=8081, ge=1, le=65535)
    ghidra_server: str = Field(default="http://127.0.0.1:8080/")


class EnvironmentConfig(BaseModel):
    """How the launch environment is provisioned."""

    runner: str = Field(default=DEFAULT_RUNNER, description="Dependency-aware script runner")
    base_interpreter: str = Field(
        default="",
        description="Interpreter used to create the fallback environment (blank = current)",
    )
    probe_timeout: float = Field(default=PROBE_TIMEOUT_SECONDS, gt=0)

    @field_validator("runner", mode="before")
    @classmethod
    def validate_runner(cls, value: object) -> object:
        """Fall back to the default runner for blank values."""
        if isinstance(value, str) and not value.strip():
            return DEFAULT_RUNNER
        return value


class GhidraMCPConfig(BaseModel):
    """Root configuration model."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> GhidraMCPConfig:
        """Load configuration from TOML file or use defaults.

        Raises:
            ConfigurationError: If the file is not valid TOML or fails validation.
        """
        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            return cls.model_validate(data)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {config_path}: {exc}"
            raise ConfigurationError(msg) from exc
        except ValidationError as exc:
            msg = f"Invalid configuration in {config_path}: {exc}"
            raise ConfigurationError(msg) from exc

    def resolve_script_path(self, current: str = CURRENT_PLATFORM) -> Path:
        """Return the configured bridge script path for *current*.

        Raises:
            ConfigurationError: If no path is configured.
        """
        raw = resolve_platform_value(
            self.server.bridge_script_path, current, setting="server.bridge_script_path"
        )
        if raw is None or not raw.strip():
            msg = "Please configure the bridge script path in settings"
            raise ConfigurationError(msg)
        return Path(raw).expanduser()

    def resolve_venv_path(self, current: str = CURRENT_PLATFORM) -> str | None:
        """Return the explicit environment root, or None to use the default."""
        raw = resolve_platform_value(self.server.venv_path, current, setting="server.venv_path")
        if raw is None or not raw.strip():
            return None
        return raw

    def server_options(self) -> ServerOptions:
        return ServerOptions(
            mcp_host=self.server.mcp_host,
            mcp_port=self.server.mcp_port,
            ghidra_server=self.server.ghidra_server,
        )

    async def save(self, path: Path) -> None:
        """Serialize current config to TOML file.

        Args:
            path: Path to write config file (created if missing)
        """
        doc = tomlkit.document()

        for section, model in (("server", self.server), ("environment", self.environment)):
            table = tomlkit.table()
            for key, value in model.model_dump().items():
                if value is None:
                    continue
                if isinstance(value, dict):
                    # Per-platform tables are written inline.
                    inline = tomlkit.inline_table()
                    inline.update(value)
                    value = inline
                table[key] = value
            doc[section] = table

        content = tomlkit.dumps(doc)
        await asyncio.to_thread(_atomic_write, path, content)


__all__ = ["EnvironmentConfig", "GhidraMCPConfig", "ServerConfig"]
