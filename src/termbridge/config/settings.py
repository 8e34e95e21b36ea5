"""Configuration management for termbridge.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/termbridge.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)
    terminal_path: str = Field(default="/terminal", description="WebSocket path of the terminal bridge")
    socketio_path: str = Field(default="socket.io")
    cors_allowed_origins: list[str] | str = Field(default="*")


class TerminalConfig(BaseModel):
    shell_command: str | None = Field(
        default=None, description="Shell binary; None picks cmd.exe on Windows, /bin/bash elsewhere"
    )
    working_directory: str | None = Field(default=None, description="None means the server's cwd")
    default_cols: int = Field(default=80, gt=0)
    default_rows: int = Field(default=24, gt=0)


class SandboxConfig(BaseModel):
    project_root: str | None = Field(default=None, description="None means the server's cwd")


class ExecutionConfig(BaseModel):
    timeout: float = Field(default=60.0, gt=0, description="Seconds before a one-shot command is killed")
    working_directory: str | None = Field(default=None)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for termbridge.

    Loads from YAML file and supports environment variable overrides
    (``TERMBRIDGE_SERVER__PORT=8000``). Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TERMBRIDGE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: PORT env var > YAML file > TERMBRIDGE_* env vars > .env file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply overrides from conventional non-prefixed env vars."""
    # Hosting platforms hand the listen port over as plain PORT
    port = os.environ.get("PORT", "")
    if port:
        yaml_data.setdefault("server", {})
        yaml_data["server"]["port"] = int(port)
