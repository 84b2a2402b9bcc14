"""Configuration management for shellgate.

Loads settings from a YAML configuration file with environment variable
overrides (``SHELLGATE_`` prefix, ``__`` for nested sections). Supports
.env files.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/shellgate.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=2323, ge=1, le=65535)
    max_connections: int = Field(default=5, gt=0)
    allowed_hosts: list[str] = Field(
        default_factory=list,
        description="Peer IP addresses allowed to connect; empty allows everyone",
    )
    connect_maxwait: float = Field(
        default=4.0, gt=0, description="Seconds to wait for telnet option negotiation",
    )


class ShellConfig(BaseModel):
    command: list[str] | None = Field(
        default=None, description="Shell argv; platform default when unset",
    )
    working_dir: str = Field(default="/")
    env: dict[str, str] = Field(default_factory=dict)
    encoding: str = Field(default="utf-8", description="Encoding of text written to the peer")
    read_size: int = Field(default=4096, gt=0)
    drain_timeout: float = Field(default=1.0, ge=0)


class EditorConfig(BaseModel):
    insert_mode: bool = Field(default=True, description="False selects overwrite mode")
    history_size: int = Field(default=100, gt=0)


class SessionConfig(BaseModel):
    show_banner: bool = Field(default=True)
    title: str = Field(default="shellgate")
    time_to_warning: float = Field(
        default=300.0, ge=0, description="Idle seconds before the idle notice; 0 disables",
    )
    time_to_timeout: float = Field(
        default=60.0, ge=0, description="Further idle seconds before disconnect; 0 disables",
    )


class AdminConfig(BaseModel):
    enabled: bool = Field(default=False)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8023, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for shellgate.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "SHELLGATE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs; environment must win over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)
