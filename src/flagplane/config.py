"""Application configuration using Pydantic Settings.

Settings are resolved from, in order of precedence: explicit keyword
arguments, ``FLAGPLANE_*`` environment variables (nested sections use ``__``,
e.g. ``FLAGPLANE_GIT__ENABLED=true``) and the TOML file at
:func:`config_path`.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

DEFAULT_CONFIG_DIR = "/etc/flagplane"
CONFIG_DIR_ENV = "FLAGPLANE_CONFIG_DIR"
CONFIG_FILE_NAME = "config.toml"

EXAMPLE_CONFIG = """\
# flagplane configuration
namespace = "flagplane"
username = "flagplane-admin"
log_level = "INFO"

[redis]
url = "redis://localhost:6379/0"
socket_timeout = 5.0

[git]
# Record every change as a commit in the local repository.
enabled = false
# Push each commit to repo_url.
push = false
repo_url = ""
repo_path = "/etc/flagplane/repo"
author_email = "flagplane@localhost"

[server]
host = "0.0.0.0"
port = 8000
endpoint = "/flagplane.json"
json_root = "flagplane"

[watcher]
interval_seconds = 1.0
# When set, the watcher also writes the served document to this file.
output_path = ""
"""


def config_dir() -> Path:
    """Directory holding the configuration file."""
    return Path(os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))


def config_path() -> Path:
    """Well-known path of the configuration file."""
    return config_dir() / CONFIG_FILE_NAME


class RedisSettings(BaseModel):
    """Key-value storage connection."""

    url: str = "redis://localhost:6379/0"
    socket_timeout: float = 5.0


class GitSettings(BaseModel):
    """Version-control integration."""

    enabled: bool = False
    push: bool = False
    repo_url: str = ""
    repo_path: str = f"{DEFAULT_CONFIG_DIR}/repo"
    author_email: str = "flagplane@localhost"


class ServerSettings(BaseModel):
    """Caching responder."""

    host: str = "0.0.0.0"
    port: int = 8000
    endpoint: str = "/flagplane.json"
    json_root: str = "flagplane"


class WatcherSettings(BaseModel):
    """Storage watcher."""

    interval_seconds: float = Field(default=1.0, gt=0)
    output_path: str = ""


class Settings(BaseSettings):
    """Flagplane settings loaded from the config file and environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLAGPLANE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    # Identity
    namespace: str = "flagplane"
    username: str = "flagplane-admin"
    log_level: str = "INFO"

    # Collaborators
    redis: RedisSettings = Field(default_factory=RedisSettings)
    git: GitSettings = Field(default_factory=GitSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_path()),
        )

    @property
    def git_enabled(self) -> bool:
        """Whether mutations are routed through the commit pipeline."""
        return self.git.enabled

    @property
    def push_enabled(self) -> bool:
        """Whether commits are pushed to the remote repository."""
        return self.git.enabled and self.git.push and bool(self.git.repo_url)

    def describe(self) -> dict[str, Any]:
        """Effective configuration as shown by ``flagplane info``."""
        return {
            "config_path": str(config_path()),
            "namespace": self.namespace,
            "username": self.username,
            "redis_url": self.redis.url,
            "git_enabled": self.git_enabled,
            "push_enabled": self.push_enabled,
            "repo_url": self.git.repo_url,
            "repo_path": self.git.repo_path,
            "server": f"{self.server.host}:{self.server.port}{self.server.endpoint}",
            "watcher_output_path": self.watcher.output_path,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
