# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import os
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from wilson.core.constants import (
    DEFAULT_MAX_PARALLEL_TOOLS,
    FILE_READ_CACHE_TTL_SECONDS,
    HISTORY_LIMIT,
    MAX_LOOP_DEPTH,
)
from wilson.core.exceptions import ConfigurationError
from wilson.core.types import RetryConfig


DEFAULT_SETTINGS_PATH = Path("~/.wilson/settings.yaml")


class WilsonSettings(BaseSettings):
    """Client configuration with environment variable support.

    All settings can be overridden via environment variables with WILSON_ prefix.
    Example: WILSON_API_URL=https://api.example.com overrides the api_url setting.
    Nested fields use a double underscore: WILSON_RETRY__MAX_RETRIES=5.
    """

    model_config = SettingsConfigDict(
        env_prefix="WILSON_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Backend
    api_url: str = Field(
        default="http://localhost:54321",
        description="Backend base URL",
    )
    anon_key: str | None = Field(default=None, description="Backend project key")
    access_token: str | None = Field(default=None, description="Bearer token for requests")
    store_id: str | None = Field(default=None, description="Store the conversation is scoped to")
    provider: str | None = Field(default=None, description="Model provider override")
    model: str | None = Field(default=None, description="Model override")
    request_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Read timeout for streamed responses",
    )

    # Tool execution
    max_parallel_tools: int = Field(
        default=DEFAULT_MAX_PARALLEL_TOOLS,
        ge=1,
        le=64,
        description="Concurrently running parallel-safe tool calls",
    )
    file_read_ttl_seconds: float = Field(
        default=FILE_READ_CACHE_TTL_SECONDS,
        gt=0,
        description="How long a file read satisfies read-before-write",
    )
    skip_permissions: bool = Field(
        default=False,
        description="Run dangerous shell commands without asking",
    )

    # Conversation loop
    max_loop_depth: int = Field(
        default=MAX_LOOP_DEPTH,
        ge=1,
        description="Backend continuations allowed per user message",
    )
    history_limit: int = Field(
        default=HISTORY_LIMIT,
        ge=0,
        description="Earlier messages sent with each request",
    )

    log_level: str = Field(default="INFO", description="Minimum log level")
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; the environment wins over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | None = None) -> WilsonSettings:
    """Load settings from a YAML file, overlaid with environment variables.

    Resolution order:
    1. Explicit config_path parameter (if provided)
    2. WILSON_SETTINGS environment variable (if set)
    3. Default: '~/.wilson/settings.yaml' (optional)

    Args:
        config_path: Optional explicit path to the configuration file.

    Returns:
        WilsonSettings populated from YAML and the environment.

    Raises:
        FileNotFoundError: If an explicitly requested file does not exist.
        ConfigurationError: If the YAML document is not a mapping.
        yaml.YAMLError: If the YAML file is malformed.
        pydantic.ValidationError: If the configuration fails validation.
    """
    required = True
    if config_path is None:
        env_path = os.environ.get("WILSON_SETTINGS")
        if env_path:
            config_path = Path(env_path)
        else:
            config_path = DEFAULT_SETTINGS_PATH
            required = False
    config_path = config_path.expanduser()

    if not config_path.exists():
        if required:
            raise FileNotFoundError(f"Configuration file not found at {config_path}")
        return WilsonSettings()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

    return WilsonSettings(**data)
