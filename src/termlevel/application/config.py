from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from termlevel.domain.constants import REQUEST_TIMEOUT

CONFIG_FILES = [
    Path.home() / ".config/termlevel/config.toml",
    Path.home() / ".termlevel.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for termlevel.
    Supports loading from:
    1. Environment variables (TERMLEVEL_*, plus OPENAI_API_KEY)
    2. Config file (~/.config/termlevel/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="TERMLEVEL_",
        extra="ignore",
        populate_by_name=True,
    )

    # Paths
    data_file: Path = Field(
        default_factory=lambda: Path.home() / ".config/termlevel/data.json"
    )
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/termlevel/logs")

    # Language model API
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("openai_api_key", "TERMLEVEL_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    request_timeout: float = REQUEST_TIMEOUT

    # Server
    server_host: str = "127.0.0.1"
    server_port: int = 3000

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("data_file", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/termlevel/config.toml (if exists)
    3. Environment variables (TERMLEVEL_*)
    4. cli_overrides (passed from Typer; None values are dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
