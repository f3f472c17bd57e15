from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from repetita.domain.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SESSION_LIMIT,
    FIRST_INTERVAL_DAYS,
    INITIAL_EASINESS,
    MASTERY_MIN_EASINESS,
    MASTERY_REPETITIONS,
    MIN_EASINESS,
    SECOND_INTERVAL_DAYS,
)
from repetita.domain.models import Sm2Parameters


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/repetita/config.toml",
        Path.home() / ".repetita.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for repetita.
    Supports loading from:
    1. Config file (~/.config/repetita/config.toml or ~/.repetita.toml)
    2. Environment variables (REPETITA_*)
    3. Manual overrides (CLI / server)
    """

    model_config = SettingsConfigDict(
        env_prefix="REPETITA_",
        extra="ignore",
    )

    # Storage
    backend: Literal["memory", "sqlite"] = "sqlite"
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/repetita/repetita.db"
    )
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/repetita/logs")

    # Sessions
    session_limit: int = Field(default=DEFAULT_SESSION_LIMIT, ge=0)

    # SM-2 tuning
    initial_easiness: float = Field(default=INITIAL_EASINESS, ge=1.0)
    min_easiness: float = Field(default=MIN_EASINESS, ge=1.0)
    first_interval_days: int = Field(default=FIRST_INTERVAL_DAYS, ge=1)
    second_interval_days: int = Field(default=SECOND_INTERVAL_DAYS, ge=1)

    # Mastery
    mastery_repetitions: int = Field(default=MASTERY_REPETITIONS, ge=1)
    mastery_min_easiness: float = Field(default=MASTERY_MIN_EASINESS, ge=1.0)

    # Server
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    # Default log verbosity when -v is not given: 0 warnings, 1 info, 2 debug
    verbose: int = Field(default=0, ge=0)

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
        toml_file = next((f for f in config_files() if f.exists()), None)

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

    @field_validator("database_path", "log_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        if v is None:
            return v
        return Path(v).expanduser()

    @model_validator(mode="after")
    def check_easiness(self) -> "AppConfig":
        if self.initial_easiness < self.min_easiness:
            raise ValueError("initial_easiness must not be below min_easiness")
        return self

    def sm2_parameters(self) -> Sm2Parameters:
        return Sm2Parameters(
            initial_easiness=self.initial_easiness,
            min_easiness=self.min_easiness,
            first_interval_days=self.first_interval_days,
            second_interval_days=self.second_interval_days,
        )


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/repetita/config.toml (if exists)
    3. Environment variables (REPETITA_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
