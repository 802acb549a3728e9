from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from fidel.domain.constants import (
    DEFAULT_LEARNER_ID,
    EASE_BONUS,
    EASE_PENALTY,
    INITIAL_EASE,
    MIN_EASE,
    STREAK_TARGET_DAYS,
)


def config_file_path() -> Path:
    return Path.home() / ".config/fidel/config.toml"


class AppConfig(BaseSettings):
    """
    Configuration model for fidel.
    Supports loading from:
    1. Environment variables (FIDEL_*)
    2. Config file (~/.config/fidel/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="FIDEL_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/fidel")
    cards_file: Path | None = None  # None -> bundled phrase deck

    # Learner
    learner_id: str = DEFAULT_LEARNER_ID
    study_mode: Literal["sequential", "random", "spaced"] = "spaced"

    # Scheduler
    initial_ease: float = INITIAL_EASE
    min_ease: float = Field(default=MIN_EASE, ge=MIN_EASE)
    ease_bonus: float = Field(default=EASE_BONUS, ge=0)
    ease_penalty: float = Field(default=EASE_PENALTY, ge=0)

    # Achievements
    streak_target: int = Field(default=STREAK_TARGET_DAYS, ge=1)

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

        toml_file = config_file_path()
        if toml_file.exists():
            # Earlier sources win: CLI overrides, then env, then the file
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("cards_file", mode="before")
    @classmethod
    def resolve_cards_file(cls, v: Any) -> Path | None:
        if v:
            return Path(v).expanduser().resolve()
        return None

    @model_validator(mode="after")
    def check_ease_bounds(self) -> "AppConfig":
        if self.initial_ease < self.min_ease:
            raise ValueError("initial_ease must be at least min_ease")
        return self

    @property
    def state_file(self) -> Path:
        return self.data_dir / "state.json"


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/fidel/config.toml (if exists)
    3. Environment variables (FIDEL_*)
    4. cli_overrides (passed from Typer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
