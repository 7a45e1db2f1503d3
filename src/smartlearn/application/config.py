from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from smartlearn.domain import constants
from smartlearn.domain.learn.models import LearnParams, ReviewDifficultyChoice


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/smartlearn/config.toml",
        Path.home() / ".smartlearn.toml",
    ]


class LearnSettings(BaseModel):
    """Scheduling, grading and rating-gate policy (the [learn] table)."""

    mode_threshold: int = Field(default=constants.MODE_THRESHOLD, ge=0)
    mc_options: int = Field(default=constants.MC_OPTIONS, ge=1)
    spacing_base: int = Field(default=constants.SPACING_BASE, ge=1)
    incorrect_requeue_gap: int = Field(default=constants.INCORRECT_REQUEUE_GAP, ge=0)
    skip_requeue_gap: int = Field(default=constants.SKIP_REQUEUE_GAP, ge=0)
    fuzzy_short_distance: int = Field(default=constants.FUZZY_SHORT_DISTANCE, ge=0)
    fuzzy_long_distance: int = Field(default=constants.FUZZY_LONG_DISTANCE, ge=0)
    fuzzy_length_cutoff: int = Field(default=constants.FUZZY_LENGTH_CUTOFF, ge=0)
    fuzzy_min_length: int = Field(default=constants.FUZZY_MIN_LENGTH, ge=0)
    prompt_wrong_streak: int = Field(default=constants.PROMPT_WRONG_STREAK, ge=1)
    prompt_wrong_count: int = Field(default=constants.PROMPT_WRONG_COUNT, ge=1)
    unlock_after_questions: int = Field(default=constants.UNLOCK_AFTER_QUESTIONS, ge=0)
    choice_offsets: dict[ReviewDifficultyChoice, int | None] = Field(
        default_factory=lambda: {
            ReviewDifficultyChoice(k): v for k, v in constants.CHOICE_OFFSETS.items()
        }
    )

    @field_validator("choice_offsets")
    @classmethod
    def fill_missing_choices(
        cls, v: dict[ReviewDifficultyChoice, int | None]
    ) -> dict[ReviewDifficultyChoice, int | None]:
        merged = {ReviewDifficultyChoice(k): d for k, d in constants.CHOICE_OFFSETS.items()}
        merged.update(v)
        if any(offset is not None and offset < 0 for offset in merged.values()):
            raise ValueError("choice offsets must be >= 0")
        return merged

    def to_params(self) -> LearnParams:
        return LearnParams(**self.model_dump())


class AppConfig(BaseSettings):
    """
    Configuration model for smartlearn.
    Supports loading from:
    1. Environment variables (SMARTLEARN_*, nested with __)
    2. Config file (~/.config/smartlearn/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="SMARTLEARN_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    library_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/smartlearn/libraries"
    )
    progress_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/smartlearn/progress"
    )

    # Session
    default_user: str = "local"
    verbose: int = Field(default=0, ge=0)  # 0 warnings, 1 info, 2+ debug

    learn: LearnSettings = Field(default_factory=LearnSettings)

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

        # First existing config file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        # Highest priority first: CLI overrides, then env, then file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("library_dir", "progress_dir", mode="before")
    @classmethod
    def resolve_paths(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/smartlearn/config.toml (if exists)
    3. Environment variables (SMARTLEARN_*)
    4. cli_overrides (passed from Typer); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
