from datetime import tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from memtrack.domain.constants import (
    AUTO_REFRESH_INTERVAL,
    RECENT_SESSIONS_LIMIT,
    REQUEST_TIMEOUT,
)
from memtrack.domain.stats.models import PeriodMode, UserContext


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/memtrack/config.toml",
        Path.home() / ".memtrack.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for memtrack.
    Supports loading from:
    1. Environment variables (MEMTRACK_*)
    2. Config file (~/.config/memtrack/config.toml)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMTRACK_",
        extra="ignore",
    )

    # Identity
    user_id: str = "anon"
    timezone: str | None = None  # IANA name; None means the system timezone

    # Remote
    remote_url: str = "http://localhost:8080/api"
    request_timeout: float = REQUEST_TIMEOUT

    # Local storage
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/memtrack")

    # Sync
    refresh_interval: float = Field(default=AUTO_REFRESH_INTERVAL, gt=0)
    default_period: PeriodMode = PeriodMode.TODAY

    # Views
    recent_limit: int = Field(default=RECENT_SESSIONS_LIMIT, ge=0)
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

        # Find the first existing file; later sources in the tuple have lower priority
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

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("default_period", mode="before")
    @classmethod
    def parse_period(cls, v: Any) -> PeriodMode:
        return PeriodMode.parse(v)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str | None) -> str | None:
        if v is None:
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    def get_tz(self) -> tzinfo:
        if self.timezone:
            return ZoneInfo(self.timezone)
        from memtrack.application.stats.time_buckets import local_tz

        return local_tz()

    def user_context(self) -> UserContext:
        return UserContext(user_id=self.user_id, tz=self.get_tz())


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/memtrack/config.toml (if exists)
    3. Environment variables (MEMTRACK_*)
    4. cli_overrides (passed from Typer or the API), None values ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
