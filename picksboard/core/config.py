import math
from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logger import configure_logging, get_logger


def _default_season() -> int:
    """European season year: Jul-Dec -> current year, Jan-Jun -> previous year."""
    now = datetime.now(timezone.utc)
    return now.year if now.month >= 7 else (now.year - 1)


def _check_threshold(name: str, value: float) -> None:
    if math.isnan(value) or value < 0.0 or value > 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field("dev", alias="APP_ENV")
    app_mode: str = Field("live", alias="APP_MODE")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    http_log_level: str = Field("WARNING", alias="HTTP_LOG_LEVEL")
    sql_log_level: str = Field("WARNING", alias="SQL_LOG_LEVEL")
    database_url: str = Field(..., alias="DATABASE_URL")

    football_data_key: str = Field("", alias="FOOTBALL_DATA_API_KEY")
    football_data_base: str = Field("https://api.football-data.org/v4", alias="FOOTBALL_DATA_BASE")
    football_data_fixtures_ttl_seconds: int = Field(default=600, alias="FOOTBALL_DATA_FIXTURES_TTL_SECONDS")
    football_data_matches_ttl_seconds: int = Field(default=3600, alias="FOOTBALL_DATA_MATCHES_TTL_SECONDS")
    football_data_teams_ttl_seconds: int = Field(default=24 * 3600, alias="FOOTBALL_DATA_TEAMS_TTL_SECONDS")
    football_data_history_months: int = Field(default=6, alias="FOOTBALL_DATA_HISTORY_MONTHS")

    btts_leagues_raw: str = Field("premier-league,championship", alias="BTTS_LEAGUES")
    season: int = Field(default_factory=_default_season, alias="SEASON")
    season_start_raw: Optional[date] = Field(default=None, alias="SEASON_START")

    recency_window: int = Field(10, alias="RECENCY_WINDOW")
    btts_confidence_threshold: float = Field(0.65, alias="BTTS_CONFIDENCE_THRESHOLD")
    runline_confidence_threshold: float = Field(0.65, alias="RUNLINE_CONFIDENCE_THRESHOLD")
    simulated_fallback: bool = Field(default=False, alias="SIMULATED_FALLBACK")

    job_build_btts_picks_cron: str = Field("0 */6 * * *", alias="JOB_BUILD_BTTS_PICKS_CRON")
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    allow_web_scheduler: bool = Field(default=False, alias="ALLOW_WEB_SCHEDULER")
    admin_token: str = Field("", alias="ADMIN_TOKEN")

    @model_validator(mode="after")
    def validate_engine_params(self):
        if self.recency_window < 1:
            raise ValueError(f"RECENCY_WINDOW must be >= 1, got {self.recency_window}")
        _check_threshold("BTTS_CONFIDENCE_THRESHOLD", self.btts_confidence_threshold)
        _check_threshold("RUNLINE_CONFIDENCE_THRESHOLD", self.runline_confidence_threshold)
        return self

    @model_validator(mode="after")
    def validate_api_key(self):
        invalid_values = {"", "YOUR_KEY"}
        if self.football_data_key in invalid_values and not self.is_demo:
            logger = get_logger("settings")
            message = "FOOTBALL_DATA_API_KEY is not configured; build_btts_picks will find no fixtures until it is set"
            logger.warning(message)
        return self

    @property
    def btts_leagues(self) -> List[str]:
        return [x.strip().lower() for x in self.btts_leagues_raw.split(",") if x.strip()]

    @property
    def season_label(self) -> str:
        return f"{self.season}-{(self.season + 1) % 100:02d}"

    @property
    def season_start(self) -> date:
        return self.season_start_raw or date(self.season, 8, 17)

    @property
    def is_demo(self) -> bool:
        return self.app_mode.lower() == "demo"

    @property
    def is_live(self) -> bool:
        return self.app_mode.lower() == "live"


default_settings = Settings()
settings = default_settings
configure_logging(settings.log_level, http_level=settings.http_log_level, sql_level=settings.sql_log_level)
