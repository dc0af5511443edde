from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Load apps/station/.env and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "Weather Station Hub"
    app_version: str = "2.1.0"
    debug: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = 8889

    # Sensor bridge
    bridge_url: str = Field(default="http://127.0.0.1:7890", description="URL of the upstream sensor bridge.")
    bridge_timeout: float = Field(default=5.0, ge=1.0, description="Timeout in seconds for bridge HTTP calls")
    bridge_max_body_bytes: int = Field(
        default=8192,
        ge=256,
        description="Responses larger than this are truncated before decoding.",
    )
    poller_enabled: bool = Field(default=True, description="Start the background bridge poller on startup.")
    poll_interval_seconds: float = Field(default=10.0, ge=0.1, description="Seconds between bridge polls.")

    # Persistence
    state_path: str = Field(
        default="data/rain_state_v2.json",
        description="JSON file holding the aggregation state across restarts.",
    )
    history_db: str = Field(
        default="data/weather_history_v2.sqlite3",
        description="SQLite database path for persisted daily summaries.",
    )

    # Station
    station_timezone: str = Field(
        default="UTC",
        description="IANA time zone used for day/week/month/year boundaries.",
    )
    latitude: float = Field(default=0.0, ge=-90.0, le=90.0)
    longitude: float = Field(default=0.0, ge=-180.0, le=180.0)

    # Totals accumulated before this station was connected
    historical_total_in: float = Field(default=0.0, ge=0.0)
    historical_yearly_in: float = Field(default=0.0, ge=0.0)
    historical_monthly_in: float = Field(default=0.0, ge=0.0)
    historical_weekly_in: float = Field(default=0.0, ge=0.0)

    stale_after_seconds: int = Field(default=60, ge=1, description="Age after which live data is reported stale.")
    event_gap_minutes: int = Field(default=30, ge=1, description="Dry gap that closes a rain event.")
    min_day_coverage_hours: float = Field(
        default=12.0,
        ge=0.0,
        le=24.0,
        description="Minimum sampled span of a day before its summary is persisted.",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                return json.loads(s)
            if s in ("", "*"):
                return ["*"]
            return [p.strip() for p in s.split(",")]
        return v

settings = Settings()
