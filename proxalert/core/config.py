"""Application configuration."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from proxalert.core import policies


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROXALERT_",
        case_sensitive=False,
    )

    app_name: str = "proxalert"
    debug: bool = False
    database_url: str = "sqlite:///./proxalert.db"
    # Seconds to wait on a locked database (SQLite) or for a pooled connection
    db_timeout_seconds: float = Field(default=policies.DB_TIMEOUT_SECONDS, gt=0)
    # Where per-pair cooldown and meeting state lives
    pair_state_backend: Literal["memory", "sql"] = "memory"

    # JWT issued by the identity provider
    jwt_secret: str = "change-me-in-production-use-openssl-rand-hex-32"
    jwt_algorithm: str = "HS256"

    # Proximity
    nearby_threshold_m: float = Field(default=policies.NEARBY_THRESHOLD_M, gt=0)
    meeting_threshold_m: float = Field(default=policies.MEETING_THRESHOLD_M, gt=0)
    meeting_duration_seconds: float = Field(default=policies.MEETING_DURATION_SECONDS, gt=0)
    alert_cooldown_seconds: float = Field(default=policies.ALERT_COOLDOWN_SECONDS, ge=0)
    stale_location_seconds: float = Field(default=policies.STALE_LOCATION_SECONDS, gt=0)
    ledger_lookback_seconds: float = Field(default=policies.LEDGER_LOOKBACK_SECONDS, gt=0)

    # Delivery
    dispatch_timeout_seconds: float = Field(default=policies.DISPATCH_TIMEOUT_SECONDS, gt=0)
    dispatch_workers: int = Field(default=policies.DISPATCH_WORKERS, ge=1)
    evaluation_workers: int = Field(default=policies.EVALUATION_WORKERS, ge=1)

    history_limit: int = Field(default=policies.HISTORY_LIMIT, ge=1)


settings = Settings()
