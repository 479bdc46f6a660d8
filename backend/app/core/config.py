from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any, ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    API_V1_STR: str = "/api/v1"

    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'scheduling.db'}"

    # Redis connection URL for slot caching; empty/none/disabled turns it off
    REDIS_URL: str = "redis://localhost:6379/0"
    AVAILABILITY_CACHE_TTL: int = 60  # seconds

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Scheduling fallbacks used when a provider has not saved a template
    DEFAULT_TIMEZONE: str = "America/New_York"
    DEFAULT_SLOT_MINUTES: int = 30
    DEFAULT_OPEN_START: str = "10:00"
    DEFAULT_OPEN_END: str = "22:00"

    # Booking rules
    DEFAULT_CUTOFF_HOURS: int = 48
    CONSULTATION_DEFAULT_MINUTES: int = 30
    BOOKING_COOLDOWN_HOURS: int = 24
    MIN_RESCHEDULE_NOTICE_HOURS: int = 0
    REQUIRE_BOOKING_PERMISSION: bool = False

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    DEFAULT_CURRENCY: str = "usd"

    # Observability
    LOG_LEVEL: str = "INFO"
    ENABLE_CONSOLE_TRACING: bool = False

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("DEFAULT_SLOT_MINUTES")
    def slot_minutes_in_range(cls, v: int) -> int:
        if not 5 <= v <= 480:
            raise ValueError("DEFAULT_SLOT_MINUTES must be between 5 and 480")
        return v

    @field_validator("DEFAULT_CUTOFF_HOURS", "BOOKING_COOLDOWN_HOURS", "MIN_RESCHEDULE_NOTICE_HOURS")
    def non_negative_hours(cls, v: int) -> int:
        if v < 0:
            raise ValueError("hour settings must be >= 0")
        return v

    @field_validator("DEFAULT_TIMEZONE")
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {v!r}") from exc
        return v

    @field_validator("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "REDIS_URL", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
