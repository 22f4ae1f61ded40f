"""Configuration management for the health reminder server."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


def _load_env_file() -> None:
    """Load .env from root directory if present."""
    env_path = Path(__file__).parent.parent / ".env"
    if not env_path.is_file():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                key, value = stripped.split("=", 1)
                key, value = key.strip(), value.strip().strip("'\"")
                if key and value and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        pass


_load_env_file()


DEFAULT_APP_NAME = "Health Reminder Server"
DEFAULT_APP_VERSION = "1.0.0"


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_float(name: str, fallback: float) -> float:
    try:
        return float(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_flag(name: str, fallback: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


class Settings(BaseModel):
    """Application settings with environment fallbacks."""

    # App metadata
    app_name: str = Field(default=DEFAULT_APP_NAME)
    app_version: str = Field(default=DEFAULT_APP_VERSION)

    # Server runtime
    server_host: str = Field(default=os.getenv("HEALTH_SERVER_HOST", "0.0.0.0"))
    server_port: int = Field(default=_env_int("HEALTH_SERVER_PORT", 8001))

    # Time suggestion model
    openrouter_api_key: Optional[str] = Field(default=os.getenv("OPENROUTER_API_KEY"))
    suggestion_model: str = Field(default=os.getenv("HEALTH_SUGGESTION_MODEL", "google/gemini-2.0-flash-001"))
    suggestion_timeout_seconds: float = Field(default=_env_float("HEALTH_SUGGESTION_TIMEOUT", 10.0))

    # Supabase database
    supabase_url: Optional[str] = Field(default=os.getenv("SUPABASE_URL"))
    supabase_key: Optional[str] = Field(default=os.getenv("SUPABASE_KEY"))
    persistence_timeout_seconds: float = Field(default=_env_float("HEALTH_PERSISTENCE_TIMEOUT", 10.0))

    # SMTP delivery
    smtp_host: str = Field(default=os.getenv("SMTP_HOST", "smtp.gmail.com"))
    smtp_port: int = Field(default=_env_int("SMTP_PORT", 587))
    smtp_user: Optional[str] = Field(default=os.getenv("SMTP_USER") or os.getenv("EMAIL_USER"))
    smtp_password: Optional[str] = Field(default=os.getenv("SMTP_PASS") or os.getenv("EMAIL_PASSWORD"))
    smtp_from: Optional[str] = Field(default=os.getenv("SMTP_FROM"))
    smtp_starttls: bool = Field(default=_env_flag("SMTP_STARTTLS", True))
    smtp_timeout_seconds: float = Field(default=_env_float("SMTP_TIMEOUT", 10.0))
    frontend_url: str = Field(default=os.getenv("FRONTEND_URL", "http://localhost:5173"))

    # Reminder sweep
    reminder_timezone: str = Field(default=os.getenv("HEALTH_REMINDER_TIMEZONE", "UTC"))
    sweep_enabled: bool = Field(default=_env_flag("HEALTH_SWEEP_ENABLED", True))
    sweep_interval_seconds: int = Field(default=_env_int("HEALTH_SWEEP_INTERVAL", 60))
    sweep_window_seconds: int = Field(default=_env_int("HEALTH_SWEEP_WINDOW", 60))
    sweep_deadline_seconds: int = Field(default=_env_int("HEALTH_SWEEP_DEADLINE", 45))
    sweep_item_timeout_seconds: float = Field(default=_env_float("HEALTH_SWEEP_ITEM_TIMEOUT", 35.0))

    # Activity profile used when a request does not carry one
    default_sleep_time: str = Field(default="22:00")
    default_wake_time: str = Field(default="07:00")
    default_meal_times: str = Field(default="08:00, 13:00, 19:00")
    default_activity_level: str = Field(default="Moderate")

    # HTTP behaviour
    cors_allow_origins_raw: str = Field(default=os.getenv("HEALTH_SERVER_CORS_ALLOW_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"))
    enable_docs: bool = Field(default=os.getenv("HEALTH_SERVER_ENABLE_DOCS", "1") != "0")
    docs_url: Optional[str] = Field(default=os.getenv("HEALTH_SERVER_DOCS_URL", "/docs"))

    @property
    def cors_allow_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_allow_origins_raw.strip() in {"", "*"}:
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins_raw.split(",") if origin.strip()]

    @property
    def resolved_docs_url(self) -> Optional[str]:
        """Return documentation URL when docs are enabled."""
        return (self.docs_url or "/docs") if self.enable_docs else None

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    @property
    def effective_sweep_deadline(self) -> int:
        """Soft tick deadline, always kept below the sweep cadence."""
        return max(1, min(self.sweep_deadline_seconds, self.sweep_interval_seconds - 1))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
