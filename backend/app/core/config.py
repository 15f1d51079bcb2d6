from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    # Only the psycopg (v3) driver is installed.
    scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("sslmode", "require")
    query_params.setdefault("target_session_attrs", "read-write")

    return urlunparse(
        parsed._replace(
            scheme=scheme,
            query=urlencode(query_params, doseq=True),
        )
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode and SQL echo")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///./data/clubplanner.db",
        description="SQLAlchemy compatible database URL",
    )
    supabase_db_url: AnyUrl | str | None = Field(
        default=None,
        description="Supabase pooled Postgres connection string for production runs",
    )
    occurrence_generation_cap: int = Field(
        default=80,
        description="Maximum number of occurrences materialized from one recurrence rule",
        ge=1,
    )
    max_stored_duration_minutes: int = Field(
        default=240,
        description="Upper bound applied to the stored duration_minutes column",
        ge=1,
    )
    default_duration_minutes: int = Field(
        default=60,
        description="Duration used when a rule or occurrence does not provide one",
        ge=1,
    )
    schedule_timezone: str = Field(
        default="UTC",
        description="IANA timezone in which rule weekdays and times of day are interpreted",
    )
    roster_propagation_scope: str = Field(
        default="group",
        description="Default roster propagation scope (group|series)",
    )

    @field_validator("schedule_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        candidate = (value or "").strip()
        if not candidate:
            raise ValueError("SCHEDULE_TIMEZONE must not be empty")
        try:
            ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown SCHEDULE_TIMEZONE '{candidate}'") from exc
        return candidate

    @field_validator("roster_propagation_scope")
    @classmethod
    def _validate_scope(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        if normalized not in {"group", "series"}:
            raise ValueError("ROSTER_PROPAGATION_SCOPE must be 'group' or 'series'")
        return normalized

    @field_validator("database_url", "supabase_db_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value
        if value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://") :]
        return value

    @property
    def resolved_database_url(self) -> str:
        environment = self.environment.lower()
        if environment == "production":
            if not self.supabase_db_url:
                raise ValueError(
                    "SUPABASE_DB_URL must be set when ENVIRONMENT=production"
                )
            return _ensure_sqlalchemy_postgres_scheme(str(self.supabase_db_url))
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
