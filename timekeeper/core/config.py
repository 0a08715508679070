"""Runtime settings, read from the environment or a ``.env`` file."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"
_MIN_PRODUCTION_SECRET_LENGTH = 32


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Settings are not safe to start with in the current environment."""


class Settings(BaseSettings):
    """Timekeeper settings.

    Every field maps to the upper-cased environment variable of the same
    name (``DATABASE_URL``, ``JWT_SECRET_KEY`` ...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Environment.DEVELOPMENT
    cors_allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated browser origins allowed to call the API",
    )

    database_url: str = "sqlite:///./timekeeper.db"
    # Pool sizing applies to PostgreSQL only.
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)
    db_pool_timeout: int = Field(default=30, ge=1)
    db_pool_recycle: int = Field(default=1800, ge=60)

    jwt_secret_key: str = Field(default=_DEFAULT_JWT_SECRET, description="HS256 signing secret")
    jwt_algorithm: str = "HS256"
    token_expiry_hours: int = Field(default=24, ge=1, le=24 * 30)
    min_password_length: int = Field(default=8, ge=6)

    audit_retention_days: int = Field(
        default=365, ge=0, description="Purge audit entries older than this on startup (0 keeps all)"
    )

    log_level: str = "INFO"
    log_format: str = Field(default="json", description="'json' or 'text'")

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if v.upper() != "HS256":
            raise ValueError("Only HS256 tokens are supported")
        return v.upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return fmt

    def get_cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError("CORS_ALLOWED_ORIGINS may not contain '*'")
        return origins

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret_key == _DEFAULT_JWT_SECRET

    def validate_production_config(self) -> None:
        """Refuse insecure defaults when ``ENVIRONMENT=production``.

        Raises:
            ConfigurationError: listing every problem found.
        """
        if self.environment != Environment.PRODUCTION:
            return

        problems: list[str] = []
        if self.uses_default_secret:
            problems.append("JWT_SECRET_KEY is the built-in default; generate one with `openssl rand -hex 32`")
        elif len(self.jwt_secret_key) < _MIN_PRODUCTION_SECRET_LENGTH:
            problems.append(f"JWT_SECRET_KEY is shorter than {_MIN_PRODUCTION_SECRET_LENGTH} characters")

        local = [o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o]
        if local:
            problems.append(f"CORS_ALLOWED_ORIGINS includes local origins {local}")

        if self.database_url.startswith("sqlite"):
            problems.append("DATABASE_URL points at SQLite; use PostgreSQL in production")

        if problems:
            raise ConfigurationError("Refusing to start in production:\n  - " + "\n  - ".join(problems))


settings = Settings()
