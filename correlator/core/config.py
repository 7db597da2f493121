import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _get_version() -> str:
    """Read version from pyproject.toml or environment variable."""
    # First check environment variable (for Docker/CI overrides)
    if env_version := os.getenv("CORRELATOR_VERSION"):
        return env_version

    # Try to read from pyproject.toml
    try:
        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        if pyproject_path.exists():
            content = pyproject_path.read_text()
            for line in content.split("\n"):
                if line.startswith("version"):
                    # Parse: version = "0.1.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
    except OSError:
        pass

    return "0.0.0-dev"


APP_VERSION = _get_version()

STORE_BACKENDS = ("postgres", "redis", "memory")


class Settings(BaseSettings):
    # Database (postgres store backend)
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "correlator"
    POSTGRES_PASSWORD: str = "devpassword"
    POSTGRES_DB: str = "correlator"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    @property
    def DATABASE_URL(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Redis (redis store backend)
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_KEY_PREFIX: str = "correlator"

    # Which keyed store implementation to build: postgres, redis or memory
    STORE_BACKEND: str = "postgres"

    # Correlation window W, measured from the alert's event timestamp
    CORRELATION_WINDOW_SECONDS: int = 3 * 60 * 60

    # Record lifetimes
    ATTRIBUTE_TTL_SECONDS: int = 3 * 60 * 60
    ALERT_SNAPSHOT_TTL_SECONDS: int = 3 * 60 * 60
    REPORT_SECTION_TTL_SECONDS: int = 24 * 60 * 60

    # Extra time a natively-expiring backend keeps a record after expires_at.
    # Late alerts are evaluated against their event time, so the entry must
    # still physically exist when they arrive.
    STORE_EXPIRY_GRACE_SECONDS: int = 24 * 60 * 60

    # Workflow collaborator notified with {report_id, status, created_at}
    WORKFLOW_URL: str | None = None
    WORKFLOW_TIMEOUT_SECONDS: float = 10.0

    # App
    APP_NAME: str = "alert-correlator"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @field_validator(
        "CORRELATION_WINDOW_SECONDS",
        "ATTRIBUTE_TTL_SECONDS",
        "ALERT_SNAPSHOT_TTL_SECONDS",
        "REPORT_SECTION_TTL_SECONDS",
    )
    @classmethod
    def validate_positive_duration(cls, v: int, info) -> int:
        """Windows and TTLs must be positive or nothing would ever be live."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be a positive number of seconds")
        return v

    @field_validator("STORE_EXPIRY_GRACE_SECONDS")
    @classmethod
    def validate_grace(cls, v: int) -> int:
        if v < 0:
            raise ValueError("STORE_EXPIRY_GRACE_SECONDS must not be negative")
        return v

    @field_validator("STORE_BACKEND")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        backend = v.strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(
                f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got {v!r}"
            )
        return backend

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL {v!r}")
        return level

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
