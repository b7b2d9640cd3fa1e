"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database
    database_url: str = "sqlite:///./inventory_engine.db"
    # Applied to every non-SQLite engine; SQLite serializes writers anyway
    database_isolation_level: Literal[
        "READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"
    ] = "REPEATABLE READ"

    # Application
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    # Observability
    correlation_ids_enabled: bool = True

    # ==========================================================================
    # Engine behaviour
    # ==========================================================================
    # "reject": a FIFO deduction that cannot be fully satisfied raises and writes nothing.
    # "partial": the available quantity is deducted and the shortfall is reported.
    deduction_shortfall_policy: Literal["reject", "partial"] = "reject"
    conflict_retry_attempts: int = 3
    default_location_id: Optional[int] = None

    @field_validator("conflict_retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("conflict_retry_attempts must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Warn about settings that are unsafe outside development."""
        import warnings

        if not self.debug and self.database_url.startswith("sqlite"):
            warnings.warn(
                "SQLite has no row-level locking; concurrent deductions are serialized "
                "per database file. Use PostgreSQL in production.",
                UserWarning,
                stacklevel=2,
            )
        if not self.debug and self.deduction_shortfall_policy == "partial":
            warnings.warn(
                "DEDUCTION_SHORTFALL_POLICY=partial allows sales to under-fulfil silently "
                "against the batch ledger.",
                UserWarning,
                stacklevel=2,
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
