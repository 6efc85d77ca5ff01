"""Library configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from audittrail.constants import DEFAULT_AUTHOR


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Settings loaded from ``AUDIT_*`` environment variables.

    They seed ``AuditManager.default_configuration`` and give the CLI
    its database URL.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Capture
    enabled: bool = True
    auto_save_format: Literal["entries", "xml", "json", "none"] = "none"
    ignore_property_unchanged: bool = True
    default_author: str = DEFAULT_AUTHOR

    # Database used by the CLI
    database_url: str = "sqlite:///audit.db"
    database_echo: bool = False

    # Observability
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name.

        Raises:
            ValueError: If the level is not a standard logging level
        """
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"AUDIT_LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}"
            )
        return level

    @field_validator("default_author")
    @classmethod
    def validate_default_author(cls, v: str) -> str:
        """Reject a blank default author."""
        if not v.strip():
            raise ValueError("AUDIT_DEFAULT_AUTHOR must not be blank")
        return v.strip()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def auto_save_enabled(self) -> bool:
        """Whether entries are persisted automatically after a save."""
        return self.auto_save_format != "none"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
