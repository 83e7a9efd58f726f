"""
Configuration

Application settings and environment configuration for smart-idworker.
"""

from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Largest id representable in the 5-bit datacenter and worker fields
MAX_IDWORKER_FIELD_VALUE = 31


class Settings(BaseSettings):
    """
    Application configuration settings.

    Supports both environment variables and .env file loading.
    Environment variables take precedence over .env file values.
    """

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(
        default="info", description="Log level (debug, info, warning, error)"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate log level."""
        allowed_levels = {"debug", "info", "warning", "error"}
        normalized = v.lower().strip()
        if normalized not in allowed_levels:
            raise ValueError(
                f"log_level must be one of {sorted(allowed_levels)}, got '{v}'"
            )
        return normalized

    # Redis settings (optional, used for worker identity assignment)
    redis__host: str = Field(default="localhost", description="Redis host")
    redis__port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    redis__db: int = Field(default=0, ge=0, le=15, description="Redis database number")
    redis__password: Optional[str] = Field(default=None, description="Redis password")
    redis__ssl: bool = Field(
        default=False, description="Enable SSL/TLS for Redis connection"
    )
    redis__connect_timeout: float = Field(
        default=3.0, gt=0, description="Redis connection timeout in seconds"
    )
    redis__socket_timeout: float = Field(
        default=3.0, gt=0, description="Redis socket timeout in seconds"
    )

    # Id worker identity
    idworker__datacenter_id: Optional[int] = Field(
        default=None,
        ge=0,
        le=MAX_IDWORKER_FIELD_VALUE,
        description="Fixed datacenter id; taken from the counter store when unset",
    )
    idworker__worker_id: Optional[int] = Field(
        default=None,
        ge=0,
        le=MAX_IDWORKER_FIELD_VALUE,
        description="Fixed worker id; taken from the counter store when unset",
    )
    idworker__datacenter_id_key: str = Field(
        default="idworker:datacenterid",
        description="Counter key used to hand out datacenter ids",
    )
    idworker__worker_id_key: str = Field(
        default="idworker:workerid",
        description="Counter key used to hand out worker ids",
    )

    # Logfire monitoring settings
    logfire__enabled: bool = Field(
        default=False, description="Enable Logfire monitoring"
    )
    logfire__service_name: str = Field(
        default="smart_idworker", description="Logfire service name"
    )
    logfire__environment: str = Field(
        default="development", description="Logfire environment"
    )
    logfire__token: Optional[SecretStr] = Field(
        default=None, description="Logfire token"
    )
    logfire__instrument__redis: bool = Field(
        default=True, description="Enable Logfire Redis instrumentation"
    )

    # Logging file settings (optional)
    log__dir: str = Field(
        default="logs", description="Directory where log files are stored"
    )
    log__file_path: Optional[str] = Field(
        default=None, description="Custom log file path; overrides log__dir if set"
    )
    log__file_level: str = Field(default="INFO", description="File handler log level")
    log__file_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Max size of a log file before rotation",
    )
    log__file_backup_count: int = Field(
        default=3, ge=0, description="Number of backup log files to keep"
    )

    @property
    def has_fixed_identity(self) -> bool:
        """True when both datacenter and worker id are configured explicitly."""
        return (
            self.idworker__datacenter_id is not None
            and self.idworker__worker_id is not None
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        env_nested_delimiter="__",
    )


def create_settings() -> Settings:
    """
    Create and validate settings instance.

    Returns:
        Settings: Configured settings instance

    Raises:
        RuntimeError: If configuration validation fails
    """
    try:
        return Settings()
    except Exception as e:
        raise RuntimeError(f"Configuration loading failed: {e}") from e


# Global configuration instance
settings = create_settings()
