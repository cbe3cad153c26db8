"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    api_secret_key: str = "sitescan-v2-default-jwt-secret-change-in-production"
    api_algorithm: str = "HS256"
    api_access_token_expire_minutes: int = 24 * 60
    cors_origins: list[str] = ["*"]

    # Admin Authentication
    admin_username: str = "admin"
    admin_password: str = "change-me"
    admin_max_login_attempts: int = 5
    admin_lockout_minutes: int = 15

    # Job Queue
    queue_concurrency: int = 3
    queue_max_attempts: int = 3
    queue_backoff_base_seconds: float = 1.0
    queue_retention_seconds: int = 60 * 60
    queue_cleanup_interval_seconds: int = 30 * 60
    queue_event_history: int = 100

    # Analysis
    analysis_timeout_seconds: float = 30.0
    analysis_user_agent: str = "SiteScanBot/2.0 (+https://sitescan.local)"

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "sitescan"
    otel_enabled: bool = False
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
