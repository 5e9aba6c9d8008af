"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Record store (Postgres)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "rebalancer"
    database_url: str | None = None
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Coordination store (Redis)
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "rebalancer"
    store_timeout_seconds: float = 2.0

    # Worker identity, injected by the orchestrator (e.g. the pod name)
    pod_name: str | None = None

    # Coordinator Configuration
    coordinator_interval_seconds: float = 5.0
    virtual_nodes: int = 10
    seed_record_count: int = 5
    reset_records_on_startup: bool = True

    # Worker Configuration
    worker_interval_seconds: float = 5.0
    worker_lease_ttl_seconds: int | None = None
    worker_heartbeat_interval_seconds: float = 10.0
    deregister_timeout_seconds: float = 3.0

    # Probe server
    http_host: str = "0.0.0.0"
    http_port: int = 8080

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "rebalancer"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    @model_validator(mode="after")
    def check_heartbeat_within_lease(self) -> "Settings":
        """Reject a heartbeat that cannot refresh the lease before it expires."""
        if (
            self.worker_lease_ttl_seconds
            and self.worker_heartbeat_interval_seconds >= self.worker_lease_ttl_seconds
        ):
            raise ValueError(
                f"worker_heartbeat_interval_seconds ({self.worker_heartbeat_interval_seconds}) "
                f"must be shorter than worker_lease_ttl_seconds ({self.worker_lease_ttl_seconds})"
            )
        return self

    @property
    def sqlalchemy_url(self) -> str | URL:
        """Async database URL, built from the POSTGRES_* variables unless overridden."""
        if self.database_url:
            return self.database_url
        return URL.create(
            "postgresql+asyncpg",
            username=self.postgres_user,
            password=self.postgres_password,
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_db,
        )

    @property
    def lease_enabled(self) -> bool:
        """Whether workers hold an expiring membership lease."""
        return bool(self.worker_lease_ttl_seconds)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
