"""Order Service — environment-based configuration."""

from __future__ import annotations

from sqlalchemy.engine import URL

from shared.config import BaseServiceSettings


class OrderServiceSettings(BaseServiceSettings):
    """Settings specific to the Order Service."""

    service_name: str = "orders_service"
    server_port: int = 8080
    hostname: str = "localhost"

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "ordersdb"
    db_sslmode: str = "disable"
    database_url: str | None = None

    # Connection pool
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30

    # Tracing
    otel_enabled: bool = True

    # Events
    event_queue_size: int = 100
    event_processing_delay_seconds: float = 0.1

    # Idempotency
    idempotency_ttl_seconds: int = 600
    idempotency_cleanup_interval_seconds: int = 300

    # Shutdown
    shutdown_timeout_seconds: float = 30.0

    @property
    def sqlalchemy_url(self) -> str | URL:
        """Explicit ``DATABASE_URL`` when set, otherwise assembled from DB_* parts."""
        if self.database_url:
            return self.database_url
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )

    @property
    def advertised_url(self) -> str:
        return f"http://{self.hostname}:{self.server_port}"


settings = OrderServiceSettings()
