"""
Configuration management for the smart ticket queue.

Uses Pydantic Settings for type-safe configuration.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    environment: str = "development"

    # Database (unset = ticket store not configured)
    database_url: Optional[str] = None
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_recycle: int = 1800  # 30 minutes
    db_pool_pre_ping: bool = True
    db_echo: bool = False

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Smart sort
    smart_sort_cron_enabled: bool = True
    smart_sort_recompute_interval_seconds: int = 300  # 5 minutes
    smart_sort_initial_delay_seconds: float = 0.0
    smart_sort_in_chunk_size: int = 80
    smart_sort_upsert_chunk_size: int = 200
    smart_sort_recompute_timeout_seconds: float = 120.0  # 0 disables
    smart_sort_score_ttl_seconds: Optional[int] = None

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def async_database_url(self) -> Optional[str]:
        """Database URL with the asyncpg driver selected for plain Postgres DSNs."""
        if not self.database_url:
            return None
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url

    @property
    def recompute_timeout(self) -> Optional[float]:
        if self.smart_sort_recompute_timeout_seconds <= 0:
            return None
        return self.smart_sort_recompute_timeout_seconds

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
