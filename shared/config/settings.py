"""
Centralized configuration using Pydantic Settings
Loads from environment variables and .env file
"""

from typing import Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application settings
    All settings can be overridden by environment variables
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow"
    )

    # =============================================
    # FINNHUB
    # =============================================
    finnhub_api_key: str = Field(default="", description="Finnhub API key")
    finnhub_base_url: str = Field(
        default="https://finnhub.io/api/v1",
        description="Finnhub REST base URL"
    )
    finnhub_timeout: float = Field(default=10.0, description="Finnhub request timeout in seconds")

    # Alias para compatibilidad (mayúsculas)
    @property
    def FINNHUB_API_KEY(self) -> str:
        return self.finnhub_api_key

    # =============================================
    # POSTGRESQL
    # =============================================
    db_host: str = Field(default="localhost", description="Database host")
    db_port: int = Field(default=5432, description="Database port")
    db_name: str = Field(default="stock_screener", description="Database name")
    db_user: str = Field(default="postgres", description="Database user")
    db_password: str = Field(default="postgres", description="Database password")
    database_url_override: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL",
        description="Full PostgreSQL URL, takes precedence over db_* fields"
    )
    db_pool_min: int = Field(default=2, description="Minimum pool size")
    db_pool_max: int = Field(default=10, description="Maximum pool size")

    @property
    def database_url(self) -> str:
        """Get PostgreSQL connection URL for asyncpg"""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # =============================================
    # ETL
    # =============================================
    etl_batch_size: int = Field(default=10, ge=1, description="Instruments per ETL batch")
    etl_rate_limit_ms: int = Field(default=100, ge=0, description="Minimum spacing between upstream calls")
    etl_max_concurrent: int = Field(default=1, ge=1, description="Max in-flight upstream calls")
    etl_exchange: str = Field(default="US", description="Exchange code for symbol ingestion")
    etl_price_days: int = Field(default=730, ge=1, description="Default lookback for price ingestion")
    etl_enrich_profiles: bool = Field(default=False, description="Fetch company profile during fundamentals")
    etl_schedule_enabled: bool = Field(default=False, description="Run the full pipeline periodically from the API")
    etl_schedule_interval_hours: float = Field(default=24, gt=0, description="Hours between scheduled runs")

    # =============================================
    # RANKING
    # =============================================
    ranking_mode: Literal["global", "window"] = Field(
        default="global",
        description="global: rank full filtered population; window: rank inside the fetched page"
    )

    # =============================================
    # API
    # =============================================
    api_host: str = Field(default="0.0.0.0", description="API bind host")
    api_port: int = Field(default=3001, description="API port")
    cors_origin: str = Field(default="http://localhost:5173", description="Allowed CORS origin")

    # =============================================
    # LOGGING
    # =============================================
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format (json or text)")

    # =============================================
    # DEVELOPMENT
    # =============================================
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="production", description="Environment")


# Global settings instance
settings = Settings()
