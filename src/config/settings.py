"""
Partner Ledger
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="partner_ledger", alias="database", description="Database name")
    user: str = Field(default="ledger", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    create_tables: bool = Field(default=False, description="Create missing tables on startup")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Database URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"

    def get_url(self) -> str:
        """Database URL - uses DATABASE_URL if set, otherwise builds the asyncpg URL"""
        if self.url:
            return self.url
        return self.async_url


class SecuritySettings(BaseSettings):
    """HTTP surface configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class ProfitSharingSettings(BaseSettings):
    """Partner profit-share configuration"""

    model_config = SettingsConfigDict(env_prefix="PROFIT_SHARE_")

    partners: List[str] = Field(
        default=["yassir", "basim"],
        description="Partner names reported when the partner table is empty"
    )
    default_partner: str = Field(
        default="basim",
        description="Partner receiving 100% of a product's profit when it has no valid share configuration"
    )
    cache_ttl_seconds: float = Field(default=300.0, description="Profit share cache time-to-live")
    percentage_tolerance: float = Field(default=0.01, description="Allowed deviation from 100 for a share configuration")

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        """TTL must be positive"""
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        return v


class BusinessSettings(BaseSettings):
    """Store-level business rules"""

    model_config = SettingsConfigDict(env_prefix="BUSINESS_")

    currency: str = Field(default="SAR", description="Reporting currency")
    free_shipping_threshold: float = Field(default=200.0, description="Order value (after discount) that ships free")
    vat_rate: float = Field(default=15.0, description="VAT percentage applied to tax-inclusive expenses")
    marketing_category: str = Field(default="marketing", description="Expense category counted as marketing spend")
    settings_cache_ttl_seconds: float = Field(default=60.0, description="Time-to-live of cached system settings")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="partner-ledger", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")
    api_workers: int = Field(default=2, alias="API_WORKERS", description="API workers")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    profit_sharing: ProfitSharingSettings = Field(default_factory=ProfitSharingSettings)
    business: BusinessSettings = Field(default_factory=BusinessSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience function for accessing settings
settings = get_settings()
