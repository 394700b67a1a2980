"""
Office Nexus Ledger - Configuration Settings

This module handles all application configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "Office Nexus Ledger"
    app_env: str = "development"
    debug: bool = False
    api_version: str = "v1"

    # ===========================================
    # DATABASE CONFIGURATION
    # ===========================================
    # Any SQLAlchemy async URL works: sqlite+aiosqlite for a single node,
    # postgresql+asyncpg for shared deployments.
    database_url_async: str = "sqlite+aiosqlite:///./nexus_ledger.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # ===========================================
    # LEDGER POSTING
    # ===========================================
    currency: str = "RWF"
    balance_tolerance: Decimal = Decimal("0.01")

    # ===========================================
    # TAX RATES (Rwanda Revenue Authority)
    # ===========================================
    vat_rate: Decimal = Decimal("0.18")
    cit_rate: Decimal = Decimal("0.30")
    qit_default_rate: Decimal = Decimal("30")  # percent of estimated income

    # ===========================================
    # PAYROLL (PAYE + RSSB)
    # ===========================================
    paye_rate: Decimal = Decimal("0.15")
    paye_basic_exemption: Decimal = Decimal("30000")
    rssb_employee_rate: Decimal = Decimal("0.075")
    rssb_employer_rate: Decimal = Decimal("0.075")

    # ===========================================
    # CAPITAL & OWNERSHIP
    # ===========================================
    default_par_value: Decimal = Decimal("1000")
    significant_control_threshold: Decimal = Decimal("25")
    ownership_ceiling: Decimal = Decimal("100")

    # ===========================================
    # CORS SETTINGS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://localhost:8000,http://127.0.0.1:8000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_sqlite(self) -> bool:
        """SQLite engines do not accept pool sizing arguments."""
        return self.database_url_async.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Export settings instance
settings = get_settings()
