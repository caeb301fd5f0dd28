"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class RatingLedgerConfig(BaseSettings):
    """Rating ledger platform configuration"""

    model_config = SettingsConfigDict(
        env_prefix="RATING_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "json"  # memory, json or sqlite
    data_file: str = "database.json"
    sqlite_path: str = "rating_ledger.db"

    # Business rules configuration
    starting_balance: int = 9000
    daily_rating_cap: int = 25
    rating_balance_floor: int = 8500
    enforce_withdraw_toggle: bool = True  # Gate withdrawals on the global switch

    # Admin configuration
    admin_username: str = "admin"
    admin_password: str = "admin123"  # Change before deploying
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    admin_token_ttl_hours: int = 24

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5001
    cors_origins: List[str] = ["*"]

    # Logging configuration
    log_level: str = "INFO"


# Global configuration instance
config = RatingLedgerConfig()


def get_config() -> RatingLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> RatingLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = RatingLedgerConfig()
    return config
