"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class GICConfig(BaseSettings):
    """GIC banking system configuration"""

    bank_name: str = "AwesomeGIC Bank"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    # Business rules configuration
    auto_register_accounts: bool = True  # Open unknown accounts on first transaction
    accrual_method: str = "event_driven"  # event_driven or daily_balance
    day_count: str = "actual_365"  # actual_365 or actual_360, daily_balance only
    default_statement_year: int = 2023  # Used when an account has no transactions
    statement_amount_precision: int = 2

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "GIC_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = GICConfig()


def get_config() -> GICConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> GICConfig:
    """Reload configuration from environment"""
    global config
    config = GICConfig()
    return config
