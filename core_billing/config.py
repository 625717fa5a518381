"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class BillingConfig(BaseSettings):
    """Billing and collections core configuration"""

    # Database configuration
    database_url: str = "sqlite:///billing.db"  # Default SQLite

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Business rules configuration
    due_soon_days: int = 7              # "proximo" window for upcoming installments
    notification_window_days: int = 15  # How far ahead collection notices look
    delinquency_min_days: int = 7       # Days overdue before an installment is reported
    delinquency_grace_days: int = 30    # Days overdue before a transaction is flagged delinquent
    arrears_monthly_rate: str = "0.01"  # 1% per 30-day block, as Decimal string
    arrears_block_days: int = 30
    receipt_prefix: str = "REC"

    # Feature flags
    enable_audit_logging: bool = True
    require_tenant_header: bool = False  # Reject API requests that omit X-Tenant-ID

    class Config:
        env_prefix = "BILLING_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = BillingConfig()


def get_config() -> BillingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> BillingConfig:
    """Reload configuration from environment"""
    global config
    config = BillingConfig()
    return config
