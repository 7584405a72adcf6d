"""
Configuration Management Module

Centralized configuration using pydantic-settings; every field can be set
from the environment with the ``CREDIFLOW_`` prefix or from a ``.env`` file.
"""

from pydantic_settings import BaseSettings


class CrediflowConfig(BaseSettings):
    """CrediFlow back-office configuration"""

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Business rules configuration
    currency: str = "MXN"
    overdue_grace_days: int = 0  # Days past due before an installment is OVERDUE
    seed_demo_data: bool = False

    # AI advisory configuration (Gemini generateContent REST API)
    advisory_enabled: bool = True
    advisory_api_key: str = ""  # Empty = fallback opinions only
    advisory_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    advisory_model: str = "gemini-2.0-flash"
    advisory_timeout: float = 10.0

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "CREDIFLOW_"
        env_file = ".env"
        case_sensitive = False


# Process-wide configuration instance
config = CrediflowConfig()


def get_config() -> CrediflowConfig:
    """Get configuration instance"""
    return config


def reload_config(**overrides) -> CrediflowConfig:
    """Reload configuration from environment, applying optional overrides"""
    global config
    config = CrediflowConfig(**overrides)
    return config
