"""
Configuration management using environment variables.
Handles the core library settings (hashing cost, seeding, logging) with proper validation and defaults.
"""

import secrets
from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from pathlib import Path


class LibraryConfig(BaseSettings):
    """
    Configuration class for the account and catalog layer.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Environment
    environment: str = Field(default="development", env="ENVIRONMENT")
    debug: bool = Field(default=False, env="DEBUG")

    # Password hashing (pbkdf2_sha256 rounds); keep low in tests, high in production
    password_hash_rounds: int = Field(default=310000, env="PASSWORD_HASH_ROUNDS")

    # Default account seeded at startup
    seed_default_account: bool = Field(default=True, env="SEED_DEFAULT_ACCOUNT")
    default_account_username: str = Field(default="fraser", env="DEFAULT_ACCOUNT_USERNAME")
    # Random per process unless supplied
    default_account_password: str = Field(
        default_factory=lambda: secrets.token_urlsafe(16), env="DEFAULT_ACCOUNT_PASSWORD"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    @validator('environment')
    def validate_environment(cls, v):
        """Ensure environment is a known deployment mode."""
        valid_environments = ['development', 'production', 'test']
        if v.lower() not in valid_environments:
            raise ValueError(f'environment must be one of: {valid_environments}')
        return v.lower()

    @validator('password_hash_rounds')
    def validate_hash_rounds(cls, v):
        """Ensure hash rounds stay within what pbkdf2_sha256 accepts."""
        if v < 1 or v > 10_000_000:
            raise ValueError('password_hash_rounds must be between 1 and 10000000')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production" and not self.debug

    def is_development(self) -> bool:
        """Check if error details may be exposed to clients."""
        return self.environment == "development" or self.debug

    def default_account_password_from_environment(self) -> bool:
        """Whether the seeded account's password was supplied rather than generated."""
        return "default_account_password" in self.model_fields_set


# Global configuration instance
config = LibraryConfig()
