"""
API configuration settings.
"""

import secrets
from typing import List

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Review API"
    api_version: str = "1.0.0"
    api_description: str = "Register, log in and review books from a fixed catalog"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 5000

    # Credential Settings; a random secret is generated per process when unset
    secret_key: str = Field(default_factory=lambda: secrets.token_hex(64))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # "bearer" reads Authorization headers, "session" reads the session cookie
    auth_transport: str = "bearer"

    # Session Settings
    session_cookie_name: str = "sessionId"
    session_max_age: int = 3600  # seconds
    session_secure: bool = False

    # Rate Limiting (window in seconds, max requests per window)
    rate_limit_window: int = 900
    rate_limit_max: int = 100
    login_rate_limit_window: int = 900
    login_rate_limit_max: int = 5  # failed attempts only
    registration_rate_limit_window: int = 3600
    registration_rate_limit_max: int = 3
    books_rate_limit_window: int = 60
    books_rate_limit_max: int = 30

    # CORS Settings
    cors_origins: List[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    cors_allow_headers: List[str] = ["Content-Type", "Authorization", "X-Requested-With"]

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }

    @validator('auth_transport')
    def validate_auth_transport(cls, v):
        """Ensure the credential transport is supported."""
        valid_transports = ['bearer', 'session']
        if v.lower() not in valid_transports:
            raise ValueError(f'auth_transport must be one of: {valid_transports}')
        return v.lower()

    @validator('access_token_expire_minutes', 'session_max_age')
    def validate_positive_lifetime(cls, v):
        """Ensure credential lifetimes are positive."""
        if v <= 0:
            raise ValueError('credential lifetimes must be positive')
        return v

    def secret_key_from_environment(self) -> bool:
        """Whether the signing secret was supplied rather than generated."""
        return "secret_key" in self.model_fields_set


# Global config instance
config = APIConfig()
