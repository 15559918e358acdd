"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, auth provider, functions endpoint, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, validator
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB (document database)
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="sawapay",
        description="MongoDB database name"
    )
    MONGODB_MAX_POOL_SIZE: int = Field(
        default=50,
        description="Motor connection pool size"
    )
    MONGODB_CONNECT_ATTEMPTS: int = Field(
        default=3,
        description="Startup connection attempts before giving up"
    )

    # Authentication provider
    AUTH_API_KEY: Optional[str] = Field(
        default=None,
        description="Web API key for the identity provider"
    )
    AUTH_BASE_URL: str = Field(
        default="https://identitytoolkit.googleapis.com/v1",
        description="Identity provider REST base URL"
    )
    TOKEN_BASE_URL: str = Field(
        default="https://securetoken.googleapis.com/v1",
        description="Secure token (refresh) endpoint base URL"
    )
    AUTH_TIMEOUT: int = Field(
        default=15,
        description="Identity provider request timeout in seconds"
    )

    # Callable functions
    FUNCTIONS_BASE_URL: str = Field(
        default="http://localhost:5001/sawapay/us-central1",
        description="Base URL of the callable functions runtime"
    )
    FUNCTIONS_TIMEOUT: int = Field(
        default=30,
        description="Callable function request timeout in seconds"
    )

    # Object storage
    STORAGE_BUCKET_NAME: str = Field(
        default="uploads",
        description="GridFS bucket used for uploaded objects"
    )
    MAX_UPLOAD_SIZE_MB: int = Field(
        default=10,
        description="Maximum accepted upload size in megabytes"
    )

    # Listings
    DEFAULT_PAGE_SIZE: int = Field(
        default=10,
        description="Default page size for paginated listings"
    )
    MAX_PAGE_SIZE: int = Field(
        default=100,
        description="Largest page size a client may request"
    )
    USER_SEARCH_SCAN_LIMIT: int = Field(
        default=100,
        description="Number of users scanned for display name matches"
    )
    RECENT_TRANSACTIONS_LIMIT: int = Field(
        default=5,
        description="Transactions shown on dashboards and user details"
    )

    # Application
    APP_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL (used to build download URLs)"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    SLOW_REQUEST_SECONDS: float = Field(
        default=5.0,
        description="Requests slower than this are logged as warnings"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @validator("AUTH_BASE_URL", "TOKEN_BASE_URL", "FUNCTIONS_BASE_URL", "APP_URL")
    def strip_trailing_slash(cls, v):
        """Paths are appended as f"{base}/{name}"."""
        return v.rstrip("/")

    @validator("AUTH_API_KEY")
    def validate_auth_key(cls, v, values):
        """Ensure the identity provider key is set in production."""
        if values.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("AUTH_API_KEY is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = True
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.FUNCTIONS_BASE_URL:
        errors.append("FUNCTIONS_BASE_URL is required")

    if settings.DEFAULT_PAGE_SIZE < 1 or settings.DEFAULT_PAGE_SIZE > settings.MAX_PAGE_SIZE:
        errors.append("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")

    # Production-specific validations
    if settings.is_production:
        if not settings.AUTH_API_KEY:
            errors.append("AUTH_API_KEY is required in production")
        if settings.APP_URL.startswith("http://localhost"):
            errors.append("APP_URL must point at the public host in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
