"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreMode(str, Enum):
    """Document store backend."""

    MONGODB = "mongodb"
    MOCK = "mock"


class MongoSettings(BaseSettings):
    """MongoDB configuration."""

    model_config = SettingsConfigDict(env_prefix="MONGODB_")

    host: str = "localhost"
    port: int = 27017
    user: str = "marketplace"
    password: SecretStr = SecretStr("marketplace_mongo_password")
    db: str = Field(default="marketplace_trust", alias="MONGODB_DB")

    @property
    def uri(self) -> str:
        """Generate MongoDB connection URI."""
        pwd = self.password.get_secret_value()
        return f"mongodb://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}?authSource=admin"


class StoreSettings(BaseSettings):
    """Document store selection and write behaviour."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    mode: StoreMode = StoreMode.MONGODB

    # Optimistic concurrency retry budget for load-modify-save writes
    max_update_retries: int = Field(default=5, ge=1, le=20)


class JWTSettings(BaseSettings):
    """JWT authentication configuration."""

    model_config = SettingsConfigDict(env_prefix="JWT_")

    secret_key: SecretStr = SecretStr("your-jwt-secret-key-min-32-chars-long")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class NotificationSettings(BaseSettings):
    """Outbound user notification (email relay) configuration."""

    model_config = SettingsConfigDict(env_prefix="NOTIFY_")

    enabled: bool = True
    webhook_url: str = ""
    timeout_seconds: float = 10.0
    max_retries: int = 3
    sender: str = "trust-safety@marketplace.local"


class ServicePorts(BaseSettings):
    """Service port configuration."""

    trust_safety: int = Field(default=8010, alias="TRUST_SAFETY_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Persistence
    mongodb: MongoSettings = Field(default_factory=MongoSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    # Authentication
    jwt: JWTSettings = Field(default_factory=JWTSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    # Collaborators
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
